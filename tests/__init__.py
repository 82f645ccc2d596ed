# tests/__init__.py
"""
Support service tests.

- unit: schemas, domain models, RBAC, cache and small service helpers
- services: service classes against an in-memory SQLite database
- integration: the HTTP API through an ASGI client
- factories: Factory Boy factories for the database models
"""
