"""Version 1 of the HTTP API."""
from support_service.api.v1.router import router

__all__ = ["router"]
