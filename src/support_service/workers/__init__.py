"""Celery worker and background tasks."""
