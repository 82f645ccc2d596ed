# src/support_service/api/app.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from support_service.api import v1
from support_service.api.middleware.errors import register_error_handlers
from support_service.api.middleware.logging import RequestLoggingMiddleware
from support_service.api.middleware.rate_limit import setup_rate_limiting
from support_service.api.middleware.request_id import RequestIDMiddleware
from support_service.api.middleware.whatsapp_signature import WhatsAppSignatureMiddleware
from support_service.api.routes import health
from support_service.config.settings import get_settings
from support_service.infrastructure.cache.redis import close_redis, get_redis_manager
from support_service.infrastructure.database import db
from support_service.infrastructure.observability.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    settings = get_settings()
    configure_logging()

    if settings.database_url:
        await db.connect(settings, create_tables=True)
    else:
        logger.warning("Database not configured - API endpoints will return 503")

    redis_manager = await get_redis_manager()
    if redis_manager.is_available:
        if not await redis_manager.health_check():
            logger.warning("Redis connection established but health check failed")
    else:
        logger.info("Redis is not available - using in-memory cache and rate limit storage")

    yield

    await close_redis()
    if db.is_connected:
        await db.disconnect()


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
# Support Service API

Backend for a customer support console where a chat bot hands conversations
over to human agents.

## Features

- **Escalations**: bot conversations escalated to humans, auto-assigned by
  round robin, least loaded or random strategies
- **Agent console**: accept, transfer, reassign and complete conversations,
  with realtime updates over WebSocket
- **Issues**: intake from the bot, status workflow, parent/child links and
  an audit trail
- **WhatsApp**: Business webhook with signature verification
- **Insights**: periodic analysis of completed conversations (Celery)

## Authentication

All endpoints except health checks and the WhatsApp webhook require a JWT:

```
Authorization: Bearer <token>
```
        """,
        docs_url="/docs" if settings.debug else None,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Health", "description": "Liveness and readiness checks."},
            {"name": "Agents", "description": "Agent directory, status and notification preferences."},
            {"name": "Conversations", "description": "Escalation, assignment and transcript endpoints."},
            {"name": "Issues", "description": "Issue intake, updates and links."},
            {"name": "WhatsApp", "description": "WhatsApp Business webhook."},
            {"name": "Realtime", "description": "WebSocket channel for the agent console."},
        ],
    )

    # Middleware (added in reverse order of execution)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(WhatsAppSignatureMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    register_error_handlers(app)
    setup_rate_limiting(app)

    # ============================================================================
    # Routes
    # ============================================================================

    # Health routes stay unversioned
    app.include_router(health.router, tags=["Health"])

    app.include_router(v1.router, prefix="/api/v1")

    return app


app = create_app()
