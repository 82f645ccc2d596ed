"""
API v1 router aggregator.

Mounted at /api/v1 by the application factory.

Routes included in v1:
    - /agents - Agent directory, profiles and notification preferences
    - /conversations - Escalations, assignment, transfer and transcripts
    - /issues - Issue intake, updates and links
    - /whatsapp - WhatsApp Business webhook
    - /realtime - WebSocket for the agent console

Routes NOT versioned (kept at root level):
    - /health/* - Health check endpoints
"""

from fastapi import APIRouter

from support_service.api.routes import agents, conversations, issues, realtime, whatsapp

router = APIRouter()

# ============================================================================
# Include v1 routes
# ============================================================================

router.include_router(agents.router, prefix="/agents", tags=["Agents"])
router.include_router(conversations.router, prefix="/conversations", tags=["Conversations"])
router.include_router(issues.router, prefix="/issues", tags=["Issues"])
router.include_router(whatsapp.router, prefix="/whatsapp", tags=["WhatsApp"])
router.include_router(realtime.router, prefix="/realtime", tags=["Realtime"])

__all__ = ["router"]
