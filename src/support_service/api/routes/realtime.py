# src/support_service/api/routes/realtime.py
"""
WebSocket endpoint for the agent console.

Browsers cannot set an Authorization header on a WebSocket handshake, so
the access token travels as the ``token`` query parameter.

Client messages:
    {"type": "join", "conversation_id": "..."}   subscribe to a conversation
    {"type": "leave", "conversation_id": "..."}  unsubscribe
    {"type": "ping"}                             answered with {"type": "pong"}
"""
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from support_service.auth.schemas import UserInfo
from support_service.auth.tokens import decode_access_token
from support_service.config.settings import get_settings
from support_service.domain.exceptions import AuthError
from support_service.infrastructure.realtime import connection_manager, conversation_group

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: str = Query("")):
    try:
        payload = decode_access_token(token)
    except AuthError as e:
        logger.warning("Rejected realtime connection", extra={"reason": e.message})
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user = UserInfo.from_token(payload, default_tenant=get_settings().default_tenant_id)
    connection_id = await connection_manager.connect(websocket, str(user.id))
    try:
        while True:
            message = await websocket.receive_json()
            kind = message.get("type") if isinstance(message, dict) else None

            if kind == "ping":
                await websocket.send_json({"type": "pong"})
            elif kind in ("join", "leave") and message.get("conversation_id"):
                group = conversation_group(message["conversation_id"])
                if kind == "join":
                    await connection_manager.add_to_group(connection_id, group)
                    await websocket.send_json({"type": "joined", "group": group})
                else:
                    await connection_manager.remove_from_group(connection_id, group)
                    await websocket.send_json({"type": "left", "group": group})
            else:
                await websocket.send_json({"type": "error", "message": "Unsupported message"})
    except WebSocketDisconnect:
        pass
    finally:
        await connection_manager.disconnect(connection_id)
