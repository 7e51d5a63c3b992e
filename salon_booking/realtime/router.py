"""Realtime channel - one private channel per authenticated identity"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect, status

from ..auth import authenticate_token
from ..exceptions import AuthenticationError
from .connections import WebSocketConnection
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


def _bearer_from_header(websocket: WebSocket) -> Optional[str]:
    header = websocket.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


@router.websocket("/ws/appointments")
async def appointments_channel(websocket: WebSocket, token: Optional[str] = None):
    """
    Push channel for appointment events.

    Authenticate with ?token=<jwt> or an Authorization header. The connection
    is registered under the token's "sub" claim until it disconnects.
    """
    try:
        claims = authenticate_token(token or _bearer_from_header(websocket))
    except AuthenticationError as e:
        logger.warning(f"⚠️ Realtime connection refused: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    registry: ConnectionRegistry = websocket.app.state.registry
    user_id = claims["sub"]
    connection = WebSocketConnection(user_id, websocket, asyncio.get_running_loop())

    await websocket.accept()
    registry.register(user_id, connection)
    logger.info(f"🔌 Realtime connection opened for {user_id} ({registry.connection_count(user_id)} live)")

    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        registry.unregister(user_id, connection)
        logger.info(f"🔌 Realtime connection closed for {user_id}")


@router.get("/health/realtime")
def realtime_health(request: Request):
    """Live connection counts for monitoring"""
    registry: ConnectionRegistry = request.app.state.registry
    return {
        "status": "healthy",
        "connected_users": len(registry.user_ids()),
        "connections": registry.connection_count(),
    }
