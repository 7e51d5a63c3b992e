"""Live connection handles stored in the ConnectionRegistry"""

import asyncio
import logging
import uuid
from concurrent.futures import Future

from starlette.websockets import WebSocket

from ..exceptions import NotificationDeliveryError

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """
    A websocket bound to the event loop that serves it.

    ``push`` may be called from any thread. It schedules the send on the
    connection's loop and returns at once; failures are logged from the
    future's callback and never reach the caller.
    """

    def __init__(self, user_id: str, websocket: WebSocket, loop: asyncio.AbstractEventLoop):
        self.connection_id = uuid.uuid4().hex
        self.user_id = user_id
        self.websocket = websocket
        self.loop = loop

    def __repr__(self) -> str:
        return f"WebSocketConnection(user_id={self.user_id!r}, id={self.connection_id[:8]})"

    def push(self, message: dict) -> None:
        if self.loop.is_closed():
            raise NotificationDeliveryError(self.user_id, "event loop is closed")
        future = asyncio.run_coroutine_threadsafe(self.websocket.send_json(message), self.loop)
        future.add_done_callback(self._log_failure)

    def _log_failure(self, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            failure = NotificationDeliveryError(self.user_id, str(error) or type(error).__name__)
            logger.warning(f"⚠️ {failure} (connection {self.connection_id[:8]})")
