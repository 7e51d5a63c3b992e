"""
Connection Registry

Index from a stable user identity to that user's live realtime connections.
Connect/disconnect events and dispatcher lookups arrive concurrently from the
event loop and from request worker threads, so every access goes through one
in-memory lock. Nothing here performs I/O.
"""

import logging
from collections.abc import Hashable
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    def __init__(self):
        self._connections: dict[str, set[Hashable]] = {}
        self._lock = Lock()

    def register(self, user_id: str, connection: Hashable) -> None:
        """Add a connection for user_id (adding the same handle twice is a no-op)"""
        with self._lock:
            self._connections.setdefault(user_id, set()).add(connection)
            count = len(self._connections[user_id])
        logger.debug(f"🔌 Registered connection for {user_id} ({count} live)")

    def unregister(self, user_id: str, connection: Hashable) -> None:
        """Remove exactly this connection; drop the entry once it is empty"""
        with self._lock:
            connections = self._connections.get(user_id)
            if connections is None:
                return
            connections.discard(connection)
            if not connections:
                del self._connections[user_id]
        logger.debug(f"🔌 Unregistered connection for {user_id}")

    def connections_for(self, user_id: str) -> frozenset:
        """Snapshot of user_id's live connections, possibly empty"""
        with self._lock:
            return frozenset(self._connections.get(user_id, ()))

    def connection_count(self, user_id: Optional[str] = None) -> int:
        with self._lock:
            if user_id is not None:
                return len(self._connections.get(user_id, ()))
            return sum(len(c) for c in self._connections.values())

    def user_ids(self) -> list[str]:
        with self._lock:
            return list(self._connections)
