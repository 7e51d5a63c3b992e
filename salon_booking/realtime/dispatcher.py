"""
Realtime Notification Dispatcher

Pushes appointment events to every live connection of the interested users.
Delivery is best-effort: offline users get nothing, there is no queue or
retry, and a failed push is logged and dropped. By the time this runs the
booking is committed, so nothing here may fail the request.
"""

import logging
from enum import Enum
from typing import Iterable, Optional

from ..exceptions import NotificationDeliveryError
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    APPOINTMENT_CREATED = "AppointmentCreated"
    APPOINTMENT_UPDATED = "AppointmentUpdated"
    APPOINTMENT_CANCELLED = "AppointmentCancelled"


def build_message(event_kind: EventKind, payload: dict) -> dict:
    return {"event": event_kind.value, "data": payload}


class NotificationDispatcher:
    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def notify(
        self,
        event_kind: EventKind,
        payload: dict,
        recipient_user_ids: Iterable[Optional[str]],
    ) -> int:
        """
        Push the event to each recipient's live connections.

        Recipients are de-duplicated (a user who is both client and staff gets
        one copy per connection) and ``None`` entries are skipped.

        Returns:
            Number of pushes handed off to connections
        """
        message = build_message(event_kind, payload)
        recipients = {user_id for user_id in recipient_user_ids if user_id}
        pushed = 0

        for user_id in recipients:
            connections = self.registry.connections_for(user_id)
            if not connections:
                logger.debug(f"ℹ️ {event_kind.value}: no live connections for {user_id}, skipping")
                continue

            for connection in connections:
                try:
                    connection.push(message)
                    pushed += 1
                except NotificationDeliveryError as e:
                    logger.warning(f"⚠️ {event_kind.value}: {e}")
                except Exception as e:
                    logger.error(f"❌ {event_kind.value}: {NotificationDeliveryError(user_id, str(e))}")

        logger.info(
            f"📣 {event_kind.value} dispatched to {len(recipients)} recipient(s), {pushed} connection(s)"
        )
        return pushed
