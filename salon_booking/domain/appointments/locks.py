"""Per-staff mutex guarding the validate-and-commit critical section"""

import logging
from contextlib import ExitStack, contextmanager
from threading import Lock
from typing import Iterator

from ...config import BOOKING_LOCK_TIMEOUT_SECONDS
from ...exceptions import PersistenceError

logger = logging.getLogger(__name__)


class StaffScheduleLocks:
    """
    One lock per staff id, created on first use.

    Serializes "read existing windows -> decide -> insert" for a staff member
    within this process. Cross-process exclusion comes from the row lock the
    store takes on the staff record.
    """

    def __init__(self, timeout: float = BOOKING_LOCK_TIMEOUT_SECONDS):
        self.timeout = timeout
        self._locks: dict[int, Lock] = {}
        self._guard = Lock()

    def _lock_for(self, staff_id: int) -> Lock:
        with self._guard:
            lock = self._locks.get(staff_id)
            if lock is None:
                lock = self._locks[staff_id] = Lock()
            return lock

    @contextmanager
    def hold(self, staff_id: int) -> Iterator[None]:
        lock = self._lock_for(staff_id)
        if not lock.acquire(timeout=self.timeout):
            logger.warning(f"⏱️ Timed out waiting for schedule lock of staff {staff_id}")
            raise PersistenceError("Timed out waiting for the staff schedule", retryable=True)
        try:
            yield
        finally:
            lock.release()

    @contextmanager
    def hold_many(self, *staff_ids: int) -> Iterator[None]:
        """Hold several staff locks at once, taken in ascending id order"""
        with ExitStack() as stack:
            for staff_id in sorted(set(staff_ids)):
                stack.enter_context(self.hold(staff_id))
            yield
