"""
Booking Validator

Runs the checks a booking window must pass before it can be written:

1. the window is well formed and does not start in the past
2. it lies inside business hours for its weekday
3. it does not overlap another Scheduled appointment of the same staff member

Steps 1 and 2 need no database access and fail fast with ``Rejected`` so the
caller can tell "bad time" from "time taken". Step 3 reads the store and, on
overlap, returns ``Conflict`` with an advisory alternative window.

Callers must run ``validate`` inside the staff's critical section (see
``domain.appointments.locks``) and must re-run it on every reschedule.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional, Union

from sqlalchemy.orm import Session

from ...config import SUGGESTION_GAP_MINUTES
from ...shared.validators import service_now
from ..appointments.repository import AppointmentStore
from .business_hours import BusinessHoursPolicy, is_in_past
from .overlap import find_overlapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Accepted:
    pass


@dataclass(frozen=True)
class Rejected:
    reason: str


@dataclass(frozen=True)
class Conflict:
    suggested_start: datetime
    suggested_end: datetime
    conflicting_ids: tuple[int, ...] = field(default_factory=tuple)


ValidationOutcome = Union[Accepted, Rejected, Conflict]


def suggest_alternative(
    start: datetime, end: datetime, gap_minutes: int = SUGGESTION_GAP_MINUTES
) -> tuple[datetime, datetime]:
    """Next window after the requested one, same duration, ``gap_minutes`` later.

    Not checked against business hours or further overlaps.
    """
    suggested_start = end + timedelta(minutes=gap_minutes)
    return suggested_start, suggested_start + (end - start)


class BookingValidator:
    def __init__(
        self,
        store: type[AppointmentStore] = AppointmentStore,
        policy: Optional[BusinessHoursPolicy] = None,
        clock: Callable[[], datetime] = service_now,
        suggestion_gap_minutes: int = SUGGESTION_GAP_MINUTES,
    ):
        self.store = store
        self.policy = policy or BusinessHoursPolicy()
        self.clock = clock
        self.suggestion_gap_minutes = suggestion_gap_minutes

    def check_time(self, start: datetime, end: datetime) -> Optional[Rejected]:
        """Store-free checks: window shape, past start, business hours"""
        if start >= end:
            return Rejected("Start time must be before end time")
        if is_in_past(start, self.clock()):
            return Rejected("Appointments cannot be booked in the past")
        reason = self.policy.rejection_reason(start, end)
        if reason:
            return Rejected(reason)
        return None

    def validate(
        self,
        db: Session,
        staff_id: int,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> ValidationOutcome:
        rejected = self.check_time(start, end)
        if rejected:
            logger.info(f"🚫 Booking rejected for staff {staff_id} ({start} - {end}): {rejected.reason}")
            return rejected

        existing = self.store.find_scheduled_overlaps(
            db, staff_id, start, end, exclude_id=exclude_appointment_id
        )
        # Only true half-open overlaps count, whatever superset the store returns
        clashing = find_overlapping(start, end, existing)
        if clashing:
            suggested_start, suggested_end = suggest_alternative(
                start, end, self.suggestion_gap_minutes
            )
            logger.info(
                f"⚠️ Staff {staff_id} unavailable {start} - {end}, "
                f"{len(clashing)} conflict(s); suggesting {suggested_start}"
            )
            return Conflict(
                suggested_start=suggested_start,
                suggested_end=suggested_end,
                conflicting_ids=tuple(a.id for a in clashing),
            )

        return Accepted()
