"""Appointment status and its transition table"""

from enum import Enum

from ...exceptions import IllegalTransitionError


class AppointmentStatus(str, Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


# Scheduled is the only state with outgoing transitions
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target == current or target in ALLOWED_TRANSITIONS[current]


def transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    """
    Check a status change against the transition table.

    Returns True when the status actually changes and False for a same-state
    no-op. Raises IllegalTransitionError for anything else, e.g.
    Cancelled -> Scheduled.
    """
    if not can_transition(current, target):
        raise IllegalTransitionError(
            f"Cannot change appointment status from {current.value} to {target.value}"
        )
    return target != current
