"""
Business Hours Policy

Decides whether a booking window falls inside the salon's opening hours for
its weekday. The table is keyed by ``datetime.weekday()`` (Monday=0); a
missing or ``None`` entry means the salon is closed that day.
"""

import calendar
from datetime import datetime, time
from typing import Optional

from ...config import BUSINESS_SATURDAY_HOURS, BUSINESS_WEEKDAY_HOURS

OpeningHours = tuple[time, time]

SATURDAY = 5
SUNDAY = 6


def parse_hours(value: str) -> OpeningHours:
    """Parse an "HH:MM-HH:MM" range"""
    try:
        open_str, close_str = value.split("-")
        opens = time.fromisoformat(open_str.strip())
        closes = time.fromisoformat(close_str.strip())
    except ValueError as e:
        raise ValueError(f"Invalid business hours range: {value!r} (expected HH:MM-HH:MM)") from e
    if opens >= closes:
        raise ValueError(f"Invalid business hours range: {value!r} (opens after it closes)")
    return opens, closes


def default_schedule() -> dict[int, Optional[OpeningHours]]:
    """Mon-Fri and Saturday ranges from configuration; Sunday closed"""
    weekday = parse_hours(BUSINESS_WEEKDAY_HOURS)
    saturday = parse_hours(BUSINESS_SATURDAY_HOURS)
    schedule: dict[int, Optional[OpeningHours]] = {day: weekday for day in range(5)}
    schedule[SATURDAY] = saturday
    schedule[SUNDAY] = None
    return schedule


class BusinessHoursPolicy:
    def __init__(self, schedule: Optional[dict[int, Optional[OpeningHours]]] = None):
        self.schedule = schedule if schedule is not None else default_schedule()

    def hours_for(self, day: datetime) -> Optional[OpeningHours]:
        return self.schedule.get(day.weekday())

    def rejection_reason(self, start: datetime, end: datetime) -> Optional[str]:
        """Return why [start, end) is outside business hours, or None if it is admissible"""
        day_name = calendar.day_name[start.weekday()]
        hours = self.hours_for(start)
        if hours is None:
            return f"Salon is closed on {day_name}"

        opens, closes = hours
        if start.date() != end.date():
            return "Appointments must start and end on the same day"
        if start.time() < opens or end.time() > closes:
            return (
                f"Appointments on {day_name} must be between "
                f"{opens.strftime('%H:%M')} and {closes.strftime('%H:%M')}"
            )
        return None

    def is_within_business_hours(self, start: datetime, end: datetime) -> bool:
        return self.rejection_reason(start, end) is None


def is_in_past(start: datetime, now: datetime) -> bool:
    return start < now
