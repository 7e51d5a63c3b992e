"""
Overlap Detection

Windows are half-open [start, end): the start instant belongs to the window,
the end instant does not, so back-to-back bookings can touch.
"""

from datetime import datetime
from typing import Iterable, TypeVar

T = TypeVar("T")


def overlaps(
    candidate_start: datetime,
    candidate_end: datetime,
    existing_start: datetime,
    existing_end: datetime,
) -> bool:
    """
    Return True if the two windows share any instant.

    The single predicate covers a candidate starting inside, ending inside,
    or fully covering the existing window. Touching windows do not overlap.
    """
    return candidate_start < existing_end and candidate_end > existing_start


def find_overlapping(start: datetime, end: datetime, windows: Iterable[T]) -> list[T]:
    """Return the items of ``windows`` (anything with start_time/end_time) overlapping [start, end)"""
    return [w for w in windows if overlaps(start, end, w.start_time, w.end_time)]
