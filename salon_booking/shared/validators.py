"""Shared validation utilities"""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from ..config import SERVICE_TIMEZONE

SERVICE_ZONE = ZoneInfo(SERVICE_TIMEZONE)


def service_now() -> datetime:
    """Current wall-clock time in the service timezone, naive"""
    return datetime.now(SERVICE_ZONE).replace(tzinfo=None)


def to_service_time(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a timestamp to the naive service-timezone form used in storage.

    Aware values are converted into SERVICE_TIMEZONE first; naive values are
    assumed to already be in it.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(SERVICE_ZONE).replace(tzinfo=None)


def validate_positive_id(value: Optional[int]) -> Optional[int]:
    if value is not None and value <= 0:
        raise ValueError("Identifiers must be positive integers")
    return value
