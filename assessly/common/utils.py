"""
Common utility functions for the Assessly backend.

This module provides small helpers used across the domain and service layers,
mostly around timestamps, identifiers and numeric edge cases.
"""

import datetime
import uuid
from typing import Any, Optional, Union


def utcnow() -> datetime.datetime:
    """
    Get the current UTC time as a naive datetime.

    All persisted timestamps are naive UTC so they compare cleanly with
    values read back from SQLite and PostgreSQL ``timestamp`` columns.

    Returns:
        Current UTC time without tzinfo
    """
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    """Generate a new opaque entity identifier."""
    return uuid.uuid4().hex


def serialize_datetime(value: Optional[datetime.datetime]) -> Optional[str]:
    """
    Serialize a datetime to an ISO format string.

    Args:
        value: Datetime to serialize, or None

    Returns:
        ISO format string, or None when value is None
    """
    if value is None:
        return None
    return value.isoformat()


def parse_datetime(value: Any) -> Optional[datetime.datetime]:
    """
    Parse an ISO string (or pass through a datetime) into naive UTC.

    Aware datetimes are converted to UTC before the tzinfo is dropped.

    Args:
        value: ISO string, datetime or None

    Returns:
        Naive UTC datetime, or None
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if not isinstance(value, datetime.datetime):
        raise TypeError(f"Type {type(value)} is not a datetime")
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value


def safe_divide(numerator: Union[int, float], denominator: Union[int, float], default: Union[int, float] = 0) -> float:
    """
    Safely divide two numbers, returning a default value if denominator is zero.

    Args:
        numerator: Number to divide
        denominator: Number to divide by
        default: Value to return if denominator is zero

    Returns:
        Result of division or default value
    """
    if not denominator:
        return default
    return numerator / denominator


def unique_in_order(values) -> list:
    """Drop duplicates from an iterable while keeping first-seen order."""
    seen = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result
