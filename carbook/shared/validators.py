"""Shared validation utilities"""

import re
import uuid
from typing import Optional

HHMM_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")
E164_PATTERN = re.compile(r"^\+[1-9]\d{9,14}$")


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError, TypeError):
        return False


def validate_hhmm(value: str) -> str:
    """
    Validate a wall-clock time and normalize it to zero-padded HH:MM.

    Args:
        value: Time string such as "9:00" or "09:00"

    Returns:
        Zero-padded 24h time string ("09:00")

    Raises:
        ValueError: If the time is not a valid 24h HH:MM value
    """
    match = HHMM_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError("Invalid time format. Use HH:MM")
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def hhmm_to_minutes(value: str) -> int:
    """Convert HH:MM to minutes since midnight"""
    hours, minutes = validate_hhmm(value).split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_hhmm(total_minutes: int) -> str:
    """Convert minutes since midnight to HH:MM"""
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def is_valid_e164(phone: Optional[str]) -> bool:
    """Check a phone number is E.164 with 10-15 digits (e.g. +919876543210)"""
    if not phone:
        return False
    return bool(E164_PATTERN.match(phone))
