"""Shared validation utilities"""

import re
from typing import Optional

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def validate_hhmm(value: Optional[str]) -> Optional[str]:
    """
    Validate a 24h clock time.

    Args:
        value: Time string in HH:MM format (e.g. "07:30")

    Returns:
        The time string unchanged

    Raises:
        ValueError: If the time is not a valid HH:MM value
    """
    if value is None:
        return value

    if not isinstance(value, str) or not HHMM_PATTERN.match(value):
        raise ValueError(f"Invalid time '{value}' - expected HH:MM (24h)")

    return value


def validate_days_of_week(days: Optional[list[int]]) -> Optional[list[int]]:
    """Validate a day-of-week list (0=Sunday ... 6=Saturday), returned sorted and de-duplicated"""
    if days is None:
        return days

    for day in days:
        if not isinstance(day, int) or day < 0 or day > 6:
            raise ValueError(f"Invalid day of week {day!r} - expected 0 (Sunday) to 6 (Saturday)")

    return sorted(set(days))


EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def validate_email(email: Optional[str]) -> Optional[str]:
    """Guest email: stripped and lowercased. Empty input is returned as None."""
    if not email or not email.strip():
        return None

    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email format")

    return email
