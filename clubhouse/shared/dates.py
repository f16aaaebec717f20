"""
Club-local date helpers.

All teesheet dates are calendar dates in the club's timezone. Server clocks
run in UTC, so "today" must be computed in CLUB_TIMEZONE or late-evening
requests land on the wrong teesheet.
"""

from datetime import date, datetime, timedelta
from typing import Union
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser

from ..config import CLUB_TIMEZONE
from .validators import HHMM_PATTERN

DateLike = Union[date, datetime, str]


def club_now() -> datetime:
    return datetime.now(ZoneInfo(CLUB_TIMEZONE))


def club_today() -> str:
    """Today's date in the club timezone as YYYY-MM-DD"""
    return club_now().date().isoformat()


def to_date(value: DateLike) -> date:
    """
    Normalize a date-like value to a calendar date.

    Strings are parsed leniently ("2025-12-25", "2025-12-25T08:00:00Z");
    aware datetimes are converted to the club timezone first.

    Raises:
        ValueError: If the value cannot be read as a date
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(CLUB_TIMEZONE))
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid date: {value!r}")

    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        pass

    try:
        parsed = date_parser.isoparse(value.strip())
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Invalid date: {value!r}") from e
    return to_date(parsed)


def normalize_date(value: DateLike) -> str:
    """Date-like value as YYYY-MM-DD"""
    return to_date(value).isoformat()


def day_of_week(value: DateLike) -> int:
    """Day of week with 0=Sunday ... 6=Saturday"""
    # isoweekday(): Monday=1 ... Sunday=7
    return to_date(value).isoweekday() % 7


def parse_hhmm(value: str) -> tuple[int, int]:
    """
    Parse an HH:MM string.

    Raises:
        ValueError: If the value is not a valid 24h HH:MM time
    """
    match = HHMM_PATTERN.match(value) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid time '{value}' - expected HH:MM")
    return int(match.group(1)), int(match.group(2))


def is_valid_hhmm(value: str) -> bool:
    try:
        parse_hhmm(value)
        return True
    except ValueError:
        return False


def to_minutes(value: str) -> int:
    hours, minutes = parse_hhmm(value)
    return hours * 60 + minutes


def format_minutes(total_minutes: int) -> str:
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def month_bounds(value: DateLike) -> tuple[date, date]:
    """First and last day of the calendar month containing value"""
    day = to_date(value)
    first = day.replace(day=1)
    next_month = (first + timedelta(days=32)).replace(day=1)
    return first, next_month - timedelta(days=1)
