"""Response-window policy for pending bookings."""

import re
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from lensbook.domain.bookings import Booking, BookingStatus
from lensbook.errors import ValidationError

# (maximum lead time, response window), checked in order.
RESPONSE_WINDOWS: tuple[tuple[timedelta, timedelta], ...] = (
    (timedelta(hours=2), timedelta(minutes=30)),
    (timedelta(hours=12), timedelta(minutes=60)),
    (timedelta(hours=24), timedelta(hours=4)),
)
DEFAULT_RESPONSE_WINDOW = timedelta(hours=24)
LEGACY_PENDING_TTL = timedelta(hours=24)

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*(AM|PM)?\s*$", re.I)
_NOON = 12


def parse_scheduled_time(value: str) -> time:
    """Parse ``HH:MM`` (24h) or ``H:MM AM/PM`` into a time of day."""
    match = _TIME_PATTERN.match(value or "")
    if match is None:
        raise ValidationError(
            "Scheduled time must look like HH:MM", details={"scheduled_time": value}
        )
    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    meridiem = (match.group(4) or "").upper()
    if meridiem:
        if not 1 <= hour <= _NOON:
            raise ValidationError(
                "Invalid 12-hour time", details={"scheduled_time": value}
            )
        hour = hour % _NOON + (_NOON if meridiem == "PM" else 0)
    if hour > 23 or minute > 59 or second > 59:  # noqa: PLR2004
        raise ValidationError("Invalid time of day", details={"scheduled_time": value})
    return time(hour, minute, second)


def session_window(
    scheduled_date: date, scheduled_time: str, duration: int, tz: ZoneInfo
) -> tuple[datetime, datetime]:
    """Return the UTC start and end of a session."""
    local_start = datetime.combine(
        scheduled_date, parse_scheduled_time(scheduled_time), tzinfo=tz
    )
    start = local_start.astimezone(UTC)
    return start, start + timedelta(hours=duration)


def response_window(lead_time: timedelta) -> timedelta:
    """Return how long the payee has to respond for a given lead time."""
    for max_lead, window in RESPONSE_WINDOWS:
        if lead_time <= max_lead:
            return window
    return DEFAULT_RESPONSE_WINDOW


def compute_expires_at(session_start: datetime, now: datetime) -> datetime:
    """Return the response deadline, fixed at creation time."""
    return now + response_window(session_start - now)


def is_overdue(booking: Booking, now: datetime) -> bool:
    """Return whether a pending booking has passed its response deadline."""
    if booking.status != BookingStatus.PENDING:
        return False
    if booking.expires_at is None:
        return booking.created_at + LEGACY_PENDING_TTL < now
    return booking.expires_at <= now
