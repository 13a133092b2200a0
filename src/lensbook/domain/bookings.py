"""Domain models for photography bookings."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from uuid import UUID

from lensbook.domain.fees import FeeBreakdown


class BookingStatus(StrEnum):
    """Authoritative booking status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    COMPLETED = "completed"


TERMINAL_STATUSES = frozenset(
    {
        BookingStatus.DECLINED,
        BookingStatus.CANCELLED,
        BookingStatus.EXPIRED,
        BookingStatus.COMPLETED,
    }
)

# Every legal transition of the booking state machine.
ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {
            BookingStatus.CONFIRMED,
            BookingStatus.DECLINED,
            BookingStatus.CANCELLED,
            BookingStatus.EXPIRED,
        }
    ),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.COMPLETED, BookingStatus.CANCELLED}
    ),
    BookingStatus.DECLINED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.EXPIRED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


class SessionPhase(StrEnum):
    """Read-time projection of where a session sits in time."""

    UPCOMING = "upcoming"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class BookingRequest:
    """Customer-supplied booking details; carries no money fields."""

    payee_id: UUID
    duration: int
    location: str
    scheduled_date: date
    scheduled_time: str


@dataclass(frozen=True)
class BookingDraft:
    """A booking ready to persist, with server-derived amounts."""

    customer_id: UUID
    payee_id: UUID
    duration: int
    location: str
    scheduled_date: date
    scheduled_time: str
    fees: FeeBreakdown
    payment_reference: str | None
    expires_at: datetime


@dataclass(frozen=True)
class Booking:
    """Represents a persisted photography session booking."""

    id: UUID
    customer_id: UUID
    payee_id: UUID
    duration: int
    location: str
    scheduled_date: date
    scheduled_time: str
    base_amount: Decimal
    customer_service_fee: Decimal
    total_amount: Decimal
    platform_fee: Decimal
    payee_earnings: Decimal
    payment_reference: str | None
    status: BookingStatus
    expires_at: datetime | None
    created_at: datetime
    dismissed_at: datetime | None = None

    def is_party(self, user_id: UUID) -> bool:
        """Return whether the user is the customer or payee of this booking."""
        return user_id in (self.customer_id, self.payee_id)


@dataclass(frozen=True)
class BookingView:
    """Booking paired with its derived session phase."""

    booking: Booking
    session_phase: SessionPhase
