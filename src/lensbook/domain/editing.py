"""Domain models for post-delivery editing requests."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from uuid import UUID

from lensbook.domain.fees import FeeBreakdown


class EditingStatus(StrEnum):
    """Status of an editing request."""

    REQUESTED = "requested"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    IN_PROGRESS = "in_progress"
    DELIVERED = "delivered"
    REVISION_REQUESTED = "revision_requested"
    COMPLETED = "completed"


class PricingModel(StrEnum):
    """How a payee prices editing work."""

    FLAT = "flat"
    PER_PHOTO = "per_photo"


@dataclass(frozen=True)
class EditingServiceConfig:
    """A payee's editing offer."""

    payee_id: UUID
    is_enabled: bool
    pricing_model: PricingModel
    flat_rate: Decimal | None = None
    per_photo_rate: Decimal | None = None
    turnaround_days: int | None = None


@dataclass(frozen=True)
class EditingRequest:
    """Represents a persisted editing request."""

    id: UUID
    booking_id: UUID
    customer_id: UUID
    payee_id: UUID
    pricing_model: PricingModel
    photo_count: int | None
    base_amount: Decimal
    customer_service_fee: Decimal
    total_amount: Decimal
    platform_fee: Decimal
    payee_earnings: Decimal
    status: EditingStatus
    requested_at: datetime
    payment_reference: str | None = None
    requested_photo_urls: list[str] = field(default_factory=list)
    edited_photos: list[str] = field(default_factory=list)
    customer_notes: str | None = None
    photographer_notes: str | None = None
    revision_notes: str | None = None
    revision_count: int = 0
    accepted_at: datetime | None = None
    declined_at: datetime | None = None
    delivered_at: datetime | None = None
    completed_at: datetime | None = None

    def is_party(self, user_id: UUID) -> bool:
        """Return whether the user is the customer or payee of this request."""
        return user_id in (self.customer_id, self.payee_id)


@dataclass(frozen=True)
class EditingRequestDraft:
    """An editing request ready to persist, with server-derived amounts."""

    booking_id: UUID
    customer_id: UUID
    payee_id: UUID
    pricing_model: PricingModel
    photo_count: int | None
    fees: FeeBreakdown
    payment_reference: str | None
    requested_photo_urls: list[str]
    customer_notes: str | None
