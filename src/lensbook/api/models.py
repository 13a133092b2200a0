"""Pydantic request and response models for the HTTP API."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from lensbook.domain.bookings import (
    BookingRequest,
    BookingStatus,
    BookingView,
    SessionPhase,
)
from lensbook.domain.checkout import CheckoutToken
from lensbook.domain.deliveries import PhotoDelivery
from lensbook.domain.earnings import Earning, EarningSource, EarningStatus
from lensbook.domain.editing import (
    EditingRequest,
    EditingServiceConfig,
    EditingStatus,
    PricingModel,
)


class RequestModel(BaseModel):
    """Base for request bodies; unknown fields, money included, are rejected."""

    model_config = ConfigDict(extra="forbid")


class BookingCreate(RequestModel):
    """Booking request from a customer."""

    payee_id: UUID
    duration: int = Field(ge=1, le=24)
    location: str = Field(min_length=1)
    scheduled_date: date
    scheduled_time: str = Field(min_length=1)

    def to_domain(self) -> BookingRequest:
        return BookingRequest(
            payee_id=self.payee_id,
            duration=self.duration,
            location=self.location,
            scheduled_date=self.scheduled_date,
            scheduled_time=self.scheduled_time,
        )


class DeliveryCreate(RequestModel):
    photos: list[str] = Field(min_length=1)
    message: str | None = None


class EditingServiceUpdate(RequestModel):
    """Payee editing offer."""

    is_enabled: bool
    pricing_model: PricingModel
    flat_rate: Decimal | None = None
    per_photo_rate: Decimal | None = None
    turnaround_days: int | None = Field(default=None, ge=1)


class EditingRequestCreate(RequestModel):
    """Editing request from a customer for a completed booking."""

    booking_id: UUID
    payee_id: UUID | None = None
    photo_count: int | None = None
    notes: str | None = None
    requested_photo_urls: list[str] = Field(default_factory=list)


class EditingStatusUpdate(RequestModel):
    status: EditingStatus
    notes: str | None = None


class EditingDelivery(RequestModel):
    edited_photos: list[str] = Field(min_length=1)
    notes: str | None = None


class RevisionRequest(RequestModel):
    revision_notes: str = Field(min_length=1)


class BookingOut(BaseModel):
    """Booking as returned to either party."""

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
    status: BookingStatus
    session_phase: SessionPhase
    expires_at: datetime | None
    created_at: datetime
    dismissed_at: datetime | None

    @classmethod
    def from_view(cls, view: BookingView) -> "BookingOut":
        """Build the response from a booking and its session phase."""
        booking = view.booking
        return cls(
            id=booking.id,
            customer_id=booking.customer_id,
            payee_id=booking.payee_id,
            duration=booking.duration,
            location=booking.location,
            scheduled_date=booking.scheduled_date,
            scheduled_time=booking.scheduled_time,
            base_amount=booking.base_amount,
            customer_service_fee=booking.customer_service_fee,
            total_amount=booking.total_amount,
            platform_fee=booking.platform_fee,
            payee_earnings=booking.payee_earnings,
            status=booking.status,
            session_phase=view.session_phase,
            expires_at=booking.expires_at,
            created_at=booking.created_at,
            dismissed_at=booking.dismissed_at,
        )


class DeliveryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID
    payee_id: UUID
    photos: list[str]
    message: str | None
    delivered_at: datetime

    @classmethod
    def from_domain(cls, delivery: PhotoDelivery) -> "DeliveryOut":
        return cls.model_validate(delivery)


class EarningOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payee_id: UUID
    source_type: EarningSource
    source_id: UUID
    gross_amount: Decimal
    platform_fee: Decimal
    net_amount: Decimal
    status: EarningStatus
    created_at: datetime
    released_at: datetime | None
    paid_at: datetime | None

    @classmethod
    def from_domain(cls, earning: Earning) -> "EarningOut":
        return cls.model_validate(earning)


class EditingServiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payee_id: UUID
    is_enabled: bool
    pricing_model: PricingModel
    flat_rate: Decimal | None
    per_photo_rate: Decimal | None
    turnaround_days: int | None

    @classmethod
    def from_domain(cls, config: EditingServiceConfig) -> "EditingServiceOut":
        return cls.model_validate(config)


class EditingRequestOut(BaseModel):
    """Editing request as returned to either party."""

    model_config = ConfigDict(from_attributes=True)

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
    requested_photo_urls: list[str]
    edited_photos: list[str]
    customer_notes: str | None
    photographer_notes: str | None
    revision_notes: str | None
    revision_count: int
    requested_at: datetime
    accepted_at: datetime | None
    declined_at: datetime | None
    delivered_at: datetime | None
    completed_at: datetime | None

    @classmethod
    def from_domain(cls, request: EditingRequest) -> "EditingRequestOut":
        return cls.model_validate(request)


class CheckoutSessionOut(BaseModel):
    token: str
    expires_at: datetime

    @classmethod
    def from_domain(cls, token: CheckoutToken) -> "CheckoutSessionOut":
        return cls(token=token.token, expires_at=token.expires_at)
