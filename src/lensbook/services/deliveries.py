"""Photo delivery handling and the completion trigger it drives."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from lensbook.domain.bookings import BookingStatus
from lensbook.domain.deliveries import PhotoDelivery
from lensbook.errors import BookingNotFound, ValidationError, WrongSourceState
from lensbook.services.bookings import BookingService
from lensbook.services.earnings import EarningsService

_logger = logging.getLogger(__name__)


class DeliveryRepository(Protocol):
    """Persistence interface for photo deliveries."""

    def create_delivery(
        self,
        booking_id: UUID,
        payee_id: UUID,
        photos: list[str],
        message: str | None,
    ) -> PhotoDelivery:
        """Store a delivery batch and return it."""

    def list_by_booking(self, booking_id: UUID) -> list[PhotoDelivery]:
        """Return deliveries for a booking, oldest first."""


@dataclass
class DeliveryService:
    """Records uploads and completes bookings on first delivery."""

    repository: DeliveryRepository
    booking_service: BookingService
    earnings_service: EarningsService

    async def record_delivery(
        self,
        booking_id: UUID,
        payee_id: UUID,
        photo_urls: list[str],
        message: str | None = None,
    ) -> PhotoDelivery:
        """Store delivered photos; the first delivery completes the booking."""
        photos = [url.strip() for url in photo_urls if url and url.strip()]
        if not photos:
            raise ValidationError("At least one photo is required")
        view = self.booking_service.get_booking(booking_id, payee_id)
        booking = view.booking
        if booking.payee_id != payee_id:
            raise BookingNotFound(
                "Booking not found", details={"booking_id": str(booking_id)}
            )
        if booking.status not in (BookingStatus.CONFIRMED, BookingStatus.COMPLETED):
            raise WrongSourceState("booking", booking.status, "deliver photos for")

        delivery = self.repository.create_delivery(
            booking_id=booking_id,
            payee_id=payee_id,
            photos=photos,
            message=message,
        )
        await self.booking_service.mark_completed(booking_id)
        # Idempotent; a later delivery retries a failed release.
        self.earnings_service.release(booking_id)
        _logger.info("Delivered %s photo(s) for booking %s", len(photos), booking_id)
        return delivery

    def list_deliveries(self, booking_id: UUID, actor_id: UUID) -> list[PhotoDelivery]:
        """Return deliveries visible to a party of the booking."""
        self.booking_service.get_booking(booking_id, actor_id)
        return self.repository.list_by_booking(booking_id)
