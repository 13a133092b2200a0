"""Editing request lifecycle for completed bookings."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from lensbook.adapters.payment_gateway import PaymentGateway
from lensbook.domain.bookings import BookingStatus
from lensbook.domain.editing import (
    EditingRequest,
    EditingRequestDraft,
    EditingServiceConfig,
    EditingStatus,
    PricingModel,
)
from lensbook.domain.fees import FeeBreakdown
from lensbook.errors import (
    BookingNotFound,
    DuplicateRequest,
    EditingRequestNotFound,
    EditingUnavailable,
    ValidationError,
    WrongSourceState,
)
from lensbook.services.bookings import BookingService
from lensbook.services.earnings import EarningsService
from lensbook.services.events import EventFanout, editing_request_topic
from lensbook.services.fees import compute_fees, to_minor_units

_logger = logging.getLogger(__name__)

# Source statuses each payee-driven status update may start from.
_STATUS_UPDATE_SOURCES: dict[EditingStatus, frozenset[EditingStatus]] = {
    EditingStatus.ACCEPTED: frozenset({EditingStatus.REQUESTED}),
    EditingStatus.DECLINED: frozenset({EditingStatus.REQUESTED}),
    EditingStatus.IN_PROGRESS: frozenset({EditingStatus.ACCEPTED}),
}
_DELIVERABLE = frozenset(
    {
        EditingStatus.ACCEPTED,
        EditingStatus.IN_PROGRESS,
        EditingStatus.REVISION_REQUESTED,
    }
)
_DELIVERED = frozenset({EditingStatus.DELIVERED})
_ACCEPTABLE = _STATUS_UPDATE_SOURCES[EditingStatus.ACCEPTED]


class EditingRequestRepository(Protocol):
    """Persistence interface for editing requests."""

    def create(self, draft: EditingRequestDraft) -> EditingRequest:
        """Persist a request; raises DuplicateRequest if the booking has one."""

    def get_by_id(self, request_id: UUID) -> EditingRequest | None:
        """Return a request by id, if present."""

    def get_by_booking(self, booking_id: UUID) -> EditingRequest | None:
        """Return the request attached to a booking, if any."""

    def list_by_customer(self, customer_id: UUID) -> list[EditingRequest]:
        """Return a customer's requests, newest first."""

    def list_by_payee(self, payee_id: UUID) -> list[EditingRequest]:
        """Return a payee's requests, newest first."""

    def compare_and_set_status(
        self,
        request_id: UUID,
        expected: frozenset[EditingStatus],
        new: EditingStatus,
        changes: dict[str, object],
    ) -> EditingRequest | None:
        """Atomically apply ``changes`` if the status is one of ``expected``."""

    def delete(self, request_id: UUID) -> None:
        """Remove a request that never became visible to the payee."""


class EditingServiceRepository(Protocol):
    """Persistence interface for payee editing offers."""

    def get_config(self, payee_id: UUID) -> EditingServiceConfig | None:
        """Return a payee's editing configuration, if any."""

    def upsert_config(self, config: EditingServiceConfig) -> EditingServiceConfig:
        """Create or replace a payee's editing configuration."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class EditingRequestService:
    """Orchestrates editing requests from request through completion."""

    repository: EditingRequestRepository
    configs: EditingServiceRepository
    booking_service: BookingService
    earnings: EarningsService
    gateway: PaymentGateway
    events: EventFanout
    currency: str = "usd"
    clock: Callable[[], datetime] = _utcnow

    def configure(  # noqa: PLR0913
        self,
        payee_id: UUID,
        is_enabled: bool,
        pricing_model: PricingModel,
        flat_rate: Decimal | None = None,
        per_photo_rate: Decimal | None = None,
        turnaround_days: int | None = None,
    ) -> EditingServiceConfig:
        """Set up or change a payee's editing offer."""
        rate = flat_rate if pricing_model == PricingModel.FLAT else per_photo_rate
        if is_enabled and (rate is None or rate <= 0):
            raise ValidationError(
                f"A positive rate is required for {pricing_model} pricing"
            )
        return self.configs.upsert_config(
            EditingServiceConfig(
                payee_id=payee_id,
                is_enabled=is_enabled,
                pricing_model=pricing_model,
                flat_rate=flat_rate,
                per_photo_rate=per_photo_rate,
                turnaround_days=turnaround_days,
            )
        )

    def get_config(self, payee_id: UUID) -> EditingServiceConfig | None:
        """Return a payee's editing offer, if configured."""
        return self.configs.get_config(payee_id)

    async def create_request(  # noqa: PLR0913
        self,
        customer_id: UUID,
        booking_id: UUID,
        photo_count: int | None = None,
        notes: str | None = None,
        requested_photo_urls: list[str] | None = None,
        payee_id: UUID | None = None,
    ) -> EditingRequest:
        """Price and open an editing request for a completed booking."""
        booking = self.booking_service.get_booking(booking_id, customer_id).booking
        if booking.customer_id != customer_id:
            raise BookingNotFound(
                "Booking not found", details={"booking_id": str(booking_id)}
            )
        if payee_id is not None and payee_id != booking.payee_id:
            raise ValidationError("Photographer does not match the booking")
        if booking.status != BookingStatus.COMPLETED:
            raise WrongSourceState("booking", booking.status, "request editing for")
        if self.repository.get_by_booking(booking_id) is not None:
            raise DuplicateRequest(
                "An editing request already exists for this booking",
                details={"booking_id": str(booking_id)},
            )

        config = self.configs.get_config(booking.payee_id)
        if config is None or not config.is_enabled:
            raise EditingUnavailable(
                "Photographer does not offer editing",
                details={"payee_id": str(booking.payee_id)},
            )
        fees = _price(config, photo_count)

        reference = await self.gateway.authorize(
            to_minor_units(fees.total_amount),
            self.currency,
            {
                "kind": "editing_request",
                "booking_id": str(booking_id),
                "customer_id": str(customer_id),
            },
        )
        draft = EditingRequestDraft(
            booking_id=booking_id,
            customer_id=customer_id,
            payee_id=booking.payee_id,
            pricing_model=config.pricing_model,
            photo_count=photo_count,
            fees=fees,
            payment_reference=reference,
            requested_photo_urls=list(requested_photo_urls or []),
            customer_notes=notes,
        )
        try:
            request = self.repository.create(draft)
        except Exception:
            await self._release_payment(reference)
            raise
        try:
            self.earnings.create_for_editing_request(request)
        except Exception:
            _logger.exception("Earning create failed for editing request %s", request.id)
            self.repository.delete(request.id)
            await self._release_payment(reference)
            raise
        _logger.info(
            "Editing request %s created: total=%s", request.id, request.total_amount
        )
        await self._publish(request, "editing_request.created")
        return request

    async def update_status(
        self,
        request_id: UUID,
        payee_id: UUID,
        status: EditingStatus,
        notes: str | None = None,
    ) -> EditingRequest:
        """Accept, decline or start work on a request."""
        sources = _STATUS_UPDATE_SOURCES.get(status)
        if sources is None:
            raise ValidationError(
                "Status must be accepted, declined or in_progress",
                details={"status": str(status)},
            )
        request = self._get_for_party(request_id, payee_id, role="payee")
        now = self.clock()
        changes: dict[str, object] = {}
        if notes:
            changes["photographer_notes"] = notes
        if status == EditingStatus.ACCEPTED:
            changes["accepted_at"] = now
        elif status == EditingStatus.DECLINED:
            changes["declined_at"] = now

        if status == EditingStatus.ACCEPTED:
            updated = await self._capture_and_accept(request, changes)
        else:
            updated = self._transition(request, sources, status, changes)
        if status == EditingStatus.DECLINED:
            await self._release_payment(request.payment_reference)
            self.earnings.void(request_id)
        await self._publish(updated, f"editing_request.{status}")
        return updated

    async def deliver(
        self,
        request_id: UUID,
        payee_id: UUID,
        edited_photos: list[str],
        notes: str | None = None,
    ) -> EditingRequest:
        """Hand over edited photos, replacing any previous set."""
        photos = [url.strip() for url in edited_photos if url and url.strip()]
        if not photos:
            raise ValidationError("At least one edited photo is required")
        request = self._get_for_party(request_id, payee_id, role="payee")
        changes: dict[str, object] = {
            "edited_photos": photos,
            "delivered_at": self.clock(),
        }
        if notes:
            changes["photographer_notes"] = notes
        updated = self._transition(
            request, _DELIVERABLE, EditingStatus.DELIVERED, changes
        )
        await self._publish(updated, "editing_request.delivered")
        return updated

    async def complete(self, request_id: UUID, customer_id: UUID) -> EditingRequest:
        """Confirm delivered edits and release the payee's earning."""
        request = self._get_for_party(request_id, customer_id, role="customer")
        updated = self._transition(
            request,
            _DELIVERED,
            EditingStatus.COMPLETED,
            {"completed_at": self.clock()},
        )
        self.earnings.release(request_id)
        await self._publish(updated, "editing_request.completed")
        return updated

    async def request_revision(
        self, request_id: UUID, customer_id: UUID, revision_notes: str
    ) -> EditingRequest:
        """Send delivered edits back with notes for another pass."""
        if not revision_notes or not revision_notes.strip():
            raise ValidationError("Revision notes are required")
        request = self._get_for_party(request_id, customer_id, role="customer")
        updated = self._transition(
            request,
            _DELIVERED,
            EditingStatus.REVISION_REQUESTED,
            {
                "revision_notes": revision_notes.strip(),
                "revision_count": request.revision_count + 1,
            },
        )
        await self._publish(updated, "editing_request.revision_requested")
        return updated

    def get_request(self, request_id: UUID, actor_id: UUID) -> EditingRequest:
        """Return a request visible to one of its parties."""
        return self._get_for_party(request_id, actor_id)

    def get_for_booking(
        self, booking_id: UUID, actor_id: UUID
    ) -> EditingRequest | None:
        """Return the request attached to a booking the actor is party to."""
        self.booking_service.get_booking(booking_id, actor_id)
        return self.repository.get_by_booking(booking_id)

    def list_for_customer(self, customer_id: UUID) -> list[EditingRequest]:
        """Return a customer's editing requests."""
        return self.repository.list_by_customer(customer_id)

    def list_for_payee(self, payee_id: UUID) -> list[EditingRequest]:
        """Return a payee's editing requests."""
        return self.repository.list_by_payee(payee_id)

    def _get_for_party(
        self, request_id: UUID, actor_id: UUID, role: str | None = None
    ) -> EditingRequest:
        request = self.repository.get_by_id(request_id)
        if request is None:
            allowed = False
        elif role == "payee":
            allowed = request.payee_id == actor_id
        elif role == "customer":
            allowed = request.customer_id == actor_id
        else:
            allowed = request.is_party(actor_id)
        if not allowed:
            raise EditingRequestNotFound(
                "Editing request not found", details={"request_id": str(request_id)}
            )
        return request

    def _transition(
        self,
        request: EditingRequest,
        expected: frozenset[EditingStatus],
        new: EditingStatus,
        changes: dict[str, object],
    ) -> EditingRequest:
        action = new.replace("_", " ")
        if request.status not in expected:
            raise WrongSourceState("editing request", request.status, f"mark {action}")
        updated = self.repository.compare_and_set_status(
            request.id, expected, new, changes
        )
        if updated is None:
            current = self.repository.get_by_id(request.id)
            raise WrongSourceState(
                "editing request",
                current.status if current else "unknown",
                f"mark {action}",
            )
        _logger.info("Editing request %s is now %s", request.id, new)
        return updated

    async def _capture_and_accept(
        self, request: EditingRequest, changes: dict[str, object]
    ) -> EditingRequest:
        """Capture while still requested, then claim the accepted status."""
        reference = request.payment_reference
        if reference:
            try:
                await self.gateway.capture(reference)
            except Exception:
                _logger.warning(
                    "Capture failed for editing request %s; still requested",
                    request.id,
                )
                raise
        try:
            return self._transition(
                request, _ACCEPTABLE, EditingStatus.ACCEPTED, changes
            )
        except WrongSourceState:
            current = self.repository.get_by_id(request.id)
            if reference and (
                current is None or current.status == EditingStatus.DECLINED
            ):
                _logger.warning(
                    "Editing request %s declined during capture; refunding %s",
                    request.id,
                    reference,
                )
                await self._release_payment(reference, refund=True)
            raise

    async def _release_payment(
        self, reference: str | None, refund: bool = False
    ) -> None:
        if not reference:
            return
        try:
            if refund:
                await self.gateway.refund(reference)
            else:
                await self.gateway.cancel(reference)
        except Exception as exc:  # noqa: BLE001
            _logger.warning(
                "Payment release failed for %s (refund=%s): %s", reference, refund, exc
            )

    async def _publish(self, request: EditingRequest, event: str) -> None:
        await self.events.publish(
            editing_request_topic(request.id),
            event,
            {
                "request_id": str(request.id),
                "booking_id": str(request.booking_id),
                "customer_id": str(request.customer_id),
                "payee_id": str(request.payee_id),
                "status": str(request.status),
                "revision_count": request.revision_count,
            },
        )


def _price(config: EditingServiceConfig, photo_count: int | None) -> FeeBreakdown:
    """Price a request from the payee's configured model."""
    if config.pricing_model == PricingModel.PER_PHOTO:
        if photo_count is None:
            raise ValidationError("Photo count is required for per-photo pricing")
        if config.per_photo_rate is None:
            raise EditingUnavailable("Photographer has no per-photo rate")
        return compute_fees(config.per_photo_rate, photo_count)
    if photo_count is not None and photo_count <= 0:
        raise ValidationError("Photo count must be positive")
    if config.flat_rate is None:
        raise EditingUnavailable("Photographer has no flat rate")
    return compute_fees(config.flat_rate, 1)
