"""Booking lifecycle state machine with linked payment holds."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID
from zoneinfo import ZoneInfo

from lensbook.adapters.payment_gateway import PaymentGateway
from lensbook.domain.bookings import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    Booking,
    BookingDraft,
    BookingRequest,
    BookingStatus,
    BookingView,
    SessionPhase,
)
from lensbook.domain.payees import PayeeRate
from lensbook.errors import (
    BookingNotFound,
    CancelNotPermitted,
    PayeeNotFound,
    PayeeUnavailable,
    PaymentCaptureFailed,
    ValidationError,
    WrongSourceState,
)
from lensbook.services.earnings import EarningsService
from lensbook.services.events import EventFanout, booking_topic
from lensbook.services.expiration import compute_expires_at, is_overdue, session_window
from lensbook.services.fees import compute_fees, to_minor_units

_logger = logging.getLogger(__name__)

MAX_DURATION_HOURS = 24

# Statuses reachable only through a winning accept.
_ACCEPTED_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.COMPLETED})


class BookingStore(Protocol):
    """Persistence interface for bookings."""

    def create(self, draft: BookingDraft) -> Booking:
        """Persist a pending booking and return it."""

    def get_by_id(self, booking_id: UUID) -> Booking | None:
        """Return a booking by id, if present."""

    def list_by_customer(self, customer_id: UUID) -> list[Booking]:
        """Return a customer's bookings, newest first."""

    def list_by_payee(self, payee_id: UUID) -> list[Booking]:
        """Return a payee's bookings, newest first."""

    def list_overdue_pending(
        self,
        now: datetime,
        customer_id: UUID | None = None,
        payee_id: UUID | None = None,
    ) -> list[Booking]:
        """Return pending bookings past their deadline within a scope."""

    def compare_and_set_status(
        self, booking_id: UUID, expected: BookingStatus, new: BookingStatus
    ) -> Booking | None:
        """Atomically set the status only if it still equals ``expected``."""

    def set_dismissed(self, booking_id: UUID, dismissed_at: datetime) -> Booking | None:
        """Stamp ``dismissed_at`` on a booking."""


class RateLookup(Protocol):
    """Read access to photographer profiles."""

    def get_payee_rate(self, payee_id: UUID) -> PayeeRate | None:
        """Return the current rate and availability for a payee."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def session_phase(booking: Booking, now: datetime, tz: ZoneInfo) -> SessionPhase:
    """Project a booking onto upcoming / in progress / completed."""
    if booking.status == BookingStatus.PENDING:
        return SessionPhase.UPCOMING
    if booking.status != BookingStatus.CONFIRMED:
        return SessionPhase.COMPLETED
    start, end = session_window(
        booking.scheduled_date, booking.scheduled_time, booking.duration, tz
    )
    if now < start:
        return SessionPhase.UPCOMING
    if now < end:
        return SessionPhase.IN_PROGRESS
    return SessionPhase.COMPLETED


@dataclass
class BookingService:
    """Orchestrates booking creation and every status transition."""

    store: BookingStore
    rates: RateLookup
    gateway: PaymentGateway
    earnings: EarningsService
    events: EventFanout
    currency: str = "usd"
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo("UTC"))
    customer_can_cancel_confirmed: bool = False
    clock: Callable[[], datetime] = _utcnow

    async def create_booking(
        self, customer_id: UUID, request: BookingRequest
    ) -> Booking:
        """Price, authorize and persist a new pending booking."""
        _validate_request(customer_id, request)
        rate = self.rates.get_payee_rate(request.payee_id)
        if rate is None:
            raise PayeeNotFound(
                "Photographer not found", details={"payee_id": str(request.payee_id)}
            )
        if not rate.is_available:
            raise PayeeUnavailable(
                "Photographer is not accepting bookings",
                details={"payee_id": str(request.payee_id)},
            )

        fees = compute_fees(rate.hourly_rate, request.duration)
        now = self.clock()
        start, _ = session_window(
            request.scheduled_date,
            request.scheduled_time,
            request.duration,
            self.timezone,
        )
        if start <= now:
            raise ValidationError(
                "Session must start in the future",
                details={"session_start": start.isoformat()},
            )

        reference = await self.gateway.authorize(
            to_minor_units(fees.total_amount),
            self.currency,
            {
                "kind": "booking",
                "customer_id": str(customer_id),
                "payee_id": str(request.payee_id),
            },
        )
        draft = BookingDraft(
            customer_id=customer_id,
            payee_id=request.payee_id,
            duration=request.duration,
            location=request.location.strip(),
            scheduled_date=request.scheduled_date,
            scheduled_time=request.scheduled_time.strip(),
            fees=fees,
            payment_reference=reference,
            expires_at=compute_expires_at(start, now),
        )
        try:
            booking = self.store.create(draft)
        except Exception:
            _logger.exception("Booking persist failed; releasing hold %s", reference)
            await self._release_payment(reference, refund=False)
            raise
        try:
            self.earnings.create_for_booking(booking)
        except Exception:
            _logger.exception("Earning create failed for booking %s", booking.id)
            self.store.compare_and_set_status(
                booking.id, BookingStatus.PENDING, BookingStatus.CANCELLED
            )
            await self._release_payment(reference, refund=False)
            raise

        _logger.info(
            "Booking %s created: total=%s expires_at=%s",
            booking.id,
            booking.total_amount,
            booking.expires_at,
        )
        await self._publish(booking, "booking.created")
        return booking

    async def accept(self, booking_id: UUID, payee_id: UUID) -> Booking:
        """Capture a pending booking's hold, then confirm it."""
        booking = self._get_for_party(booking_id, payee_id, payee_only=True)
        await self._expire_if_overdue(booking, action="accept")
        if booking.status != BookingStatus.PENDING:
            raise WrongSourceState("booking", booking.status, "accept")
        if not booking.payment_reference:
            raise PaymentCaptureFailed(
                "Booking has no payment hold to capture",
                code="capture_failed",
                details={"booking_id": str(booking_id)},
            )

        # The booking stays pending until the money has moved.
        try:
            await self.gateway.capture(booking.payment_reference)
        except Exception:
            _logger.warning("Capture failed for booking %s; still pending", booking_id)
            raise
        try:
            confirmed = self._transition(booking, BookingStatus.CONFIRMED, "accept")
        except WrongSourceState:
            current = self.store.get_by_id(booking_id)
            if current is None or current.status not in _ACCEPTED_STATUSES:
                _logger.warning(
                    "Booking %s left pending during capture; refunding %s",
                    booking_id,
                    booking.payment_reference,
                )
                await self._release_payment(booking.payment_reference, refund=True)
            raise

        _logger.info("Booking %s confirmed", booking_id)
        await self._publish(confirmed, "booking.confirmed")
        return confirmed

    async def decline(self, booking_id: UUID, payee_id: UUID) -> Booking:
        """Decline a pending booking and release its hold."""
        booking = self._get_for_party(booking_id, payee_id, payee_only=True)
        await self._expire_if_overdue(booking, action="decline")
        if booking.status != BookingStatus.PENDING:
            raise WrongSourceState("booking", booking.status, "decline")

        declined = self._transition(booking, BookingStatus.DECLINED, "decline")
        await self._release_payment(booking.payment_reference, refund=False)
        self.earnings.void(booking_id)
        _logger.info("Booking %s declined", booking_id)
        await self._publish(declined, "booking.declined")
        return declined

    async def cancel(self, booking_id: UUID, actor_id: UUID) -> Booking:
        """Cancel a pending or confirmed booking per the cancel policy."""
        booking = self._get_for_party(booking_id, actor_id)
        if booking.status == BookingStatus.PENDING:
            await self._expire_if_overdue(booking, action="cancel")
        if booking.status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
            raise WrongSourceState("booking", booking.status, "cancel")
        if (
            booking.status == BookingStatus.CONFIRMED
            and actor_id == booking.customer_id
            and not self.customer_can_cancel_confirmed
        ):
            raise CancelNotPermitted(
                "Confirmed bookings can only be cancelled by the photographer",
                details={"booking_id": str(booking_id)},
            )

        was_captured = booking.status == BookingStatus.CONFIRMED
        cancelled = self._transition(booking, BookingStatus.CANCELLED, "cancel")
        await self._release_payment(booking.payment_reference, refund=was_captured)
        self.earnings.void(booking_id)
        _logger.info("Booking %s cancelled by %s", booking_id, actor_id)
        await self._publish(cancelled, "booking.cancelled")
        return cancelled

    async def dismiss(self, booking_id: UUID, actor_id: UUID) -> Booking:
        """Hide a terminal booking from list views."""
        booking = self._get_for_party(booking_id, actor_id)
        if booking.status not in TERMINAL_STATUSES:
            raise WrongSourceState("booking", booking.status, "dismiss")
        dismissed = self.store.set_dismissed(booking_id, self.clock())
        if dismissed is None:
            raise BookingNotFound(
                "Booking not found", details={"booking_id": str(booking_id)}
            )
        return dismissed

    async def mark_completed(self, booking_id: UUID) -> bool:
        """Move a confirmed booking to completed; True only for the mover."""
        completed = self.store.compare_and_set_status(
            booking_id, BookingStatus.CONFIRMED, BookingStatus.COMPLETED
        )
        if completed is None:
            return False
        _logger.info("Booking %s completed", booking_id)
        await self._publish(completed, "booking.completed")
        return True

    async def expire_stale(
        self, customer_id: UUID | None = None, payee_id: UUID | None = None
    ) -> list[Booking]:
        """Expire overdue pending bookings in scope and release their holds."""
        now = self.clock()
        expired: list[Booking] = []
        for booking in self.store.list_overdue_pending(
            now, customer_id=customer_id, payee_id=payee_id
        ):
            if not is_overdue(booking, now):
                continue
            result = await self._expire(booking)
            if result is not None:
                expired.append(result)
        if expired:
            _logger.info("Expiration sweep expired %s booking(s)", len(expired))
        return expired

    async def list_for_customer(self, customer_id: UUID) -> list[BookingView]:
        """Sweep then return the customer's visible bookings."""
        await self.expire_stale(customer_id=customer_id)
        return self._views(self.store.list_by_customer(customer_id))

    async def list_for_payee(self, payee_id: UUID) -> list[BookingView]:
        """Sweep then return the payee's visible bookings."""
        await self.expire_stale(payee_id=payee_id)
        return self._views(self.store.list_by_payee(payee_id))

    def get_booking(self, booking_id: UUID, actor_id: UUID) -> BookingView:
        """Return a booking visible to one of its parties."""
        booking = self._get_for_party(booking_id, actor_id)
        return BookingView(
            booking=booking,
            session_phase=session_phase(booking, self.clock(), self.timezone),
        )

    def _views(self, bookings: list[Booking]) -> list[BookingView]:
        now = self.clock()
        return [
            BookingView(
                booking=booking,
                session_phase=session_phase(booking, now, self.timezone),
            )
            for booking in bookings
            if booking.dismissed_at is None
        ]

    def _get_for_party(
        self, booking_id: UUID, actor_id: UUID, payee_only: bool = False
    ) -> Booking:
        booking = self.store.get_by_id(booking_id)
        allowed = booking is not None and (
            booking.payee_id == actor_id if payee_only else booking.is_party(actor_id)
        )
        if not allowed:
            raise BookingNotFound(
                "Booking not found", details={"booking_id": str(booking_id)}
            )
        return booking

    def _transition(
        self, booking: Booking, new: BookingStatus, action: str
    ) -> Booking:
        if new not in ALLOWED_TRANSITIONS[booking.status]:
            raise WrongSourceState("booking", booking.status, action)
        updated = self.store.compare_and_set_status(booking.id, booking.status, new)
        if updated is None:
            current = self.store.get_by_id(booking.id)
            raise WrongSourceState(
                "booking", current.status if current else "unknown", action
            )
        return updated

    async def _expire_if_overdue(self, booking: Booking, action: str) -> None:
        if is_overdue(booking, self.clock()):
            await self._expire(booking)
            raise WrongSourceState("booking", BookingStatus.EXPIRED, action)

    async def _expire(self, booking: Booking) -> Booking | None:
        expired = self.store.compare_and_set_status(
            booking.id, BookingStatus.PENDING, BookingStatus.EXPIRED
        )
        if expired is None:
            return None
        await self._release_payment(booking.payment_reference, refund=False)
        self.earnings.void(booking.id)
        _logger.info("Booking %s expired", booking.id)
        await self._publish(expired, "booking.expired")
        return expired

    async def _release_payment(self, reference: str | None, refund: bool) -> None:
        """Best-effort release of a hold or refund of a capture."""
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

    async def _publish(self, booking: Booking, event: str) -> None:
        await self.events.publish(
            booking_topic(booking.id),
            event,
            {
                "booking_id": str(booking.id),
                "customer_id": str(booking.customer_id),
                "payee_id": str(booking.payee_id),
                "status": str(booking.status),
            },
        )


def _validate_request(customer_id: UUID, request: BookingRequest) -> None:
    if request.payee_id == customer_id:
        raise ValidationError("Customers cannot book themselves")
    if (
        isinstance(request.duration, bool)
        or not isinstance(request.duration, int)
        or not 1 <= request.duration <= MAX_DURATION_HOURS
    ):
        raise ValidationError(
            f"Duration must be between 1 and {MAX_DURATION_HOURS} hours",
            details={"duration": request.duration},
        )
    if not request.location or not request.location.strip():
        raise ValidationError("Location is required")
    if not request.scheduled_time or not request.scheduled_time.strip():
        raise ValidationError("Scheduled time is required")
