"""Single-use, TTL-bound tokens for handing a checkout to the web."""

import logging
import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Protocol
from uuid import UUID

from lensbook.domain.bookings import Booking, BookingRequest
from lensbook.domain.checkout import CheckoutToken
from lensbook.errors import CheckoutTokenInvalid, PaymentAuthorizationFailed
from lensbook.services.bookings import BookingService

_logger = logging.getLogger(__name__)


class TokenStore(Protocol):
    """Keyed store whose entries expire and can be taken once."""

    def put(self, token: str, payload: dict[str, object], expires_at: datetime) -> None:
        """Store a payload under a token until ``expires_at``."""

    def get(self, token: str, now: datetime) -> dict[str, object] | None:
        """Return a live payload without consuming it."""

    def take(self, token: str, now: datetime) -> dict[str, object] | None:
        """Atomically remove and return a live payload."""

    def purge_expired(self, now: datetime) -> int:
        """Delete expired entries and return how many were removed."""


@dataclass
class _TokenEntry:
    payload: dict[str, object]
    expires_at: datetime


@dataclass
class InMemoryTokenStore(TokenStore):
    """Process-local token store for development and tests."""

    _entries: dict[str, _TokenEntry] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def put(self, token: str, payload: dict[str, object], expires_at: datetime) -> None:
        """Store a payload with an expiry."""
        with self._lock:
            self._entries[token] = _TokenEntry(payload=payload, expires_at=expires_at)

    def get(self, token: str, now: datetime) -> dict[str, object] | None:
        """Return a payload if it hasn't expired."""
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return None
            if now >= entry.expires_at:
                self._entries.pop(token, None)
                return None
            return entry.payload

    def take(self, token: str, now: datetime) -> dict[str, object] | None:
        """Remove a payload and return it if it hasn't expired."""
        with self._lock:
            entry = self._entries.pop(token, None)
        if entry is None or now >= entry.expires_at:
            return None
        return entry.payload

    def purge_expired(self, now: datetime) -> int:
        """Drop every expired entry."""
        with self._lock:
            expired = [key for key, e in self._entries.items() if now >= e.expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CheckoutTokenService:
    """Issues and redeems checkout handoff tokens."""

    store: TokenStore
    booking_service: BookingService
    ttl_seconds: int = 900
    clock: Callable[[], datetime] = _utcnow

    def issue(self, customer_id: UUID, request: BookingRequest) -> CheckoutToken:
        """Stash a booking request behind a fresh opaque token."""
        token = secrets.token_urlsafe(32)
        expires_at = self.clock() + timedelta(seconds=self.ttl_seconds)
        payload = _encode(customer_id, request)
        payload["expires_at"] = expires_at.isoformat()
        self.store.put(token, payload, expires_at)
        return CheckoutToken(
            token=token, customer_id=customer_id, expires_at=expires_at
        )

    def inspect(self, token: str) -> tuple[UUID, BookingRequest]:
        """Return the stashed request without redeeming the token."""
        payload = self.store.get(token, self.clock())
        if payload is None:
            raise CheckoutTokenInvalid("Checkout session expired or not found")
        return _decode(payload)

    def redeem(self, token: str) -> tuple[UUID, BookingRequest]:
        """Consume a token; a second redeem always fails."""
        return _decode(self._take(token))

    async def complete_checkout(self, token: str) -> Booking:
        """Redeem a token and create the booking it carries.

        A declined authorization puts the token back for the rest of its TTL
        so the customer can retry with another card.
        """
        payload = self._take(token)
        customer_id, request = _decode(payload)
        try:
            return await self.booking_service.create_booking(customer_id, request)
        except PaymentAuthorizationFailed:
            self._restore(token, payload)
            raise

    def purge_expired(self) -> int:
        """Remove expired tokens from the store."""
        removed = self.store.purge_expired(self.clock())
        if removed:
            _logger.info("Purged %s expired checkout token(s)", removed)
        return removed

    def _take(self, token: str) -> dict[str, object]:
        payload = self.store.take(token, self.clock())
        if payload is None:
            raise CheckoutTokenInvalid("Checkout session expired or not found")
        return payload

    def _restore(self, token: str, payload: dict[str, object]) -> None:
        raw = payload.get("expires_at")
        if not raw:
            return
        expires_at = datetime.fromisoformat(str(raw))
        if expires_at > self.clock():
            self.store.put(token, payload, expires_at)
            _logger.info("Checkout token restored after declined authorization")


def _encode(customer_id: UUID, request: BookingRequest) -> dict[str, object]:
    return {
        "customer_id": str(customer_id),
        "payee_id": str(request.payee_id),
        "duration": request.duration,
        "location": request.location,
        "scheduled_date": request.scheduled_date.isoformat(),
        "scheduled_time": request.scheduled_time,
    }


def _decode(payload: dict[str, object]) -> tuple[UUID, BookingRequest]:
    request = BookingRequest(
        payee_id=UUID(str(payload["payee_id"])),
        duration=int(payload["duration"]),  # type: ignore[arg-type]
        location=str(payload["location"]),
        scheduled_date=date.fromisoformat(str(payload["scheduled_date"])),
        scheduled_time=str(payload["scheduled_time"]),
    )
    return UUID(str(payload["customer_id"])), request
