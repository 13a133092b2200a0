"""Stripe payment gateway adapter for authorize/capture/cancel holds."""

import logging
from dataclasses import dataclass
from types import ModuleType
from typing import Protocol
from uuid import uuid4

import stripe

from lensbook.errors import (
    PaymentAuthorizationFailed,
    PaymentCaptureExpired,
    PaymentCaptureFailed,
    PaymentError,
)

_logger = logging.getLogger(__name__)

_EXPIRED_CODES = {"charge_expired_for_capture"}
_RESOLVED_CODES = {"payment_intent_unexpected_state", "charge_already_refunded"}
_RESOLVED_STATUSES = {"canceled", "succeeded"}


class PaymentGateway(Protocol):
    """Interface for a card-hold payment provider."""

    async def authorize(
        self, amount_minor_units: int, currency: str, metadata: dict[str, str]
    ) -> str:
        """Place a hold and return its opaque reference."""

    async def capture(self, reference: str) -> None:
        """Capture a held payment."""

    async def cancel(self, reference: str) -> None:
        """Release a hold; must not fail when it is already resolved."""

    async def refund(self, reference: str) -> None:
        """Refund a captured payment; must not fail when already refunded."""


@dataclass
class StripePaymentGateway(PaymentGateway):
    """Gateway backed by manual-capture Stripe payment intents."""

    api_key: str
    sdk: ModuleType = stripe

    async def authorize(
        self, amount_minor_units: int, currency: str, metadata: dict[str, str]
    ) -> str:
        """Create a manual-capture payment intent for the amount."""
        try:
            intent = await self.sdk.PaymentIntent.create_async(
                api_key=self.api_key,
                amount=amount_minor_units,
                currency=currency,
                capture_method="manual",
                metadata=metadata,
            )
        except stripe.StripeError as exc:
            raise PaymentAuthorizationFailed(
                exc.user_message or "Payment authorization failed",
                code="authorization_failed",
                details={"gateway_code": exc.code},
            ) from exc
        return str(intent.id)

    async def capture(self, reference: str) -> None:
        """Capture a held payment intent; each attempt gets a fresh key."""
        try:
            await self.sdk.PaymentIntent.capture_async(
                reference,
                api_key=self.api_key,
                idempotency_key=_attempt_key("capture", reference),
            )
        except stripe.StripeError as exc:
            status = _intent_status(exc)
            if exc.code in _EXPIRED_CODES or status == "canceled":
                raise PaymentCaptureExpired(
                    "The payment hold expired before it could be captured",
                    code="capture_expired",
                    details={"reference": reference},
                ) from exc
            if status == "succeeded":
                _logger.info("Payment %s already captured", reference)
                return
            raise PaymentCaptureFailed(
                exc.user_message or "Payment capture failed",
                code="capture_failed",
                details={"reference": reference, "gateway_code": exc.code},
            ) from exc

    async def cancel(self, reference: str) -> None:
        """Cancel a payment intent, tolerating already-resolved intents."""
        try:
            await self.sdk.PaymentIntent.cancel_async(
                reference,
                api_key=self.api_key,
                idempotency_key=_attempt_key("cancel", reference),
            )
        except stripe.StripeError as exc:
            _raise_unless_resolved(exc, reference, action="cancel")

    async def refund(self, reference: str) -> None:
        """Refund a captured payment intent."""
        try:
            await self.sdk.Refund.create_async(
                api_key=self.api_key,
                payment_intent=reference,
                idempotency_key=_attempt_key("refund", reference),
            )
        except stripe.StripeError as exc:
            _raise_unless_resolved(exc, reference, action="refund")


def _attempt_key(action: str, reference: str) -> str:
    return f"{action}-{reference}-{uuid4().hex}"


def _raise_unless_resolved(
    exc: stripe.StripeError, reference: str, action: str
) -> None:
    if exc.code in _RESOLVED_CODES or _intent_status(exc) in _RESOLVED_STATUSES:
        _logger.info("Payment %s already resolved; %s skipped", reference, action)
        return
    raise PaymentError(
        exc.user_message or f"Payment {action} failed",
        code=f"{action}_failed",
        details={"reference": reference, "gateway_code": exc.code},
    ) from exc


def _intent_status(exc: stripe.StripeError) -> str | None:
    """Read the intent status Stripe attaches to state errors."""
    body = exc.json_body if isinstance(exc.json_body, dict) else {}
    error = body.get("error")
    intent = error.get("payment_intent") if isinstance(error, dict) else None
    if isinstance(intent, dict):
        status = intent.get("status")
        return str(status) if status else None
    return None
