"""Tests for the payment gateway and relay adapters."""

import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest
import stripe

from lensbook.adapters.payment_gateway import StripePaymentGateway
from lensbook.adapters.realtime_relay import HttpxRelayPublisher
from lensbook.errors import (
    PaymentAuthorizationFailed,
    PaymentCaptureExpired,
    PaymentCaptureFailed,
    PaymentError,
)


class _FakeResource:
    """Records SDK calls and raises queued errors in order."""

    def __init__(self, errors: list[Exception] | None = None) -> None:
        self.calls: list[tuple[str, tuple, dict[str, object]]] = []
        self.errors = list(errors or [])

    def _record(self, name: str, args: tuple, kwargs: dict[str, object]) -> None:
        self.calls.append((name, args, kwargs))
        if self.errors:
            raise self.errors.pop(0)

    async def create_async(self, *args, **kwargs):  # type: ignore[no-untyped-def]
        self._record("create", args, kwargs)
        return SimpleNamespace(id="pi_123", status="requires_capture")

    async def capture_async(self, *args, **kwargs):  # type: ignore[no-untyped-def]
        self._record("capture", args, kwargs)
        return SimpleNamespace(id=args[0], status="succeeded")

    async def cancel_async(self, *args, **kwargs):  # type: ignore[no-untyped-def]
        self._record("cancel", args, kwargs)
        return SimpleNamespace(id=args[0], status="canceled")


def _gateway(
    intents: _FakeResource, refunds: _FakeResource | None = None
) -> StripePaymentGateway:
    sdk = SimpleNamespace(PaymentIntent=intents, Refund=refunds or _FakeResource())
    return StripePaymentGateway(api_key="sk_test", sdk=sdk)  # type: ignore[arg-type]


def _state_error(code: str, intent_status: str | None = None) -> stripe.StripeError:
    error: dict[str, object] = {"code": code, "message": code.replace("_", " ")}
    if intent_status:
        error["payment_intent"] = {"status": intent_status}
    return stripe.InvalidRequestError(
        code.replace("_", " "), None, code=code, json_body={"error": error}
    )


def test_authorize_creates_manual_capture_intent() -> None:
    intents = _FakeResource()

    reference = asyncio.run(
        _gateway(intents).authorize(22000, "usd", {"kind": "booking"})
    )

    assert reference == "pi_123"
    name, _, kwargs = intents.calls[0]
    assert name == "create"
    assert kwargs["api_key"] == "sk_test"
    assert kwargs["amount"] == 22000
    assert kwargs["capture_method"] == "manual"
    assert kwargs["metadata"] == {"kind": "booking"}


def test_authorize_declined_card() -> None:
    declined = stripe.CardError("Your card was declined.", None, "card_declined")

    with pytest.raises(PaymentAuthorizationFailed) as exc_info:
        asyncio.run(_gateway(_FakeResource([declined])).authorize(1000, "usd", {}))

    assert exc_info.value.category == "retry"
    assert exc_info.value.details == {"gateway_code": "card_declined"}


def test_authorize_network_error() -> None:
    unreachable = stripe.APIConnectionError("connection reset")

    with pytest.raises(PaymentAuthorizationFailed):
        asyncio.run(_gateway(_FakeResource([unreachable])).authorize(1000, "usd", {}))


def test_capture_retry_uses_a_fresh_idempotency_key() -> None:
    intents = _FakeResource([stripe.APIError("upstream timeout")])
    gateway = _gateway(intents)

    with pytest.raises(PaymentCaptureFailed):
        asyncio.run(gateway.capture("pi_123"))
    asyncio.run(gateway.capture("pi_123"))

    first, second = (kwargs["idempotency_key"] for _, _, kwargs in intents.calls)
    assert intents.calls[0][1] == ("pi_123",)
    assert first.startswith("capture-pi_123-")
    assert first != second


@pytest.mark.parametrize(
    "error",
    [
        _state_error("charge_expired_for_capture"),
        _state_error("payment_intent_unexpected_state", "canceled"),
    ],
)
def test_capture_of_expired_hold(error: stripe.StripeError) -> None:
    with pytest.raises(PaymentCaptureExpired) as exc_info:
        asyncio.run(_gateway(_FakeResource([error])).capture("pi_123"))

    assert exc_info.value.category == "contact_support"


def test_capture_of_already_captured_intent_succeeds() -> None:
    error = _state_error("payment_intent_unexpected_state", "succeeded")

    asyncio.run(_gateway(_FakeResource([error])).capture("pi_123"))


@pytest.mark.parametrize(
    "error",
    [
        None,
        _state_error("payment_intent_unexpected_state", "canceled"),
        _state_error("payment_intent_unexpected_state", "succeeded"),
    ],
)
def test_cancel_tolerates_resolved_intents(error: stripe.StripeError | None) -> None:
    intents = _FakeResource([error] if error else [])

    asyncio.run(_gateway(intents).cancel("pi_123"))

    assert intents.calls[0][0] == "cancel"


def test_cancel_other_failure_raises() -> None:
    error = stripe.AuthenticationError("Invalid API Key provided")

    with pytest.raises(PaymentError) as exc_info:
        asyncio.run(_gateway(_FakeResource([error])).cancel("pi_123"))

    assert exc_info.value.code == "cancel_failed"


def test_refund_targets_intent_and_tolerates_repeat() -> None:
    refunds = _FakeResource([_state_error("charge_already_refunded")])

    asyncio.run(_gateway(_FakeResource(), refunds).refund("pi_123"))

    _, _, kwargs = refunds.calls[0]
    assert kwargs["payment_intent"] == "pi_123"
    assert kwargs["idempotency_key"].startswith("refund-pi_123-")


def test_relay_publisher_posts_event() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202)

    transport = httpx.MockTransport(handler)
    publisher = HttpxRelayPublisher(
        url="https://relay.test/broadcast",
        http_client=httpx.AsyncClient(transport=transport),
        token="relay-token",
    )

    asyncio.run(publisher.publish("booking:1", "booking.created", {"status": "pending"}))

    payload = json.loads(seen[0].content.decode())
    assert payload == {
        "topic": "booking:1",
        "event": "booking.created",
        "payload": {"status": "pending"},
    }
    assert seen[0].headers["Authorization"] == "Bearer relay-token"


def test_relay_publisher_raises_on_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    publisher = HttpxRelayPublisher(
        url="https://relay.test/broadcast",
        http_client=httpx.AsyncClient(transport=transport),
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(publisher.publish("booking:1", "booking.created", {}))
