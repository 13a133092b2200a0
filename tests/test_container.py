"""Tests for container wiring."""

import asyncio

from lensbook.adapters.realtime_relay import HttpxRelayPublisher
from lensbook.config import parse_timezone
from lensbook.containers import build_container
from lensbook.services.events import InMemoryEventBus


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.booking_service.currency == "usd"
    assert container.booking_service.customer_can_cancel_confirmed is False
    assert isinstance(container.event_publisher, InMemoryEventBus)
    assert container.checkout_service.ttl_seconds == 900
    asyncio.run(container.close_resources())


def test_build_container_uses_relay_when_configured(settings) -> None:
    settings.realtime_relay_url = "https://relay.test/broadcast"
    settings.customer_can_cancel_confirmed = True

    container = build_container(settings)

    assert isinstance(container.event_publisher, HttpxRelayPublisher)
    assert container.booking_service.customer_can_cancel_confirmed is True
    asyncio.run(container.close_resources())


def test_parse_timezone_falls_back_to_utc() -> None:
    assert parse_timezone("Europe/Berlin").key == "Europe/Berlin"
    assert parse_timezone("Mars/Olympus").key == "UTC"
    assert parse_timezone(None).key == "UTC"
