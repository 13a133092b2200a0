"""Tests for photo delivery and earnings release."""

import asyncio

import pytest

from lensbook.domain.bookings import BookingStatus
from lensbook.domain.earnings import EarningStatus
from lensbook.errors import BookingNotFound, ValidationError, WrongSourceState
from tests.conftest import CUSTOMER_ID, PAYEE_ID, booking_request


def _confirmed_booking(booking_service):  # type: ignore[no-untyped-def]
    booking = asyncio.run(
        booking_service.create_booking(CUSTOMER_ID, booking_request())
    )
    return asyncio.run(booking_service.accept(booking.id, PAYEE_ID))


def test_first_delivery_completes_and_releases(
    booking_service, delivery_service, earning_repository
) -> None:
    booking = _confirmed_booking(booking_service)

    delivery = asyncio.run(
        delivery_service.record_delivery(
            booking.id, PAYEE_ID, ["https://cdn.example/1.jpg"], "Enjoy!"
        )
    )

    assert delivery.photos == ["https://cdn.example/1.jpg"]
    view = booking_service.get_booking(booking.id, CUSTOMER_ID)
    assert view.booking.status == BookingStatus.COMPLETED
    earning = earning_repository.get_by_source(booking.id)
    assert earning.status == EarningStatus.RELEASED
    assert earning.released_at is not None


def test_redelivery_never_releases_twice(
    booking_service, delivery_service, earning_repository, event_bus
) -> None:
    booking = _confirmed_booking(booking_service)
    asyncio.run(
        delivery_service.record_delivery(booking.id, PAYEE_ID, ["a.jpg"])
    )
    released = earning_repository.get_by_source(booking.id)

    asyncio.run(
        delivery_service.record_delivery(booking.id, PAYEE_ID, ["b.jpg", "c.jpg"])
    )

    assert earning_repository.get_by_source(booking.id) == released
    assert len(delivery_service.list_deliveries(booking.id, CUSTOMER_ID)) == 2
    completed = [e for _, e, _ in event_bus.published if e == "booking.completed"]
    assert len(completed) == 1


def test_release_is_idempotent(
    booking_service, delivery_service, earnings_service
) -> None:
    booking = _confirmed_booking(booking_service)
    asyncio.run(delivery_service.record_delivery(booking.id, PAYEE_ID, ["a.jpg"]))

    assert earnings_service.release(booking.id) is False


def test_delivery_requires_photos(booking_service, delivery_service) -> None:
    booking = _confirmed_booking(booking_service)

    with pytest.raises(ValidationError):
        asyncio.run(delivery_service.record_delivery(booking.id, PAYEE_ID, ["  "]))


def test_delivery_requires_confirmed_booking(booking_service, delivery_service):
    booking = asyncio.run(
        booking_service.create_booking(CUSTOMER_ID, booking_request())
    )

    with pytest.raises(WrongSourceState):
        asyncio.run(delivery_service.record_delivery(booking.id, PAYEE_ID, ["a.jpg"]))


def test_customer_cannot_deliver(booking_service, delivery_service) -> None:
    booking = _confirmed_booking(booking_service)

    with pytest.raises(BookingNotFound):
        asyncio.run(
            delivery_service.record_delivery(booking.id, CUSTOMER_ID, ["a.jpg"])
        )


def test_failed_release_is_retried_by_next_delivery(
    booking_service, delivery_service, earning_repository
) -> None:
    booking = _confirmed_booking(booking_service)
    earning_repository.fail_next_transition = True

    with pytest.raises(RuntimeError):
        asyncio.run(delivery_service.record_delivery(booking.id, PAYEE_ID, ["a.jpg"]))
    view = booking_service.get_booking(booking.id, PAYEE_ID)
    assert view.booking.status == BookingStatus.COMPLETED
    assert earning_repository.get_by_source(booking.id).status == EarningStatus.PENDING

    asyncio.run(delivery_service.record_delivery(booking.id, PAYEE_ID, ["b.jpg"]))

    assert earning_repository.get_by_source(booking.id).status == EarningStatus.RELEASED
