"""Booking endpoints for customers and photographers."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Request, status

from lensbook.api.dependencies import current_user_id, get_container
from lensbook.api.models import (
    BookingCreate,
    BookingOut,
    DeliveryCreate,
    DeliveryOut,
    EditingRequestOut,
)

if TYPE_CHECKING:
    from lensbook.containers import AppContainer

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_booking(
    body: BookingCreate,
    request: Request,
    user_id: UUID = Depends(current_user_id),
) -> BookingOut:
    """Request a session; fees are computed server-side."""
    container: AppContainer = get_container(request)
    booking = await container.booking_service.create_booking(
        user_id, body.to_domain()
    )
    return _view(container, booking.id, user_id)


@router.get("/customer")
async def list_customer_bookings(
    request: Request, user_id: UUID = Depends(current_user_id)
) -> dict[str, list[BookingOut]]:
    """Return the caller's bookings as a customer."""
    container: AppContainer = get_container(request)
    views = await container.booking_service.list_for_customer(user_id)
    return {"bookings": [BookingOut.from_view(view) for view in views]}


@router.get("/payee")
async def list_payee_bookings(
    request: Request, user_id: UUID = Depends(current_user_id)
) -> dict[str, list[BookingOut]]:
    """Return the caller's bookings as a photographer."""
    container: AppContainer = get_container(request)
    views = await container.booking_service.list_for_payee(user_id)
    return {"bookings": [BookingOut.from_view(view) for view in views]}


@router.get("/{booking_id}")
async def get_booking(
    booking_id: UUID, request: Request, user_id: UUID = Depends(current_user_id)
) -> BookingOut:
    container: AppContainer = get_container(request)
    return BookingOut.from_view(
        container.booking_service.get_booking(booking_id, user_id)
    )


@router.post("/{booking_id}/accept")
async def accept_booking(
    booking_id: UUID, request: Request, user_id: UUID = Depends(current_user_id)
) -> BookingOut:
    """Confirm a pending booking and capture the customer's hold."""
    container: AppContainer = get_container(request)
    await container.booking_service.accept(booking_id, user_id)
    return _view(container, booking_id, user_id)


@router.post("/{booking_id}/decline")
async def decline_booking(
    booking_id: UUID, request: Request, user_id: UUID = Depends(current_user_id)
) -> BookingOut:
    container: AppContainer = get_container(request)
    await container.booking_service.decline(booking_id, user_id)
    return _view(container, booking_id, user_id)


@router.post("/{booking_id}/cancel")
async def cancel_booking(
    booking_id: UUID, request: Request, user_id: UUID = Depends(current_user_id)
) -> BookingOut:
    container: AppContainer = get_container(request)
    await container.booking_service.cancel(booking_id, user_id)
    return _view(container, booking_id, user_id)


@router.post("/{booking_id}/dismiss")
async def dismiss_booking(
    booking_id: UUID, request: Request, user_id: UUID = Depends(current_user_id)
) -> BookingOut:
    """Hide a finished booking from the caller's lists."""
    container: AppContainer = get_container(request)
    await container.booking_service.dismiss(booking_id, user_id)
    return _view(container, booking_id, user_id)


@router.post("/{booking_id}/deliveries", status_code=status.HTTP_201_CREATED)
async def deliver_photos(
    booking_id: UUID,
    body: DeliveryCreate,
    request: Request,
    user_id: UUID = Depends(current_user_id),
) -> DeliveryOut:
    """Upload delivered photos; the first delivery completes the booking."""
    container: AppContainer = get_container(request)
    delivery = await container.delivery_service.record_delivery(
        booking_id, user_id, body.photos, body.message
    )
    return DeliveryOut.from_domain(delivery)


@router.get("/{booking_id}/deliveries")
async def list_deliveries(
    booking_id: UUID, request: Request, user_id: UUID = Depends(current_user_id)
) -> dict[str, list[DeliveryOut]]:
    container: AppContainer = get_container(request)
    deliveries = container.delivery_service.list_deliveries(booking_id, user_id)
    return {"deliveries": [DeliveryOut.from_domain(item) for item in deliveries]}


@router.get("/{booking_id}/editing-request")
async def get_booking_editing_request(
    booking_id: UUID, request: Request, user_id: UUID = Depends(current_user_id)
) -> dict[str, EditingRequestOut | None]:
    """Return the editing request attached to a booking, if any."""
    container: AppContainer = get_container(request)
    editing = container.editing_service.get_for_booking(booking_id, user_id)
    return {
        "editing_request": EditingRequestOut.from_domain(editing) if editing else None
    }


def _view(container: AppContainer, booking_id: UUID, user_id: UUID) -> BookingOut:
    return BookingOut.from_view(
        container.booking_service.get_booking(booking_id, user_id)
    )
