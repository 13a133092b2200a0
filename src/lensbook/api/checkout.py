"""Mobile checkout handoff endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Request, status

from lensbook.api.dependencies import current_user_id, get_container
from lensbook.api.models import BookingCreate, BookingOut, CheckoutSessionOut

if TYPE_CHECKING:
    from lensbook.containers import AppContainer

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def create_checkout_session(
    body: BookingCreate,
    request: Request,
    user_id: UUID = Depends(current_user_id),
) -> CheckoutSessionOut:
    """Stash a booking request for completion in the web checkout."""
    container: AppContainer = get_container(request)
    token = container.checkout_service.issue(user_id, body.to_domain())
    return CheckoutSessionOut.from_domain(token)


@router.get("/sessions/{token}")
async def inspect_checkout_session(token: str, request: Request) -> dict[str, str]:
    """Return the stashed request so the web page can render a summary."""
    container: AppContainer = get_container(request)
    customer_id, booking_request = container.checkout_service.inspect(token)
    return {
        "customer_id": str(customer_id),
        "payee_id": str(booking_request.payee_id),
        "duration": str(booking_request.duration),
        "location": booking_request.location,
        "scheduled_date": booking_request.scheduled_date.isoformat(),
        "scheduled_time": booking_request.scheduled_time,
    }


@router.post("/sessions/{token}/complete", status_code=status.HTTP_201_CREATED)
async def complete_checkout_session(token: str, request: Request) -> BookingOut:
    """Redeem a checkout token and create its booking."""
    container: AppContainer = get_container(request)
    booking = await container.checkout_service.complete_checkout(token)
    return BookingOut.from_view(
        container.booking_service.get_booking(booking.id, booking.customer_id)
    )
