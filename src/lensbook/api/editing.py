"""Editing service and editing request endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, HTTPException, Request, status

from lensbook.api.dependencies import current_user_id, get_container
from lensbook.api.models import (
    EditingDelivery,
    EditingRequestCreate,
    EditingRequestOut,
    EditingServiceOut,
    EditingServiceUpdate,
    EditingStatusUpdate,
    RevisionRequest,
)

if TYPE_CHECKING:
    from lensbook.containers import AppContainer

router = APIRouter(prefix="/editing", tags=["editing"])


@router.put("/service")
async def configure_editing_service(
    body: EditingServiceUpdate,
    request: Request,
    user_id: UUID = Depends(current_user_id),
) -> EditingServiceOut:
    """Create or update the caller's editing offer."""
    container: AppContainer = get_container(request)
    config = container.editing_service.configure(
        payee_id=user_id,
        is_enabled=body.is_enabled,
        pricing_model=body.pricing_model,
        flat_rate=body.flat_rate,
        per_photo_rate=body.per_photo_rate,
        turnaround_days=body.turnaround_days,
    )
    return EditingServiceOut.from_domain(config)


@router.get("/service/{payee_id}")
async def get_editing_service(payee_id: UUID, request: Request) -> EditingServiceOut:
    """Return a photographer's public editing offer."""
    container: AppContainer = get_container(request)
    config = container.editing_service.get_config(payee_id)
    if config is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return EditingServiceOut.from_domain(config)


@router.post("/requests", status_code=status.HTTP_201_CREATED)
async def create_editing_request(
    body: EditingRequestCreate,
    request: Request,
    user_id: UUID = Depends(current_user_id),
) -> EditingRequestOut:
    """Open an editing request for a completed booking."""
    container: AppContainer = get_container(request)
    created = await container.editing_service.create_request(
        customer_id=user_id,
        booking_id=body.booking_id,
        photo_count=body.photo_count,
        notes=body.notes,
        requested_photo_urls=body.requested_photo_urls,
        payee_id=body.payee_id,
    )
    return EditingRequestOut.from_domain(created)


@router.get("/requests/customer")
async def list_customer_requests(
    request: Request, user_id: UUID = Depends(current_user_id)
) -> dict[str, list[EditingRequestOut]]:
    container: AppContainer = get_container(request)
    items = container.editing_service.list_for_customer(user_id)
    return {"editing_requests": [EditingRequestOut.from_domain(i) for i in items]}


@router.get("/requests/payee")
async def list_payee_requests(
    request: Request, user_id: UUID = Depends(current_user_id)
) -> dict[str, list[EditingRequestOut]]:
    container: AppContainer = get_container(request)
    items = container.editing_service.list_for_payee(user_id)
    return {"editing_requests": [EditingRequestOut.from_domain(i) for i in items]}


@router.get("/requests/{request_id}")
async def get_editing_request(
    request_id: UUID, request: Request, user_id: UUID = Depends(current_user_id)
) -> EditingRequestOut:
    container: AppContainer = get_container(request)
    return EditingRequestOut.from_domain(
        container.editing_service.get_request(request_id, user_id)
    )


@router.post("/requests/{request_id}/status")
async def update_editing_status(
    request_id: UUID,
    body: EditingStatusUpdate,
    request: Request,
    user_id: UUID = Depends(current_user_id),
) -> EditingRequestOut:
    """Accept, decline or start work on a request."""
    container: AppContainer = get_container(request)
    updated = await container.editing_service.update_status(
        request_id, user_id, body.status, body.notes
    )
    return EditingRequestOut.from_domain(updated)


@router.post("/requests/{request_id}/deliver")
async def deliver_edits(
    request_id: UUID,
    body: EditingDelivery,
    request: Request,
    user_id: UUID = Depends(current_user_id),
) -> EditingRequestOut:
    container: AppContainer = get_container(request)
    updated = await container.editing_service.deliver(
        request_id, user_id, body.edited_photos, body.notes
    )
    return EditingRequestOut.from_domain(updated)


@router.post("/requests/{request_id}/complete")
async def complete_editing_request(
    request_id: UUID, request: Request, user_id: UUID = Depends(current_user_id)
) -> EditingRequestOut:
    """Approve delivered edits."""
    container: AppContainer = get_container(request)
    updated = await container.editing_service.complete(request_id, user_id)
    return EditingRequestOut.from_domain(updated)


@router.post("/requests/{request_id}/revision")
async def request_revision(
    request_id: UUID,
    body: RevisionRequest,
    request: Request,
    user_id: UUID = Depends(current_user_id),
) -> EditingRequestOut:
    """Send delivered edits back for another pass."""
    container: AppContainer = get_container(request)
    updated = await container.editing_service.request_revision(
        request_id, user_id, body.revision_notes
    )
    return EditingRequestOut.from_domain(updated)
