"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from lensbook.api.models import EarningOut

if TYPE_CHECKING:
    from lensbook.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.post("/sweep", dependencies=[Depends(require_admin)])
async def run_expiration_sweep(request: Request) -> dict[str, object]:
    """Expire every overdue pending booking across the marketplace."""
    container: AppContainer = request.app.state.container
    expired = await container.booking_service.expire_stale()
    return {"expired": [str(booking.id) for booking in expired]}


@router.post("/checkout-tokens/purge", dependencies=[Depends(require_admin)])
async def purge_checkout_tokens(request: Request) -> dict[str, int]:
    """Delete expired checkout handoff tokens."""
    container: AppContainer = request.app.state.container
    return {"removed": container.checkout_service.purge_expired()}


@router.post("/earnings/{earning_id}/paid", dependencies=[Depends(require_admin)])
async def mark_earning_paid(earning_id: UUID, request: Request) -> EarningOut:
    """Record a payout for a released earning."""
    container: AppContainer = request.app.state.container
    earning = container.earnings_service.mark_paid(earning_id)
    if earning is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Earning is not released",
        )
    return EarningOut.from_domain(earning)
