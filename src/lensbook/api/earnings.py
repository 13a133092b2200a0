"""Earnings endpoints for photographers."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Request

from lensbook.api.dependencies import current_user_id, get_container
from lensbook.api.models import EarningOut

if TYPE_CHECKING:
    from lensbook.containers import AppContainer

router = APIRouter(prefix="/earnings", tags=["earnings"])


@router.get("")
async def list_earnings(
    request: Request, user_id: UUID = Depends(current_user_id)
) -> dict[str, list[EarningOut]]:
    """Return the caller's earnings ledger."""
    container: AppContainer = get_container(request)
    earnings = container.earnings_service.list_for_payee(user_id)
    return {"earnings": [EarningOut.from_domain(item) for item in earnings]}


@router.get("/summary")
async def earnings_summary(
    request: Request, user_id: UUID = Depends(current_user_id)
) -> dict[str, str]:
    """Return net totals by payout state."""
    container: AppContainer = get_container(request)
    summary = container.earnings_service.summary(user_id)
    return {
        "total": str(summary.total),
        "pending": str(summary.pending),
        "released": str(summary.released),
        "paid": str(summary.paid),
    }
