"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import Header, HTTPException, Request, status

if TYPE_CHECKING:
    from lensbook.containers import AppContainer


def get_container(request: Request) -> AppContainer:
    """Return the container stored on the application state."""
    return request.app.state.container


async def current_user_id(x_user_id: str | None = Header(default=None)) -> UUID:
    """Resolve the authenticated caller from the X-User-Id header."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    try:
        return UUID(x_user_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED) from exc
