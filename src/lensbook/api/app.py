"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lensbook.api.admin import router as admin_router
from lensbook.api.bookings import router as bookings_router
from lensbook.api.checkout import router as checkout_router
from lensbook.api.earnings import router as earnings_router
from lensbook.api.editing import router as editing_router
from lensbook.app_logging import configure_logging
from lensbook.containers import AppContainer
from lensbook.errors import DomainError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        if exc.status_code >= 500:  # noqa: PLR2004
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.info(
                "%s %s rejected: %s", request.method, request.url.path, exc.code
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    app.include_router(bookings_router)
    app.include_router(earnings_router)
    app.include_router(editing_router)
    app.include_router(checkout_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
