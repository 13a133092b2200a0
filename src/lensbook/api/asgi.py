"""ASGI entrypoint for the booking API."""

from lensbook.api.app import create_app
from lensbook.containers import build_container

app = create_app(build_container())
