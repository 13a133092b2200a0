"""Domain models for the mobile checkout handoff."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class CheckoutToken:
    """Opaque single-use token handed from the app to web checkout."""

    token: str
    customer_id: UUID
    expires_at: datetime
