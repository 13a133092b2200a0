"""Domain models for photo deliveries."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class PhotoDelivery:
    """A batch of photos handed over for a booking."""

    id: UUID
    booking_id: UUID
    payee_id: UUID
    photos: list[str]
    message: str | None
    delivered_at: datetime
