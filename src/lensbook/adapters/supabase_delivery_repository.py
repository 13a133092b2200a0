"""Supabase-backed photo deliveries."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from lensbook.domain.deliveries import PhotoDelivery
from lensbook.services.deliveries import DeliveryRepository


@dataclass
class SupabaseDeliveryRepository(DeliveryRepository):
    client: Client

    def create_delivery(
        self,
        booking_id: UUID,
        payee_id: UUID,
        photos: list[str],
        message: str | None,
    ) -> PhotoDelivery:
        response = (
            self.client.table("photo_deliveries")
            .insert(
                {
                    "booking_id": str(booking_id),
                    "photographer_id": str(payee_id),
                    "photos": photos,
                    "message": message,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to record photo delivery")
        return _parse_delivery(response.data[0])

    def list_by_booking(self, booking_id: UUID) -> list[PhotoDelivery]:
        response = (
            self.client.table("photo_deliveries")
            .select("*")
            .eq("booking_id", str(booking_id))
            .order("delivered_at")
            .execute()
        )
        return [_parse_delivery(row) for row in response.data or []]


def _parse_delivery(row: dict) -> PhotoDelivery:
    return PhotoDelivery(
        id=UUID(row["id"]),
        booking_id=UUID(row["booking_id"]),
        payee_id=UUID(row["photographer_id"]),
        photos=list(row.get("photos") or []),
        message=row.get("message"),
        delivered_at=datetime.fromisoformat(row["delivered_at"]),
    )
