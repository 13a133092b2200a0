"""Supabase-backed photographer rate lookup."""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from supabase import Client

from lensbook.domain.payees import PayeeRate
from lensbook.services.bookings import RateLookup


@dataclass
class SupabasePayeeRepository(RateLookup):
    """Reads hourly rates from photographer profiles."""

    client: Client

    def get_payee_rate(self, payee_id: UUID) -> PayeeRate | None:
        response = (
            self.client.table("photographers")
            .select("id, hourly_rate, is_available")
            .eq("id", str(payee_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        if row.get("hourly_rate") is None:
            return None
        return PayeeRate(
            payee_id=UUID(row["id"]),
            hourly_rate=Decimal(str(row["hourly_rate"])),
            is_available=bool(row.get("is_available", True)),
        )
