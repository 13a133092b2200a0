"""Supabase-backed earnings ledger."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from supabase import Client

from lensbook.domain.earnings import Earning, EarningSource, EarningStatus
from lensbook.services.earnings import EarningRepository

_TABLE = "earnings"
_TIMESTAMP_COLUMNS = {
    EarningStatus.RELEASED: "released_at",
    EarningStatus.PAID: "paid_at",
}


@dataclass
class SupabaseEarningRepository(EarningRepository):
    """Supabase implementation for payee earnings."""

    client: Client

    def create(  # noqa: PLR0913
        self,
        payee_id: UUID,
        source_type: EarningSource,
        source_id: UUID,
        gross_amount: Decimal,
        platform_fee: Decimal,
        net_amount: Decimal,
    ) -> Earning:
        """Insert a pending earning row."""
        response = (
            self.client.table(_TABLE)
            .insert(
                {
                    "payee_id": str(payee_id),
                    "source_type": source_type.value,
                    "source_id": str(source_id),
                    "gross_amount": str(gross_amount),
                    "platform_fee": str(platform_fee),
                    "net_amount": str(net_amount),
                    "status": EarningStatus.PENDING.value,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create earning")
        return _parse_earning(response.data[0])

    def get_by_id(self, earning_id: UUID) -> Earning | None:
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("id", str(earning_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_earning(response.data[0])

    def get_by_source(self, source_id: UUID) -> Earning | None:
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("source_id", str(source_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_earning(response.data[0])

    def list_by_payee(self, payee_id: UUID) -> list[Earning]:
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("payee_id", str(payee_id))
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_earning(row) for row in response.data or []]

    def compare_and_set_status(
        self,
        earning_id: UUID,
        expected: EarningStatus,
        new: EarningStatus,
        changed_at: datetime,
    ) -> Earning | None:
        """Conditionally move an earning between payout states."""
        payload: dict[str, str] = {"status": new.value}
        column = _TIMESTAMP_COLUMNS.get(new)
        if column:
            payload[column] = changed_at.isoformat()
        response = (
            self.client.table(_TABLE)
            .update(payload)
            .eq("id", str(earning_id))
            .eq("status", expected.value)
            .execute()
        )
        if not response.data:
            return None
        return _parse_earning(response.data[0])


def _parse_earning(row: dict) -> Earning:
    return Earning(
        id=UUID(row["id"]),
        payee_id=UUID(row["payee_id"]),
        source_type=EarningSource(row["source_type"]),
        source_id=UUID(row["source_id"]),
        gross_amount=Decimal(str(row["gross_amount"])),
        platform_fee=Decimal(str(row["platform_fee"])),
        net_amount=Decimal(str(row["net_amount"])),
        status=EarningStatus(row["status"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        released_at=_parse_datetime(row.get("released_at")),
        paid_at=_parse_datetime(row.get("paid_at")),
    )


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
