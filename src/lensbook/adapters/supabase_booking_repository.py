"""Supabase-backed booking store."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from supabase import Client

from lensbook.domain.bookings import Booking, BookingDraft, BookingStatus
from lensbook.services.bookings import BookingStore
from lensbook.services.expiration import LEGACY_PENDING_TTL

_TABLE = "bookings"


@dataclass
class SupabaseBookingRepository(BookingStore):
    """Supabase implementation for bookings with conditional status updates."""

    client: Client

    def create(self, draft: BookingDraft) -> Booking:
        """Insert a pending booking row and return it."""
        response = (
            self.client.table(_TABLE)
            .insert(
                {
                    "customer_id": str(draft.customer_id),
                    "payee_id": str(draft.payee_id),
                    "duration": draft.duration,
                    "location": draft.location,
                    "scheduled_date": draft.scheduled_date.isoformat(),
                    "scheduled_time": draft.scheduled_time,
                    "base_amount": str(draft.fees.base_amount),
                    "customer_service_fee": str(draft.fees.customer_service_fee),
                    "total_amount": str(draft.fees.total_amount),
                    "platform_fee": str(draft.fees.platform_fee),
                    "payee_earnings": str(draft.fees.payee_earnings),
                    "payment_reference": draft.payment_reference,
                    "status": BookingStatus.PENDING.value,
                    "expires_at": draft.expires_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create booking")
        return _parse_booking(response.data[0])

    def get_by_id(self, booking_id: UUID) -> Booking | None:
        """Return a booking by id, if present."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("id", str(booking_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_booking(response.data[0])

    def list_by_customer(self, customer_id: UUID) -> list[Booking]:
        """Return a customer's bookings, newest first."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("customer_id", str(customer_id))
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_booking(row) for row in response.data or []]

    def list_by_payee(self, payee_id: UUID) -> list[Booking]:
        """Return a payee's bookings, newest first."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("payee_id", str(payee_id))
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_booking(row) for row in response.data or []]

    def list_overdue_pending(
        self,
        now: datetime,
        customer_id: UUID | None = None,
        payee_id: UUID | None = None,
    ) -> list[Booking]:
        """Return pending bookings whose response deadline has passed."""
        with_deadline = (
            self.client.table(_TABLE)
            .select("*")
            .eq("status", BookingStatus.PENDING.value)
            .lte("expires_at", now.isoformat())
        )
        legacy = (
            self.client.table(_TABLE)
            .select("*")
            .eq("status", BookingStatus.PENDING.value)
            .is_("expires_at", "null")
            .lt("created_at", (now - LEGACY_PENDING_TTL).isoformat())
        )
        rows: list[dict] = []
        for query in (with_deadline, legacy):
            if customer_id is not None:
                query = query.eq("customer_id", str(customer_id))
            if payee_id is not None:
                query = query.eq("payee_id", str(payee_id))
            rows.extend(query.execute().data or [])
        return [_parse_booking(row) for row in rows]

    def compare_and_set_status(
        self, booking_id: UUID, expected: BookingStatus, new: BookingStatus
    ) -> Booking | None:
        """Update status only where the row still holds ``expected``."""
        response = (
            self.client.table(_TABLE)
            .update({"status": new.value})
            .eq("id", str(booking_id))
            .eq("status", expected.value)
            .execute()
        )
        if not response.data:
            return None
        return _parse_booking(response.data[0])

    def set_dismissed(self, booking_id: UUID, dismissed_at: datetime) -> Booking | None:
        """Stamp dismissed_at on a booking."""
        response = (
            self.client.table(_TABLE)
            .update({"dismissed_at": dismissed_at.isoformat()})
            .eq("id", str(booking_id))
            .execute()
        )
        if not response.data:
            return None
        return _parse_booking(response.data[0])


def _parse_booking(row: dict) -> Booking:
    return Booking(
        id=UUID(row["id"]),
        customer_id=UUID(row["customer_id"]),
        payee_id=UUID(row["payee_id"]),
        duration=int(row["duration"]),
        location=row["location"],
        scheduled_date=date.fromisoformat(str(row["scheduled_date"])[:10]),
        scheduled_time=row["scheduled_time"],
        base_amount=Decimal(str(row["base_amount"])),
        customer_service_fee=Decimal(str(row["customer_service_fee"])),
        total_amount=Decimal(str(row["total_amount"])),
        platform_fee=Decimal(str(row["platform_fee"])),
        payee_earnings=Decimal(str(row["payee_earnings"])),
        payment_reference=row.get("payment_reference"),
        status=BookingStatus(row["status"]),
        expires_at=_parse_datetime(row.get("expires_at")),
        created_at=datetime.fromisoformat(row["created_at"]),
        dismissed_at=_parse_datetime(row.get("dismissed_at")),
    )


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
