"""Supabase-backed editing requests and editing offers."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import Client

from lensbook.domain.editing import (
    EditingRequest,
    EditingRequestDraft,
    EditingServiceConfig,
    EditingStatus,
    PricingModel,
)
from lensbook.errors import DuplicateRequest
from lensbook.services.editing import EditingRequestRepository, EditingServiceRepository

_REQUESTS_TABLE = "editing_requests"
_CONFIGS_TABLE = "editing_services"
_UNIQUE_VIOLATION = "23505"


@dataclass
class SupabaseEditingRequestRepository(EditingRequestRepository):
    """Supabase implementation for editing requests."""

    client: Client

    def create(self, draft: EditingRequestDraft) -> EditingRequest:
        """Insert a request; the booking_id column is unique."""
        try:
            response = (
                self.client.table(_REQUESTS_TABLE)
                .insert(
                    {
                        "booking_id": str(draft.booking_id),
                        "customer_id": str(draft.customer_id),
                        "payee_id": str(draft.payee_id),
                        "pricing_model": draft.pricing_model.value,
                        "photo_count": draft.photo_count,
                        "base_amount": str(draft.fees.base_amount),
                        "customer_service_fee": str(draft.fees.customer_service_fee),
                        "total_amount": str(draft.fees.total_amount),
                        "platform_fee": str(draft.fees.platform_fee),
                        "payee_earnings": str(draft.fees.payee_earnings),
                        "payment_reference": draft.payment_reference,
                        "requested_photo_urls": draft.requested_photo_urls,
                        "customer_notes": draft.customer_notes,
                        "status": EditingStatus.REQUESTED.value,
                    }
                )
                .execute()
            )
        except APIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                raise DuplicateRequest(
                    "An editing request already exists for this booking",
                    details={"booking_id": str(draft.booking_id)},
                ) from exc
            raise
        if not response.data:
            raise RuntimeError("Failed to create editing request")
        return _parse_request(response.data[0])

    def get_by_id(self, request_id: UUID) -> EditingRequest | None:
        return self._first("id", request_id)

    def get_by_booking(self, booking_id: UUID) -> EditingRequest | None:
        return self._first("booking_id", booking_id)

    def list_by_customer(self, customer_id: UUID) -> list[EditingRequest]:
        return self._list("customer_id", customer_id)

    def list_by_payee(self, payee_id: UUID) -> list[EditingRequest]:
        return self._list("payee_id", payee_id)

    def compare_and_set_status(
        self,
        request_id: UUID,
        expected: frozenset[EditingStatus],
        new: EditingStatus,
        changes: dict[str, object],
    ) -> EditingRequest | None:
        """Apply changes only while the status is one of ``expected``."""
        payload = {key: _serialize(value) for key, value in changes.items()}
        payload["status"] = new.value
        response = (
            self.client.table(_REQUESTS_TABLE)
            .update(payload)
            .eq("id", str(request_id))
            .in_("status", sorted(status.value for status in expected))
            .execute()
        )
        if not response.data:
            return None
        return _parse_request(response.data[0])

    def delete(self, request_id: UUID) -> None:
        self.client.table(_REQUESTS_TABLE).delete().eq("id", str(request_id)).execute()

    def _first(self, column: str, value: UUID) -> EditingRequest | None:
        response = (
            self.client.table(_REQUESTS_TABLE)
            .select("*")
            .eq(column, str(value))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_request(response.data[0])

    def _list(self, column: str, value: UUID) -> list[EditingRequest]:
        response = (
            self.client.table(_REQUESTS_TABLE)
            .select("*")
            .eq(column, str(value))
            .order("requested_at", desc=True)
            .execute()
        )
        return [_parse_request(row) for row in response.data or []]


@dataclass
class SupabaseEditingServiceRepository(EditingServiceRepository):
    """Supabase implementation for payee editing offers."""

    client: Client

    def get_config(self, payee_id: UUID) -> EditingServiceConfig | None:
        response = (
            self.client.table(_CONFIGS_TABLE)
            .select("*")
            .eq("photographer_id", str(payee_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_config(response.data[0])

    def upsert_config(self, config: EditingServiceConfig) -> EditingServiceConfig:
        response = (
            self.client.table(_CONFIGS_TABLE)
            .upsert(
                {
                    "photographer_id": str(config.payee_id),
                    "is_enabled": config.is_enabled,
                    "pricing_model": config.pricing_model.value,
                    "flat_rate": _serialize(config.flat_rate),
                    "per_photo_rate": _serialize(config.per_photo_rate),
                    "turnaround_days": config.turnaround_days,
                },
                on_conflict="photographer_id",
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to save editing service")
        return _parse_config(response.data[0])


def _serialize(value: object) -> object:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def _parse_request(row: dict) -> EditingRequest:
    return EditingRequest(
        id=UUID(row["id"]),
        booking_id=UUID(row["booking_id"]),
        customer_id=UUID(row["customer_id"]),
        payee_id=UUID(row["payee_id"]),
        pricing_model=PricingModel(row["pricing_model"]),
        photo_count=row.get("photo_count"),
        base_amount=Decimal(str(row["base_amount"])),
        customer_service_fee=Decimal(str(row["customer_service_fee"])),
        total_amount=Decimal(str(row["total_amount"])),
        platform_fee=Decimal(str(row["platform_fee"])),
        payee_earnings=Decimal(str(row["payee_earnings"])),
        status=EditingStatus(row["status"]),
        requested_at=datetime.fromisoformat(row["requested_at"]),
        payment_reference=row.get("payment_reference"),
        requested_photo_urls=list(row.get("requested_photo_urls") or []),
        edited_photos=list(row.get("edited_photos") or []),
        customer_notes=row.get("customer_notes"),
        photographer_notes=row.get("photographer_notes"),
        revision_notes=row.get("revision_notes"),
        revision_count=int(row.get("revision_count") or 0),
        accepted_at=_parse_datetime(row.get("accepted_at")),
        declined_at=_parse_datetime(row.get("declined_at")),
        delivered_at=_parse_datetime(row.get("delivered_at")),
        completed_at=_parse_datetime(row.get("completed_at")),
    )


def _parse_config(row: dict) -> EditingServiceConfig:
    return EditingServiceConfig(
        payee_id=UUID(row["photographer_id"]),
        is_enabled=bool(row["is_enabled"]),
        pricing_model=PricingModel(row["pricing_model"]),
        flat_rate=_parse_decimal(row.get("flat_rate")),
        per_photo_rate=_parse_decimal(row.get("per_photo_rate")),
        turnaround_days=row.get("turnaround_days"),
    )


def _parse_decimal(value: object) -> Decimal | None:
    return Decimal(str(value)) if value is not None else None


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
