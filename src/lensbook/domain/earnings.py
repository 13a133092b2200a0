"""Domain models for payee earnings."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from uuid import UUID


class EarningStatus(StrEnum):
    """Payout state of an earning ledger entry."""

    PENDING = "pending"
    RELEASED = "released"
    PAID = "paid"
    VOID = "void"


class EarningSource(StrEnum):
    """What kind of purchase an earning mirrors."""

    BOOKING = "booking"
    EDITING_REQUEST = "editing_request"


@dataclass(frozen=True)
class Earning:
    """Ledger entry mirroring the payout of a booking or editing request."""

    id: UUID
    payee_id: UUID
    source_type: EarningSource
    source_id: UUID
    gross_amount: Decimal
    platform_fee: Decimal
    net_amount: Decimal
    status: EarningStatus
    created_at: datetime
    released_at: datetime | None = None
    paid_at: datetime | None = None


@dataclass(frozen=True)
class EarningsSummary:
    """Net totals per payout state."""

    total: Decimal
    pending: Decimal
    released: Decimal
    paid: Decimal
