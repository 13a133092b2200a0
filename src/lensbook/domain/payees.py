"""Domain models for payee profiles."""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class PayeeRate:
    """Current rate and availability of a photographer."""

    payee_id: UUID
    hourly_rate: Decimal
    is_available: bool
