"""Domain models for marketplace pricing."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class FeeBreakdown:
    """Server-computed money fields for a booking or editing request."""

    base_amount: Decimal
    customer_service_fee: Decimal
    total_amount: Decimal
    platform_fee: Decimal
    payee_earnings: Decimal
