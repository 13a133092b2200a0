"""Fee and earnings computation shared by every pricing call site."""

from decimal import ROUND_HALF_UP, Decimal

from lensbook.domain.fees import FeeBreakdown
from lensbook.errors import ValidationError

CUSTOMER_SERVICE_FEE_RATE = Decimal("0.10")
PLATFORM_FEE_RATE = Decimal("0.20")
_CENT = Decimal("0.01")


def round2(value: Decimal) -> Decimal:
    """Round to currency minor units."""
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a rate to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def compute_fees(rate: Decimal | int | float | str, quantity: int) -> FeeBreakdown:
    """Compute all money fields from a unit rate and a quantity.

    Every component is rounded to cents before it feeds the next one, so
    ``total - fee == base`` and ``base - platform_fee == earnings`` hold
    exactly.
    """
    unit_rate = to_decimal(rate)
    if not unit_rate.is_finite() or unit_rate <= 0:
        raise ValidationError("Rate must be positive", details={"rate": str(rate)})
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError(
            "Quantity must be a positive integer", details={"quantity": quantity}
        )

    base_amount = round2(unit_rate * quantity)
    customer_service_fee = round2(base_amount * CUSTOMER_SERVICE_FEE_RATE)
    platform_fee = round2(base_amount * PLATFORM_FEE_RATE)
    return FeeBreakdown(
        base_amount=base_amount,
        customer_service_fee=customer_service_fee,
        total_amount=round2(base_amount + customer_service_fee),
        platform_fee=platform_fee,
        payee_earnings=round2(base_amount - platform_fee),
    )


def to_minor_units(amount: Decimal) -> int:
    """Convert a currency amount to integer cents for the gateway."""
    return int(round2(amount) * 100)
