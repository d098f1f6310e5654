from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import NamedTuple

# Absorbs rounding noise in a two-decimal reporting currency
EPSILON = Decimal("0.01")
ZERO = Decimal("0.00")
CENT = Decimal("0.01")

UNPAID = "Unpaid"
PARTIAL = "Partial"
PAID = "Paid"
CANCEL = "Cancel"

STATUS_CHOICES = [
    (UNPAID, "Unpaid"),
    (PARTIAL, "Partial"),
    (PAID, "Paid"),
    (CANCEL, "Cancel"),
]


class NormalizedAmounts(NamedTuple):
    total: Decimal
    paid: Decimal
    due: Decimal
    status: str


def to_decimal(value) -> Decimal:
    """Coerce anything numeric-looking to a 2dp Decimal, anything else to 0."""
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, TypeError, ValueError):
            return ZERO
    # NaN / Infinity are not amounts
    if not number.is_finite():
        return ZERO
    return number.quantize(CENT, rounding=ROUND_HALF_UP)


def derive_status(total: Decimal, paid: Decimal) -> str:
    if total > 0 and paid >= total - EPSILON:
        return PAID
    if paid > EPSILON:
        return PARTIAL
    return UNPAID


def normalize_amounts(total, paid_raw) -> NormalizedAmounts:
    """
    Single place a payment status is derived from amounts.
    Clamps paid into [0, total] and returns total, paid, due and status.
    """
    total = max(ZERO, to_decimal(total))
    paid = to_decimal(paid_raw)
    if total > 0:
        paid = min(total, max(ZERO, paid))
    else:
        paid = ZERO
    return NormalizedAmounts(
        total=total,
        paid=paid,
        due=total - paid,
        status=derive_status(total, paid),
    )
