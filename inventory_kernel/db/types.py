"""
Module: inventory_kernel.db.types
Responsibility: Price rounding shared by selectors and services.
Architecture position: Kernel > DB.  MUST NOT import from models/, services/
    or selectors/.

Invariants enforced:
    - Prices are informational only and are always rounded to two places
      with ROUND_HALF_UP before they are copied into a ledger row.
"""

from decimal import ROUND_HALF_UP, Decimal


def round_price(value: Decimal | float | int | str | None) -> Decimal | None:
    """
    Round a unit price to two decimal places.

    Args:
        value: Price in any numeric representation, or None.

    Returns:
        Decimal quantized to 0.01 using ROUND_HALF_UP, or None when the
        input is None.
    """
    if value is None:
        return None
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
