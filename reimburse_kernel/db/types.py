"""
Module: reimburse_kernel.db.types
Responsibility: Annotated column type aliases and the single sanctioned
    rounding function for reimbursement amounts.
Architecture position: Kernel > DB.  May be imported by ORM models and
    selectors.  MUST NOT import from engines or modules.

Invariants enforced:
    - No floats: every amount column is Numeric(38, 9).
    - round_money() is the only rounding helper for amounts shown to users
      or persisted as totals.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# ISO 4217 currency code (e.g., "CNY", "USD")
Currency = Annotated[str, String(3)]

# Short identifier strings (categories, statuses)
ShortCode = Annotated[str, String(50)]

MONEY_DECIMAL_PLACES = 9
DEFAULT_ROUNDING = ROUND_HALF_UP


def round_money(
    value: Decimal,
    decimal_places: int = 2,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to keep.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)
