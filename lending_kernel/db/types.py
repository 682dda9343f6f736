"""
Module: lending_kernel.db.types
Responsibility: Decimal constants and the rounding helpers shared
    by models, services and engines.
Architecture position: Kernel > DB.  MUST NOT import from models/ or services/.

Invariants enforced:
    - Money and percentages are Decimal.  round_money() and round_rate() are
      the only rounding functions used on stored or reported values.
"""

from decimal import ROUND_HALF_UP, Decimal

MONEY_DECIMAL_PLACES = 2
RATE_DECIMAL_PLACES = 6
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to ``decimal_places`` (default: cents).

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to keep.
        rounding: Rounding mode (default ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=rounding)


def round_rate(value: Decimal, decimal_places: int = RATE_DECIMAL_PLACES) -> Decimal:
    """Round a ratio or percentage for reporting."""
    return round_money(value, decimal_places=decimal_places)


def to_decimal(value) -> Decimal:
    """Coerce a database aggregate result (None, int, float, str, Decimal) to Decimal.

    Aggregates over Numeric columns come back as Decimal on PostgreSQL but
    may arrive as int or float on SQLite; floats go through ``str`` so the
    shortest repr is kept rather than the binary expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)
