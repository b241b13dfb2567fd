"""
Money and ratio rounding helpers.

Every engine component rounds through this module so that line items,
totals and ratios agree to the cent no matter which report produced them.

Key Principles:
1. NEVER use float for money
2. Currency amounts are rounded to cents with ROUND_HALF_UP
3. Per-unit ingredient costs keep 6 places, recipe line costs keep 4
4. Percentages are rounded to 2 places and are ``None`` when the base is zero
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

Number = Union[Decimal, str, int, float]

CENTS = Decimal("0.01")
LINE_COST_PLACES = Decimal("0.0001")
UNIT_COST_PLACES = Decimal("0.000001")
PERCENT_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(amount: Number) -> Decimal:
    """
    Coerce a numeric value to Decimal without float artifacts.

    Examples:
        >>> to_decimal(0.1)
        Decimal('0.1')
        >>> to_decimal("8.50")
        Decimal('8.50')
    """
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        # Convert float to string first to avoid precision issues
        amount = str(amount)
    return Decimal(amount)


def quantize_money(amount: Number) -> Decimal:
    """
    Round a currency amount to cents.

    Examples:
        >>> quantize_money("2.390625")
        Decimal('2.39')
        >>> quantize_money("10.125")
        Decimal('10.13')
    """
    return to_decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def quantize_line_cost(amount: Number) -> Decimal:
    """Round a recipe line cost to 4 decimal places."""
    return to_decimal(amount).quantize(LINE_COST_PLACES, rounding=ROUND_HALF_UP)


def quantize_unit_cost(amount: Number) -> Decimal:
    """
    Round a per-usage-unit ingredient cost to 6 decimal places.

    Examples:
        >>> quantize_unit_cost(Decimal("8.50") / Decimal("16"))
        Decimal('0.531250')
    """
    return to_decimal(amount).quantize(UNIT_COST_PLACES, rounding=ROUND_HALF_UP)


def safe_percent(numerator: Number, denominator: Number) -> Optional[Decimal]:
    """
    Express ``numerator`` as a percentage of ``denominator``.

    Returns ``None`` rather than raising when the denominator is zero, because
    an empty period or a zero-priced item is an expected state.

    Examples:
        >>> safe_percent("2.44", "16.00")
        Decimal('15.25')
        >>> safe_percent("5", "0") is None
        True
    """
    denominator = to_decimal(denominator)
    if denominator == 0:
        return None
    return (to_decimal(numerator) / denominator * 100).quantize(
        PERCENT_PLACES, rounding=ROUND_HALF_UP
    )


def percent_change(current: Number, previous: Number) -> Optional[Decimal]:
    """
    Percent change from ``previous`` to ``current``: (cur - prev) / |prev| x 100.

    Examples:
        >>> percent_change("150", "100")
        Decimal('50.00')
        >>> percent_change("50", "-100")
        Decimal('150.00')
        >>> percent_change("10", "0") is None
        True
    """
    previous = to_decimal(previous)
    if previous == 0:
        return None
    return ((to_decimal(current) - previous) / abs(previous) * 100).quantize(
        PERCENT_PLACES, rounding=ROUND_HALF_UP
    )


def sum_money(amounts: Iterable[Number]) -> Decimal:
    """Sum amounts exactly, then round the total to cents."""
    total = Decimal("0")
    for amount in amounts:
        total += to_decimal(amount)
    return quantize_money(total)
