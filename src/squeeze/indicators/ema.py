"""Exponential moving average over closing prices.

Seeds with the simple mean of the first ``period`` closes, then applies the
standard recursion. Uses Decimal arithmetic with quantize to prevent
precision explosion.

CRITICAL: All computations use Decimal. Never use float.
"""

from decimal import Decimal

#: Precision limit for EMA intermediate results (12 decimal places).
_EMA_QUANTIZE = Decimal("0.000000000001")


def compute_ema_series(values: list[Decimal], period: int) -> list[Decimal]:
    """Compute every EMA value from the seed onward.

    Uses the recursive formula:
        k = 2 / (period + 1)
        EMA_t = price_t * k + EMA_{t-1} * (1 - k)

    The seed (first element of the result) is the mean of the first
    ``period`` values. Element ``i`` of the result therefore corresponds to
    input index ``period - 1 + i``. Callers that need the EMA one bar back
    (crossing detection) read ``result[-2]``, which needs ``period + 1``
    values.

    Args:
        values: Ordered closes (oldest first).
        period: EMA period. Must be positive.

    Returns:
        List of ``len(values) - period + 1`` EMA values, or an empty list
        when fewer than ``period`` values are available.
    """
    if period <= 0:
        raise ValueError(f"EMA period must be positive, got {period}")
    if len(values) < period:
        return []

    k = Decimal("2") / (Decimal(period) + Decimal("1"))
    one_minus_k = Decimal("1") - k

    seed = (sum(values[:period], Decimal("0")) / Decimal(period)).quantize(_EMA_QUANTIZE)
    ema = [seed]
    for price in values[period:]:
        ema.append((price * k + ema[-1] * one_minus_k).quantize(_EMA_QUANTIZE))

    return ema


def compute_ema(values: list[Decimal], period: int) -> Decimal | None:
    """Return the latest EMA value, or None when fewer than ``period`` values exist."""
    series = compute_ema_series(values, period)
    if not series:
        return None
    return series[-1]
