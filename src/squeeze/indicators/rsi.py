"""Wilder-smoothed Relative Strength Index.

CRITICAL: All computations use Decimal. Never use float.
"""

from decimal import ROUND_HALF_UP, Decimal

_RSI_QUANTIZE = Decimal("0.01")
_HUNDRED = Decimal("100")

#: Label floors, checked highest first.
_RSI_LABELS: tuple[tuple[Decimal, str], ...] = (
    (Decimal("80"), "EXTREMELY OVERBOUGHT"),
    (Decimal("70"), "OVERBOUGHT"),
    (Decimal("60"), "BULLISH"),
    (Decimal("40"), "NEUTRAL"),
    (Decimal("30"), "BEARISH"),
    (Decimal("20"), "OVERSOLD"),
)


def compute_rsi(closes: list[Decimal], period: int = 14) -> Decimal | None:
    """Compute RSI over ordered closes using Wilder smoothing.

    The first average gain/loss is the plain mean over the first ``period``
    price changes. Each later change updates the averages as::

        avg = (avg * (period - 1) + change) / period

    RSI is ``100 - 100 / (1 + avg_gain / avg_loss)``, and exactly 100 when
    the average loss is zero (including a flat series).

    Args:
        closes: Closing prices ordered oldest-first.
        period: Smoothing period. Default 14.

    Returns:
        RSI rounded to 2 decimal places, or None when fewer than
        ``period + 1`` closes are available.
    """
    if period <= 0:
        raise ValueError(f"RSI period must be positive, got {period}")
    if len(closes) < period + 1:
        return None

    zero = Decimal("0")
    changes = [curr - prev for prev, curr in zip(closes, closes[1:])]

    avg_gain = sum((c for c in changes[:period] if c > zero), zero) / period
    avg_loss = sum((-c for c in changes[:period] if c < zero), zero) / period

    for change in changes[period:]:
        gain = change if change > zero else zero
        loss = -change if change < zero else zero
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == zero:
        return _HUNDRED.quantize(_RSI_QUANTIZE)

    rs = avg_gain / avg_loss
    rsi = _HUNDRED - _HUNDRED / (Decimal("1") + rs)
    return rsi.quantize(_RSI_QUANTIZE, rounding=ROUND_HALF_UP)


def rsi_label(rsi: Decimal) -> str:
    """Map an RSI reading to its descriptive band."""
    for floor, label in _RSI_LABELS:
        if rsi >= floor:
            return label
    return "EXTREMELY OVERSOLD"
