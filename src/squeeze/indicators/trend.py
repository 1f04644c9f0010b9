"""Price position relative to the EMA 20/50/200 stack.

Produces the same record shape the EMA snapshot carries, so a price series
can be scored locally when no upstream EMA snapshot exists.

CRITICAL: All computations use Decimal. Never use float.
"""

from decimal import ROUND_HALF_UP, Decimal

from squeeze.data.models import EmaSnapshotEntry
from squeeze.indicators.ema import compute_ema, compute_ema_series

_PCT_QUANTIZE = Decimal("0.01")
_HUNDRED = Decimal("100")

#: Price within this percent of EMA 200 is the "battle zone".
NEAR_EMA200_PCT = Decimal("2")

#: EMA 50 within this percent of EMA 200 is a fresh golden/death cross.
CROSS_ZONE_PCT = Decimal("1")

#: Price within this percent of EMA 20/50 counts as a pullback to it.
PULLBACK_PCT = Decimal("1.5")


def _pct_distance(value: Decimal, reference: Decimal) -> Decimal:
    return (value - reference) / reference * _HUNDRED


def classify_stack(ema20: Decimal, ema50: Decimal, ema200: Decimal) -> str:
    """Return BULLISH (20>50>200), BEARISH (20<50<200) or MIXED."""
    if ema20 > ema50 > ema200:
        return "BULLISH"
    if ema20 < ema50 < ema200:
        return "BEARISH"
    return "MIXED"


def detect_stack_signals(
    price: Decimal,
    prev_price: Decimal,
    ema20: Decimal,
    ema50: Decimal,
    ema200: Decimal,
    prev_ema200: Decimal,
) -> list[str]:
    """List the EMA signal types present for the latest bar.

    A cross of EMA 200 compares the previous close against the previous
    EMA 200 value and the latest close against the latest one.
    """
    signals: list[str] = []

    alignment = classify_stack(ema20, ema50, ema200)
    if alignment == "BULLISH":
        signals.append("BULLISH_STACK")
    elif alignment == "BEARISH":
        signals.append("BEARISH_STACK")

    if abs(_pct_distance(price, ema200)) < NEAR_EMA200_PCT:
        signals.append("NEAR_EMA200")

    if prev_price < prev_ema200 and price > ema200:
        signals.append("CROSS_ABOVE_200")
    elif prev_price > prev_ema200 and price < ema200:
        signals.append("CROSS_BELOW_200")

    if abs(_pct_distance(ema50, ema200)) < CROSS_ZONE_PCT:
        signals.append("GOLDEN_CROSS_ZONE" if ema50 > ema200 else "DEATH_CROSS_ZONE")

    if price > ema200:
        if ema20 > ema50 and abs(_pct_distance(price, ema20)) < PULLBACK_PCT:
            signals.append("PULLBACK_EMA20")
        if price < ema20 and abs(_pct_distance(price, ema50)) < PULLBACK_PCT:
            signals.append("PULLBACK_EMA50")

    return signals


def analyze_ema_stack(ticker: str, closes: list[Decimal]) -> EmaSnapshotEntry | None:
    """Score a daily close series against EMA 20/50/200.

    Args:
        ticker: Instrument the closes belong to.
        closes: Daily closes ordered oldest-first.

    Returns:
        EmaSnapshotEntry with trend, alignment, distance from EMA 200 and
        signal types. None when fewer than 201 closes are available (EMA 200
        plus one prior value for cross detection) or EMA 200 is not positive.
    """
    ema200_series = compute_ema_series(closes, 200)
    if len(ema200_series) < 2:
        return None

    ema200, prev_ema200 = ema200_series[-1], ema200_series[-2]
    if ema200 <= Decimal("0"):
        return None

    ema20 = compute_ema(closes, 20)
    ema50 = compute_ema(closes, 50)
    price, prev_price = closes[-1], closes[-2]

    return EmaSnapshotEntry(
        ticker=ticker,
        trend="ABOVE_200" if price > ema200 else "BELOW_200",
        alignment=classify_stack(ema20, ema50, ema200),
        price_vs_ema200=_pct_distance(price, ema200).quantize(
            _PCT_QUANTIZE, rounding=ROUND_HALF_UP
        ),
        signals=detect_stack_signals(price, prev_price, ema20, ema50, ema200, prev_ema200),
        price=price,
        ema20=ema20,
        ema50=ema50,
        ema200=ema200,
    )
