"""Cross-timeframe trend alignment and RSI divergence."""

from decimal import Decimal


def classify_alignment(trends: list[str | None]) -> str:
    """Classify per-timeframe trends into a single alignment label.

    Unknown or missing trends are ignored. At least two known timeframes must
    agree before the result is BULLISH_ALIGNED or BEARISH_ALIGNED.
    """
    known = [t for t in trends if t and t != "unknown"]
    if len(known) >= 2 and all(t == "bullish" for t in known):
        return "BULLISH_ALIGNED"
    if len(known) >= 2 and all(t == "bearish" for t in known):
        return "BEARISH_ALIGNED"
    return "MIXED"


def detect_rsi_divergence(
    rsi_short: Decimal | None, rsi_long: Decimal | None
) -> str | None:
    """Flag a short timeframe at an RSI extreme the long timeframe disagrees with.

    Args:
        rsi_short: RSI on the shortest timeframe (e.g. 1h).
        rsi_long: RSI on the longest timeframe (e.g. 1d).

    Returns:
        SHORT_TF_OVERSOLD, SHORT_TF_OVERBOUGHT, or None.
    """
    if rsi_short is None or rsi_long is None:
        return None
    if rsi_short <= Decimal("30") and rsi_long >= Decimal("50"):
        return "SHORT_TF_OVERSOLD"
    if rsi_short >= Decimal("70") and rsi_long <= Decimal("50"):
        return "SHORT_TF_OVERBOUGHT"
    return None
