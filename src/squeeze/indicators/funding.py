"""Funding-rate sentiment classification.

Sentiment is a pure function of the cross-exchange average rate: extreme
positive funding means longs are paying heavily (crowded longs), extreme
negative funding means shorts are.

CRITICAL: All rates are raw Decimal fractions (0.006 == 0.6%), never percentages.
"""

from decimal import Decimal

from squeeze.models import Sentiment

#: |avgRate| above this is crowded (0.6% per period).
EXTREME_RATE = Decimal("0.006")

#: |avgRate| above this leans bullish/bearish (0.1% per period).
LEANING_RATE = Decimal("0.001")


def classify_sentiment(
    avg_rate: Decimal,
    extreme: Decimal = EXTREME_RATE,
    leaning: Decimal = LEANING_RATE,
) -> Sentiment:
    """Classify crowding from the average funding rate.

    Thresholds are strict: a rate of exactly ``extreme`` is only bullish.
    """
    if avg_rate > extreme:
        return Sentiment.LONGS_CROWDED
    if avg_rate > leaning:
        return Sentiment.BULLISH
    if avg_rate < -extreme:
        return Sentiment.SHORTS_CROWDED
    if avg_rate < -leaning:
        return Sentiment.BEARISH
    return Sentiment.NEUTRAL
