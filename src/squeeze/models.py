"""Shared enumerations for the squeeze monitor.

CRITICAL: All rate, price and indicator values use Decimal. Floats only
appear when the run artifact is serialized to JSON.
"""

from enum import Enum


class Sentiment(str, Enum):
    """Funding-rate crowding classification, a pure function of avgRate."""

    SHORTS_CROWDED = "shorts_crowded"
    BEARISH = "bearish"
    NEUTRAL = "neutral"
    BULLISH = "bullish"
    LONGS_CROWDED = "longs_crowded"

    @property
    def is_crowded(self) -> bool:
        return self in (Sentiment.SHORTS_CROWDED, Sentiment.LONGS_CROWDED)


class Direction(str, Enum):
    """Direction of the expected reversal trade."""

    LONG = "LONG"
    SHORT = "SHORT"


class Conviction(str, Enum):
    """Discrete confidence grade, declared weakest first.

    Declaration order is the grading order; ``raise_to`` never lowers a grade.
    """

    MEDIUM = "MEDIUM"
    MEDIUM_HIGH = "MEDIUM-HIGH"
    HIGH = "HIGH"
    VERY_HIGH = "VERY HIGH"

    @property
    def rank(self) -> int:
        return _CONVICTION_ORDER.index(self)

    def at_least(self, other: "Conviction") -> bool:
        return self.rank >= other.rank

    def raise_to(self, floor: "Conviction") -> "Conviction":
        """Return the higher of this grade and ``floor``."""
        return floor if floor.rank > self.rank else self


_CONVICTION_ORDER: tuple[Conviction, ...] = tuple(Conviction)
