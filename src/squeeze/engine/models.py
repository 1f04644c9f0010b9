"""Candidate and alert models produced by the confluence engine.

CRITICAL: All rate and indicator values use Decimal. ``to_dict`` is the only
place they are turned into JSON numbers.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from squeeze.data.models import FundingEntry
from squeeze.models import Conviction, Direction, Sentiment


def cooldown_key(direction: Direction, coin: str) -> str:
    """Key under which the last alert time for a coin+direction is stored."""
    return f"{direction.value}_{coin}"


def _num(value: Decimal | None) -> float | None:
    return None if value is None else float(value)


@dataclass
class Candidate:
    """An instrument whose funding numbers fired at least one candidate rule."""

    funding: FundingEntry
    direction: Direction
    reasons: list[str]

    @property
    def coin(self) -> str:
        return self.funding.coin


@dataclass
class Alert:
    """A candidate that passed the RSI gate, with every corroboration note.

    ``reasons`` lists the funding rules that fired; the ``*_note`` fields and
    ``conviction_rules`` record each later step, so the decision can be
    reconstructed from the alert alone.
    """

    coin: str
    direction: Direction
    sentiment: Sentiment
    avg_rate: Decimal
    oi_usd: Decimal | None
    exchange_count: int
    rsi_value: Decimal
    rsi_confirmed: bool
    rsi_note: str
    ema_note: str
    ema_confirms: bool
    mtf_note: str
    ob_note: str
    vol_note: str
    triple_confluence: bool
    conviction: Conviction
    reasons: list[str] = field(default_factory=list)
    conviction_rules: list[str] = field(default_factory=list)

    @property
    def cooldown_key(self) -> str:
        return cooldown_key(self.direction, self.coin)

    @property
    def reason(self) -> str:
        return "; ".join(self.reasons)

    def to_dict(self) -> dict:
        """Serialize to the camelCase layout of the run artifact."""
        return {
            "coin": self.coin,
            "avgRate": _num(self.avg_rate),
            "oiUsd": _num(self.oi_usd),
            "sentiment": self.sentiment.value,
            "setupDirection": self.direction.value,
            "exchangeCount": self.exchange_count,
            "rsi": _num(self.rsi_value),
            "rsiConfirmed": self.rsi_confirmed,
            "rsiNote": self.rsi_note,
            "emaNote": self.ema_note,
            "emaConfirms": self.ema_confirms,
            "mtfNote": self.mtf_note,
            "obNote": self.ob_note,
            "volNote": self.vol_note,
            "tripleConfluence": self.triple_confluence,
            "conviction": self.conviction.value,
            "convictionRules": list(self.conviction_rules),
            "reasons": list(self.reasons),
            "reason": self.reason,
        }
