"""Conviction grading as an ordered list of raise-only rules.

Every alert starts at MEDIUM (funding + RSI). Each rule inspects the
corroboration facts gathered for the alert and, when it applies, may raise
conviction to its floor. No rule can lower conviction, so reordering or
adding rules can never demote an alert that other rules promoted.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from squeeze.models import Conviction


class EmaPosition(str, Enum):
    """Where price sits relative to EMA 200 for the candidate's direction."""

    BATTLE_ZONE = "battle_zone"  # near or crossing EMA 200 in the setup's favour
    EXTENDED = "extended"  # LONG only: far below EMA 200
    BEARISH_STACK = "bearish_stack"  # SHORT only: EMA 20 < 50 < 200
    UNCONFIRMED = "unconfirmed"
    NO_DATA = "no_data"


@dataclass
class Corroboration:
    """Facts the conviction rules are evaluated against."""

    rsi_confirmed: bool
    ema_position: EmaPosition = EmaPosition.NO_DATA
    mtf_aligned_against: bool = False  # every timeframe trends against the reversal
    orderbook_supports: bool = False

    @property
    def ema_confirms(self) -> bool:
        return self.ema_position in (EmaPosition.BATTLE_ZONE, EmaPosition.BEARISH_STACK)

    @property
    def triple_confluence(self) -> bool:
        return self.rsi_confirmed and self.ema_confirms


@dataclass(frozen=True)
class ConvictionRule:
    """A named rule allowed to raise conviction to ``floor`` when it applies.

    ``applies`` receives the facts and the conviction reached so far.
    """

    name: str
    floor: Conviction
    applies: Callable[[Corroboration, Conviction], bool]


CONVICTION_RULES: tuple[ConvictionRule, ...] = (
    ConvictionRule(
        "ema_battle_zone",
        Conviction.HIGH,
        lambda facts, _: facts.ema_position == EmaPosition.BATTLE_ZONE,
    ),
    ConvictionRule(
        "ema_extended",
        Conviction.MEDIUM_HIGH,
        lambda facts, _: facts.ema_position == EmaPosition.EXTENDED,
    ),
    ConvictionRule(
        "ema_bearish_stack",
        Conviction.MEDIUM_HIGH,
        lambda facts, _: facts.ema_position == EmaPosition.BEARISH_STACK,
    ),
    ConvictionRule(
        "triple_confluence",
        Conviction.HIGH,
        lambda facts, _: facts.triple_confluence,
    ),
    ConvictionRule(
        "mtf_aligned_against",
        Conviction.VERY_HIGH,
        lambda facts, _: facts.mtf_aligned_against and facts.triple_confluence,
    ),
    ConvictionRule(
        "orderbook_supports",
        Conviction.VERY_HIGH,
        lambda facts, current: facts.orderbook_supports and current.at_least(Conviction.HIGH),
    ),
)


def grade_conviction(
    facts: Corroboration,
    rules: tuple[ConvictionRule, ...] = CONVICTION_RULES,
    base: Conviction = Conviction.MEDIUM,
) -> tuple[Conviction, list[str]]:
    """Apply ``rules`` in order and return the final grade and the rules that fired.

    Args:
        facts: Corroboration gathered for one alert.
        rules: Ordered rules; defaults to CONVICTION_RULES.
        base: Starting grade.

    Returns:
        Tuple of (conviction, names of the rules that applied).
    """
    conviction = base
    fired: list[str] = []
    for rule in rules:
        if rule.applies(facts, conviction):
            conviction = conviction.raise_to(rule.floor)
            fired.append(rule.name)
    return conviction, fired
