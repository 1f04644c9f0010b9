"""Confluence engine.

Builds funding-derived candidates, gates them on directional RSI, grades
conviction from EMA, multi-timeframe, order-book and volume corroboration,
and filters repeats through the per-instrument cooldown.
"""

from squeeze.engine.candidates import build_candidates
from squeeze.engine.confluence import ConfluenceEngine
from squeeze.engine.conviction import (
    CONVICTION_RULES,
    ConvictionRule,
    Corroboration,
    EmaPosition,
    grade_conviction,
)
from squeeze.engine.cooldown import CooldownOutcome, apply_cooldown
from squeeze.engine.models import Alert, Candidate, cooldown_key

__all__ = [
    "Alert",
    "CONVICTION_RULES",
    "Candidate",
    "ConfluenceEngine",
    "ConvictionRule",
    "CooldownOutcome",
    "Corroboration",
    "EmaPosition",
    "apply_cooldown",
    "build_candidates",
    "cooldown_key",
    "grade_conviction",
]
