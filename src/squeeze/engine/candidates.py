"""Candidate construction from raw funding numbers.

Two independent rules can nominate an instrument:
- crowding: the funding sentiment is shorts_crowded or longs_crowded and
  open interest exceeds the OI threshold;
- divergence: exchanges disagree (max - min rate above the divergence
  threshold), open interest exceeds the OI threshold and the average rate
  is itself extreme.

When both fire, the crowding reason is listed first. Instruments matching
neither rule are dropped without being reported.

CRITICAL: All comparisons use Decimal. Never use float.
"""

from decimal import ROUND_HALF_UP, Decimal

from squeeze.config import SqueezeSettings
from squeeze.data.models import FundingEntry
from squeeze.engine.models import Candidate
from squeeze.logging import get_logger
from squeeze.models import Direction, Sentiment

logger = get_logger(__name__)

_MILLION = Decimal("1000000")


def _format_oi(oi_usd: Decimal) -> str:
    return f"${(oi_usd / _MILLION).quantize(Decimal('1'), rounding=ROUND_HALF_UP)}M"


def _direction_for(entry: FundingEntry) -> Direction:
    """Reversal direction: fade whichever side is paying.

    Crowded sentiment decides directly. Otherwise the sign of the average
    rate does (negative funding means shorts pay, so the setup is LONG);
    such candidates are reported but cannot pass the RSI gate.
    """
    if entry.sentiment == Sentiment.SHORTS_CROWDED:
        return Direction.LONG
    if entry.sentiment == Sentiment.LONGS_CROWDED:
        return Direction.SHORT
    return Direction.LONG if entry.avg_rate < 0 else Direction.SHORT


def candidate_reasons(entry: FundingEntry, settings: SqueezeSettings) -> list[str]:
    """Return the reasons of every candidate rule that fires for ``entry``."""
    reasons: list[str] = []
    if entry.oi_usd is None or entry.oi_usd <= settings.oi_threshold_usd:
        return reasons

    if entry.sentiment.is_crowded:
        reasons.append(f"{entry.sentiment.value} with {_format_oi(entry.oi_usd)} OI")

    spread = entry.rate_spread
    if (
        spread > settings.divergence_threshold
        and abs(entry.avg_rate) >= settings.divergence_min_abs_rate
    ):
        pct = (spread * 100).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
        reasons.append(f"exchange divergence {pct}% spread")

    return reasons


def build_candidates(
    funding: list[FundingEntry], settings: SqueezeSettings
) -> list[Candidate]:
    """Build one candidate per funding entry that fires a candidate rule.

    Args:
        funding: Parsed funding snapshot entries.
        settings: Thresholds for OI, divergence spread and minimum rate.

    Returns:
        Candidates in funding snapshot order.
    """
    candidates: list[Candidate] = []
    for entry in funding:
        reasons = candidate_reasons(entry, settings)
        if not reasons:
            continue
        candidates.append(
            Candidate(funding=entry, direction=_direction_for(entry), reasons=reasons)
        )

    logger.debug(
        "candidates_built",
        funding_entries=len(funding),
        candidates=len(candidates),
    )
    return candidates
