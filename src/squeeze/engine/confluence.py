"""Confluence engine turning funding candidates into graded squeeze alerts.

For each candidate the engine:
1. Applies the directional RSI gate (LONG needs RSI <= 35, SHORT needs
   RSI >= 65). Only crowded funding can pass: a divergence-only candidate
   with non-crowded sentiment never alerts. Missing RSI or an RSI outside
   the bound also drops the candidate, so funding alone never alerts.
2. Scores trend position against EMA 200.
3. Notes multi-timeframe alignment and RSI divergence.
4. Notes order-book pressure and liquidity walls.
5. Notes volume spikes, dry-ups and OI/volume crowding.
6. Grades conviction from the collected facts with the ordered raise-only
   rules in ``squeeze.engine.conviction``.

Graceful degradation: a missing optional snapshot skips its step. Cooldown
filtering happens afterwards, in ``squeeze.engine.cooldown``.

CRITICAL: All comparisons use Decimal. Never use float.
"""

from decimal import Decimal

from squeeze.config import SqueezeSettings
from squeeze.data.models import (
    EmaSnapshotEntry,
    MarketSnapshots,
    MultiTimeframeEntry,
    OrderBookEntry,
    VolumeEntry,
)
from squeeze.engine.candidates import build_candidates
from squeeze.engine.conviction import Corroboration, EmaPosition, grade_conviction
from squeeze.engine.models import Alert, Candidate
from squeeze.logging import get_logger
from squeeze.models import Direction

logger = get_logger(__name__)

#: Signals that put price in the EMA 200 battle zone, per direction.
_BATTLE_ZONE_SIGNALS: dict[Direction, tuple[str, ...]] = {
    Direction.LONG: ("NEAR_EMA200", "CROSS_ABOVE_200"),
    Direction.SHORT: ("NEAR_EMA200", "CROSS_BELOW_200"),
}

#: Multi-timeframe alignment that is fully against each reversal direction.
_ALIGNED_AGAINST: dict[Direction, str] = {
    Direction.LONG: "BEARISH_ALIGNED",
    Direction.SHORT: "BULLISH_ALIGNED",
}

#: Order-book pressure that supports each direction.
_SUPPORTING_PRESSURE: dict[Direction, str] = {
    Direction.LONG: "buy_pressure",
    Direction.SHORT: "sell_pressure",
}


class ConfluenceEngine:
    """Gates and grades squeeze candidates against independent indicators.

    Args:
        settings: Candidate thresholds, RSI bounds, EMA extension and
            volume ratio settings.
    """

    def __init__(self, settings: SqueezeSettings) -> None:
        self._settings = settings

    def evaluate(self, snapshots: MarketSnapshots) -> list[Alert]:
        """Build candidates from funding and evaluate each one.

        Returns:
            Alerts for every candidate that passed the RSI gate, in funding
            snapshot order. Cooldown is not applied here.
        """
        alerts: list[Alert] = []
        for candidate in build_candidates(snapshots.funding, self._settings):
            alert = self.evaluate_candidate(candidate, snapshots)
            if alert is not None:
                alerts.append(alert)
        return alerts

    def evaluate_candidate(
        self, candidate: Candidate, snapshots: MarketSnapshots
    ) -> Alert | None:
        """Run the RSI gate and corroboration steps for one candidate.

        Returns:
            The graded Alert, or None when the RSI gate rejects the candidate.
        """
        coin = candidate.coin
        direction = candidate.direction

        if not candidate.funding.sentiment.is_crowded:
            logger.info(
                "rsi_gate_rejected",
                coin=coin,
                direction=direction.value,
                reason="sentiment_not_crowded",
            )
            return None

        rsi = snapshots.rsi.get(coin)
        if rsi is None:
            logger.info(
                "rsi_gate_rejected",
                coin=coin,
                direction=direction.value,
                reason="no_rsi_data",
            )
            return None
        rsi_note = self._rsi_gate(direction, rsi)
        if rsi_note is None:
            logger.info(
                "rsi_gate_rejected",
                coin=coin,
                direction=direction.value,
                reason="rsi_not_confirming",
                rsi=rsi,
            )
            return None

        facts = Corroboration(rsi_confirmed=True)

        ema_entry = snapshots.ema.get(coin) if snapshots.ema is not None else None
        facts.ema_position, ema_note = self._score_ema(direction, ema_entry)

        mtf_note = ""
        if snapshots.multi_tf is not None and coin in snapshots.multi_tf:
            facts.mtf_aligned_against, mtf_note = self._score_multi_tf(
                direction, snapshots.multi_tf[coin]
            )

        ob_note = ""
        if snapshots.orderbook is not None and coin in snapshots.orderbook:
            facts.orderbook_supports, ob_note = self._score_orderbook(
                direction, snapshots.orderbook[coin]
            )

        vol_note = ""
        if snapshots.volume is not None and coin in snapshots.volume:
            vol_note = self._volume_note(snapshots.volume[coin])

        conviction, fired = grade_conviction(facts)

        entry = candidate.funding
        return Alert(
            coin=coin,
            direction=direction,
            sentiment=entry.sentiment,
            avg_rate=entry.avg_rate,
            oi_usd=entry.oi_usd,
            exchange_count=entry.exchange_count,
            rsi_value=rsi,
            rsi_confirmed=facts.rsi_confirmed,
            rsi_note=rsi_note,
            ema_note=ema_note,
            ema_confirms=facts.ema_confirms,
            mtf_note=mtf_note,
            ob_note=ob_note,
            vol_note=vol_note,
            triple_confluence=facts.triple_confluence,
            conviction=conviction,
            reasons=list(candidate.reasons),
            conviction_rules=fired,
        )

    # ──────────────────────────────────────────────
    # Steps
    # ──────────────────────────────────────────────

    def _rsi_gate(self, direction: Direction, rsi: Decimal) -> str | None:
        """Return the RSI note when RSI confirms the reversal, else None."""
        if direction == Direction.LONG and rsi <= self._settings.rsi_long_max:
            return f"RSI {rsi} (oversold), long setup"
        if direction == Direction.SHORT and rsi >= self._settings.rsi_short_min:
            return f"RSI {rsi} (overbought), short setup"
        return None

    def _score_ema(
        self, direction: Direction, ema: EmaSnapshotEntry | None
    ) -> tuple[EmaPosition, str]:
        if ema is None:
            return EmaPosition.NO_DATA, "No EMA data"

        distance = ema.price_vs_ema200
        raw_note = f"{ema.trend} {ema.alignment} ({distance}% from 200)"

        if ema.has_signal(*_BATTLE_ZONE_SIGNALS[direction]):
            if direction == Direction.LONG:
                return (
                    EmaPosition.BATTLE_ZONE,
                    f"EMA 200 battle zone ({distance}% away), squeeze has structure",
                )
            return EmaPosition.BATTLE_ZONE, "Rejected at EMA 200, short has structure"

        if direction == Direction.LONG:
            if distance is not None and distance < self._settings.extended_below_ema200_pct:
                return (
                    EmaPosition.EXTENDED,
                    f"{distance}% below EMA 200, extended, capitulation bounce possible",
                )
        elif ema.alignment == "BEARISH":
            return EmaPosition.BEARISH_STACK, "Bearish EMA stack confirms short bias"

        return EmaPosition.UNCONFIRMED, raw_note

    @staticmethod
    def _score_multi_tf(
        direction: Direction, mtf: MultiTimeframeEntry
    ) -> tuple[bool, str]:
        if mtf.alignment == _ALIGNED_AGAINST[direction]:
            side = "bearish" if direction == Direction.LONG else "bullish"
            return True, f"All TFs {side}, max squeeze potential if reversal triggers"
        if mtf.rsi_divergence:
            return False, f"RSI divergence: {mtf.rsi_divergence}"
        return False, f"TF alignment: {mtf.alignment}"

    @staticmethod
    def _score_orderbook(direction: Direction, ob: OrderBookEntry) -> tuple[bool, str]:
        supports = ob.pressure == _SUPPORTING_PRESSURE[direction]
        has_ratio = ob.imbalance is not None
        if supports and direction == Direction.LONG:
            note = "Book supports long"
            if has_ratio:
                note += f", {ob.imbalance}x bid/ask ratio"
        elif supports:
            note = "Book supports short"
            if has_ratio:
                note += f", {ob.imbalance}x ask/bid ratio"
        elif ob.pressure != "neutral":
            ratio = f" ({ob.imbalance}x)" if has_ratio else ""
            note = f"Book {ob.pressure}{ratio} conflicts with setup"
        else:
            note = ""

        if ob.wall_count:
            walls = f"{ob.wall_count} wall(s) detected"
            note = f"{note} | {walls}" if note else walls
        return supports, note

    def _volume_note(self, vol: VolumeEntry) -> str:
        parts: list[str] = []
        if vol.is_spike:
            parts.append(f"Volume spike: {vol.spike_24h}x vs 24h avg")
        elif vol.is_dry_up:
            parts.append(f"Volume dry-up ({vol.spike_24h}x avg), thin liquidity = sharper moves")
        if (
            vol.oi_to_vol_ratio is not None
            and vol.oi_to_vol_ratio >= self._settings.high_oi_to_volume_ratio
        ):
            parts.append(f"High OI/Vol: {vol.oi_to_vol_ratio}x, crowded")
        return " | ".join(parts)
