"""Tests for the ConfluenceEngine.

Tests verify:
- RSI gate is mandatory and its bounds are inclusive
- EMA scoring per direction
- Multi-timeframe, order-book and volume corroboration notes
- Graceful degradation when optional snapshots are missing
"""

from decimal import Decimal

import pytest

from squeeze.config import SqueezeSettings
from squeeze.data.models import (
    EmaSnapshotEntry,
    FundingEntry,
    MarketSnapshots,
    MultiTimeframeEntry,
    OrderBookEntry,
    VolumeEntry,
)
from squeeze.engine.confluence import ConfluenceEngine
from squeeze.indicators.funding import classify_sentiment
from squeeze.models import Conviction, Direction


def _make_funding(coin: str = "BTC", avg_rate: str = "-0.008") -> FundingEntry:
    avg = Decimal(avg_rate)
    return FundingEntry(
        coin=coin,
        avg_rate=avg,
        min_rate=avg,
        max_rate=avg,
        sentiment=classify_sentiment(avg),
        exchange_count=4,
        oi_usd=Decimal("5000000"),
    )


def _make_ema(
    ticker: str = "BTC",
    signals: list[str] | None = None,
    alignment: str = "MIXED",
    price_vs_ema200: str | None = "-8.5",
    trend: str = "BELOW_200",
) -> EmaSnapshotEntry:
    return EmaSnapshotEntry(
        ticker=ticker,
        trend=trend,
        alignment=alignment,
        price_vs_ema200=Decimal(price_vs_ema200) if price_vs_ema200 is not None else None,
        signals=signals or [],
    )


def _snapshots(
    funding: list[FundingEntry],
    rsi: dict[str, str],
    **optional,
) -> MarketSnapshots:
    return MarketSnapshots(
        funding=funding,
        rsi={coin: Decimal(value) for coin, value in rsi.items()},
        **optional,
    )


@pytest.fixture
def engine(squeeze_settings: SqueezeSettings) -> ConfluenceEngine:
    return ConfluenceEngine(squeeze_settings)


class TestRsiGate:
    """The RSI gate hard-fails; funding alone never alerts."""

    def test_missing_rsi_means_no_alert(self, engine: ConfluenceEngine) -> None:
        funding = [_make_funding(avg_rate="-0.02")]
        assert engine.evaluate(_snapshots(funding, rsi={})) == []

    def test_rsi_for_other_coin_does_not_count(self, engine: ConfluenceEngine) -> None:
        funding = [_make_funding("BTC")]
        assert engine.evaluate(_snapshots(funding, rsi={"ETH": "20"})) == []

    @pytest.mark.parametrize("rsi, passes", [("35", True), ("34.99", True), ("35.01", False), ("36", False)])
    def test_long_bound(self, engine: ConfluenceEngine, rsi: str, passes: bool) -> None:
        alerts = engine.evaluate(_snapshots([_make_funding()], rsi={"BTC": rsi}))
        assert bool(alerts) is passes

    @pytest.mark.parametrize("rsi, passes", [("65", True), ("80", True), ("64.99", False), ("64", False)])
    def test_short_bound(self, engine: ConfluenceEngine, rsi: str, passes: bool) -> None:
        funding = [_make_funding(avg_rate="0.009")]
        alerts = engine.evaluate(_snapshots(funding, rsi={"BTC": rsi}))
        assert bool(alerts) is passes

    @pytest.mark.parametrize(
        "avg_rate, min_rate, max_rate, rsi",
        [
            ("0.006", "0.004", "0.0075", "70"),
            ("-0.006", "-0.009", "-0.004", "20"),
        ],
    )
    def test_divergence_only_non_crowded_never_alerts(
        self, engine: ConfluenceEngine, avg_rate: str, min_rate: str, max_rate: str, rsi: str
    ) -> None:
        """Only crowded funding passes the gate, even with a confirming RSI."""
        entry = _make_funding("XYZ", avg_rate=avg_rate)
        entry.min_rate = Decimal(min_rate)
        entry.max_rate = Decimal(max_rate)
        assert not entry.sentiment.is_crowded

        assert engine.evaluate(_snapshots([entry], rsi={"XYZ": rsi})) == []

    def test_passing_gate_base_alert(self, engine: ConfluenceEngine) -> None:
        [alert] = engine.evaluate(_snapshots([_make_funding()], rsi={"BTC": "28"}))

        assert alert.direction == Direction.LONG
        assert alert.rsi_confirmed is True
        assert alert.rsi_value == Decimal("28")
        assert alert.rsi_note == "RSI 28 (oversold), long setup"
        assert alert.ema_note == "No EMA data"
        assert alert.conviction == Conviction.MEDIUM
        assert alert.triple_confluence is False
        assert alert.reasons == ["shorts_crowded with $5M OI"]


class TestEmaScoring:
    """Trend position relative to EMA 200."""

    def test_long_battle_zone(self, engine: ConfluenceEngine) -> None:
        ema = {"BTC": _make_ema(signals=["NEAR_EMA200"], price_vs_ema200="-1.2")}

        [alert] = engine.evaluate(_snapshots([_make_funding()], {"BTC": "28"}, ema=ema))

        assert alert.ema_confirms is True
        assert alert.triple_confluence is True
        assert alert.conviction == Conviction.HIGH
        assert "battle zone (-1.2% away)" in alert.ema_note

    def test_long_cross_above(self, engine: ConfluenceEngine) -> None:
        ema = {"BTC": _make_ema(signals=["CROSS_ABOVE_200"])}
        [alert] = engine.evaluate(_snapshots([_make_funding()], {"BTC": "28"}, ema=ema))
        assert alert.ema_confirms is True

    def test_long_ignores_cross_below(self, engine: ConfluenceEngine) -> None:
        ema = {"BTC": _make_ema(signals=["CROSS_BELOW_200"])}
        [alert] = engine.evaluate(_snapshots([_make_funding()], {"BTC": "28"}, ema=ema))
        assert alert.ema_confirms is False

    def test_long_extended(self, engine: ConfluenceEngine) -> None:
        ema = {"BTC": _make_ema(price_vs_ema200="-42.1", alignment="BEARISH")}

        [alert] = engine.evaluate(_snapshots([_make_funding()], {"BTC": "28"}, ema=ema))

        assert alert.ema_confirms is False
        assert alert.conviction == Conviction.MEDIUM_HIGH
        assert "capitulation" in alert.ema_note

    def test_long_at_minus_30_is_not_extended(self, engine: ConfluenceEngine) -> None:
        ema = {"BTC": _make_ema(price_vs_ema200="-30")}
        [alert] = engine.evaluate(_snapshots([_make_funding()], {"BTC": "28"}, ema=ema))
        assert alert.conviction == Conviction.MEDIUM
        assert alert.ema_note == "BELOW_200 MIXED (-30% from 200)"

    def test_short_rejected_at_200(self, engine: ConfluenceEngine) -> None:
        funding = [_make_funding(avg_rate="0.009")]
        ema = {"BTC": _make_ema(signals=["CROSS_BELOW_200"], trend="BELOW_200")}

        [alert] = engine.evaluate(_snapshots(funding, {"BTC": "70"}, ema=ema))

        assert alert.direction == Direction.SHORT
        assert alert.ema_confirms is True
        assert alert.conviction == Conviction.HIGH

    def test_short_bearish_stack(self, engine: ConfluenceEngine) -> None:
        funding = [_make_funding(avg_rate="0.009")]
        ema = {"BTC": _make_ema(alignment="BEARISH")}

        [alert] = engine.evaluate(_snapshots(funding, {"BTC": "70"}, ema=ema))

        assert alert.ema_confirms is True
        assert alert.triple_confluence is True
        assert alert.ema_note == "Bearish EMA stack confirms short bias"
        assert alert.conviction == Conviction.HIGH

    def test_short_extended_below_is_not_scored(self, engine: ConfluenceEngine) -> None:
        """The extension rule only applies to LONG setups."""
        funding = [_make_funding(avg_rate="0.009")]
        ema = {"BTC": _make_ema(price_vs_ema200="-45")}
        [alert] = engine.evaluate(_snapshots(funding, {"BTC": "70"}, ema=ema))
        assert alert.conviction == Conviction.MEDIUM

    def test_ema_snapshot_without_coin(self, engine: ConfluenceEngine) -> None:
        ema = {"ETH": _make_ema("ETH", signals=["NEAR_EMA200"])}
        [alert] = engine.evaluate(_snapshots([_make_funding()], {"BTC": "28"}, ema=ema))
        assert alert.ema_note == "No EMA data"
        assert alert.conviction == Conviction.MEDIUM


class TestMultiTimeframe:
    def test_aligned_against_on_triple_is_very_high(self, engine: ConfluenceEngine) -> None:
        snapshots = _snapshots(
            [_make_funding()],
            {"BTC": "28"},
            ema={"BTC": _make_ema(signals=["NEAR_EMA200"])},
            multi_tf={"BTC": MultiTimeframeEntry(coin="BTC", alignment="BEARISH_ALIGNED")},
        )

        [alert] = engine.evaluate(snapshots)

        assert alert.conviction == Conviction.VERY_HIGH
        assert alert.mtf_note.startswith("All TFs bearish")

    def test_aligned_against_without_triple_only_notes(
        self, engine: ConfluenceEngine
    ) -> None:
        snapshots = _snapshots(
            [_make_funding()],
            {"BTC": "28"},
            multi_tf={"BTC": MultiTimeframeEntry(coin="BTC", alignment="BEARISH_ALIGNED")},
        )

        [alert] = engine.evaluate(snapshots)

        assert alert.conviction == Conviction.MEDIUM
        assert alert.mtf_note.startswith("All TFs bearish")

    def test_same_side_alignment_does_not_boost(self, engine: ConfluenceEngine) -> None:
        snapshots = _snapshots(
            [_make_funding()],
            {"BTC": "28"},
            ema={"BTC": _make_ema(signals=["NEAR_EMA200"])},
            multi_tf={"BTC": MultiTimeframeEntry(coin="BTC", alignment="BULLISH_ALIGNED")},
        )

        [alert] = engine.evaluate(snapshots)

        assert alert.conviction == Conviction.HIGH
        assert alert.mtf_note == "TF alignment: BULLISH_ALIGNED"

    def test_divergence_note(self, engine: ConfluenceEngine) -> None:
        mtf = MultiTimeframeEntry(coin="BTC", alignment="MIXED", rsi_divergence="SHORT_TF_OVERSOLD")
        [alert] = engine.evaluate(_snapshots([_make_funding()], {"BTC": "28"}, multi_tf={"BTC": mtf}))
        assert alert.mtf_note == "RSI divergence: SHORT_TF_OVERSOLD"
        assert alert.conviction == Conviction.MEDIUM


class TestOrderBook:
    def test_supporting_book_promotes_high(self, engine: ConfluenceEngine) -> None:
        snapshots = _snapshots(
            [_make_funding()],
            {"BTC": "28"},
            ema={"BTC": _make_ema(signals=["NEAR_EMA200"])},
            orderbook={
                "BTC": OrderBookEntry(coin="BTC", pressure="buy_pressure", imbalance=Decimal("2.1"))
            },
        )

        [alert] = engine.evaluate(snapshots)

        assert alert.conviction == Conviction.VERY_HIGH
        assert alert.ob_note == "Book supports long, 2.1x bid/ask ratio"

    def test_supporting_book_below_high_does_not_promote(
        self, engine: ConfluenceEngine
    ) -> None:
        snapshots = _snapshots(
            [_make_funding()],
            {"BTC": "28"},
            orderbook={
                "BTC": OrderBookEntry(coin="BTC", pressure="buy_pressure", imbalance=Decimal("2.1"))
            },
        )
        [alert] = engine.evaluate(snapshots)
        assert alert.conviction == Conviction.MEDIUM

    def test_conflicting_book_notes_without_change(self, engine: ConfluenceEngine) -> None:
        snapshots = _snapshots(
            [_make_funding()],
            {"BTC": "28"},
            ema={"BTC": _make_ema(signals=["NEAR_EMA200"])},
            orderbook={
                "BTC": OrderBookEntry(
                    coin="BTC",
                    pressure="sell_pressure",
                    imbalance=Decimal("0.4"),
                    ask_walls=[{"price": 1}, {"price": 2}],
                )
            },
        )

        [alert] = engine.evaluate(snapshots)

        assert alert.conviction == Conviction.HIGH
        assert alert.ob_note == "Book sell_pressure (0.4x) conflicts with setup | 2 wall(s) detected"

    def test_neutral_book_with_walls(self, engine: ConfluenceEngine) -> None:
        snapshots = _snapshots(
            [_make_funding()],
            {"BTC": "28"},
            orderbook={
                "BTC": OrderBookEntry(coin="BTC", pressure="neutral", bid_walls=[{"price": 1}])
            },
        )
        [alert] = engine.evaluate(snapshots)
        assert alert.ob_note == "1 wall(s) detected"

    def test_missing_imbalance_omits_ratio(self, engine: ConfluenceEngine) -> None:
        snapshots = _snapshots(
            [_make_funding()],
            {"BTC": "28"},
            orderbook={"BTC": OrderBookEntry(coin="BTC", pressure="buy_pressure")},
        )
        [alert] = engine.evaluate(snapshots)
        assert alert.ob_note == "Book supports long"

    def test_conflicting_book_without_imbalance(self, engine: ConfluenceEngine) -> None:
        snapshots = _snapshots(
            [_make_funding()],
            {"BTC": "28"},
            orderbook={"BTC": OrderBookEntry(coin="BTC", pressure="sell_pressure")},
        )
        [alert] = engine.evaluate(snapshots)
        assert alert.ob_note == "Book sell_pressure conflicts with setup"


class TestVolume:
    """Volume notes are informational only."""

    def test_spike_and_high_oi_ratio(self, engine: ConfluenceEngine) -> None:
        vol = VolumeEntry(
            coin="BTC", is_spike=True, spike_24h=Decimal("3.2"), oi_to_vol_ratio=Decimal("4.5")
        )

        [alert] = engine.evaluate(_snapshots([_make_funding()], {"BTC": "28"}, volume={"BTC": vol}))

        assert alert.vol_note == "Volume spike: 3.2x vs 24h avg | High OI/Vol: 4.5x, crowded"
        assert alert.conviction == Conviction.MEDIUM

    def test_dry_up(self, engine: ConfluenceEngine) -> None:
        vol = VolumeEntry(coin="BTC", is_dry_up=True, spike_24h=Decimal("0.2"))
        [alert] = engine.evaluate(_snapshots([_make_funding()], {"BTC": "28"}, volume={"BTC": vol}))
        assert alert.vol_note.startswith("Volume dry-up (0.2x avg)")

    def test_ratio_below_threshold_ignored(self, engine: ConfluenceEngine) -> None:
        vol = VolumeEntry(coin="BTC", oi_to_vol_ratio=Decimal("2.99"))
        [alert] = engine.evaluate(_snapshots([_make_funding()], {"BTC": "28"}, volume={"BTC": vol}))
        assert alert.vol_note == ""


class TestAlertSerialization:
    def test_to_dict_layout(self, engine: ConfluenceEngine) -> None:
        [alert] = engine.evaluate(_snapshots([_make_funding()], {"BTC": "28"}))

        data = alert.to_dict()

        assert data["coin"] == "BTC"
        assert data["setupDirection"] == "LONG"
        assert data["avgRate"] == pytest.approx(-0.008)
        assert data["oiUsd"] == 5_000_000
        assert data["rsi"] == 28
        assert data["conviction"] == "MEDIUM"
        assert data["reason"] == "shorts_crowded with $5M OI"
        assert alert.cooldown_key == "LONG_BTC"
