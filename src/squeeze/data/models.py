"""Data models for the upstream snapshot entries consumed by the monitor.

Each snapshot is produced by an independent analyzer and may be stale or
absent on its own schedule. Only the fields the confluence policy reads are
modelled here.

CRITICAL: All rate and price values use Decimal. Never use float.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from squeeze.models import Sentiment


@dataclass
class FundingEntry:
    """Cross-exchange funding aggregate for a single instrument."""

    coin: str
    avg_rate: Decimal
    min_rate: Decimal
    max_rate: Decimal
    sentiment: Sentiment
    exchange_count: int = 0
    oi_usd: Decimal | None = None

    @property
    def rate_spread(self) -> Decimal:
        """Spread between the highest and lowest exchange rate."""
        return self.max_rate - self.min_rate


@dataclass
class EmaSnapshotEntry:
    """Daily EMA 20/50/200 position for a single instrument."""

    ticker: str
    trend: str  # ABOVE_200 / BELOW_200
    alignment: str  # BULLISH / BEARISH / MIXED
    price_vs_ema200: Decimal | None  # percent distance from EMA 200
    signals: list[str] = field(default_factory=list)
    price: Decimal | None = None
    ema20: Decimal | None = None
    ema50: Decimal | None = None
    ema200: Decimal | None = None

    def has_signal(self, *signal_types: str) -> bool:
        return any(s in self.signals for s in signal_types)


@dataclass
class MultiTimeframeEntry:
    """Trend alignment across the analyzed timeframes for one instrument."""

    coin: str
    alignment: str  # BULLISH_ALIGNED / BEARISH_ALIGNED / MIXED
    rsi_divergence: str | None = None


@dataclass
class OrderBookEntry:
    """Near-mid order book imbalance for one instrument."""

    coin: str
    pressure: str  # buy_pressure / sell_pressure / neutral
    imbalance: Decimal | None = None  # bid depth / ask depth
    bid_walls: list[dict] = field(default_factory=list)
    ask_walls: list[dict] = field(default_factory=list)

    @property
    def wall_count(self) -> int:
        return len(self.bid_walls) + len(self.ask_walls)


@dataclass
class VolumeEntry:
    """Volume anomaly readings for one instrument."""

    coin: str
    is_spike: bool = False
    is_dry_up: bool = False
    spike_24h: Decimal | None = None  # current hour volume / 24h average
    oi_to_vol_ratio: Decimal | None = None


@dataclass
class MarketSnapshots:
    """Everything one run reads, keyed by instrument.

    ``funding`` and ``rsi`` are mandatory. The optional snapshots are None
    when their file was absent or unparseable, which skips the matching
    corroboration step.
    """

    funding: list[FundingEntry]
    rsi: dict[str, Decimal]
    ema: dict[str, EmaSnapshotEntry] | None = None
    multi_tf: dict[str, MultiTimeframeEntry] | None = None
    orderbook: dict[str, OrderBookEntry] | None = None
    volume: dict[str, VolumeEntry] | None = None
