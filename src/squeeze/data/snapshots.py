"""Read-only access to the upstream JSON snapshots.

Provides SnapshotStore with one typed loader per snapshot. Funding and RSI
are mandatory: an absent or unparseable file raises
MissingMandatoryInputError. The EMA, multi-timeframe, order-book and volume
snapshots are optional: failures are logged and the loader returns None.
Within a readable file, a single malformed record is skipped and the rest of
the file is still used.

CRITICAL: Numbers are parsed straight into Decimal (json parse_float).
"""

import json
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, TypeVar

from squeeze.config import SnapshotSettings
from squeeze.data.models import (
    EmaSnapshotEntry,
    FundingEntry,
    MarketSnapshots,
    MultiTimeframeEntry,
    OrderBookEntry,
    VolumeEntry,
)
from squeeze.exceptions import MalformedEntryError, MissingMandatoryInputError
from squeeze.indicators.funding import classify_sentiment
from squeeze.logging import get_logger
from squeeze.models import Sentiment

logger = get_logger(__name__)

T = TypeVar("T")

#: Funding rates are fractions per interval; anything past 100% is corrupt.
MAX_ABS_RATE = Decimal("1")
#: Open interest at or above this is corrupt.
MAX_OI_USD = Decimal("1e15")


# ──────────────────────────────────────────────
# Field coercion
# ──────────────────────────────────────────────


def _to_decimal(raw: dict, key: str) -> Decimal:
    value = raw.get(key)
    if value is None or isinstance(value, bool):
        raise MalformedEntryError(f"{key} missing or not numeric: {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation as e:
        raise MalformedEntryError(f"{key} not numeric: {value!r}") from e
    if not result.is_finite():
        raise MalformedEntryError(f"{key} not finite: {value!r}")
    return result


def _optional_decimal(raw: dict, key: str) -> Decimal | None:
    if raw.get(key) is None:
        return None
    return _to_decimal(raw, key)


def _require_str(raw: dict, key: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value:
        raise MalformedEntryError(f"{key} missing or not a string: {value!r}")
    return value


def _optional_list(raw: dict, key: str) -> list:
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedEntryError(f"{key} is not a list: {value!r}")
    return value


def _bounded(value: Decimal, key: str, limit: Decimal) -> Decimal:
    if abs(value) > limit:
        raise MalformedEntryError(f"{key} out of range: {value}")
    return value


def _exchange_count(raw: dict) -> int:
    """Read exchangeCount, accepting integral numbers written as 5.0."""
    value = raw.get("exchangeCount")
    if value is None:
        return 0
    if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        value = int(value)
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise MalformedEntryError(f"exchangeCount not a non-negative integer: {value!r}")
    return value

# ──────────────────────────────────────────────
# Entry parsers (None means "skip on purpose")
# ──────────────────────────────────────────────


def parse_funding_entry(raw: dict) -> FundingEntry:
    """Parse one ``coins`` record of the funding snapshot.

    minRate/maxRate default to avgRate when absent. When sentiment is absent
    it is derived from avgRate. Rates beyond +/-100% per interval and OI at
    or above $1 quadrillion are rejected as corrupt.
    """
    avg_rate = _bounded(_to_decimal(raw, "avgRate"), "avgRate", MAX_ABS_RATE)
    min_rate = _optional_decimal(raw, "minRate")
    max_rate = _optional_decimal(raw, "maxRate")
    if min_rate is not None:
        _bounded(min_rate, "minRate", MAX_ABS_RATE)
    if max_rate is not None:
        _bounded(max_rate, "maxRate", MAX_ABS_RATE)

    raw_sentiment = raw.get("sentiment")
    if raw_sentiment is None:
        sentiment = classify_sentiment(avg_rate)
    else:
        try:
            sentiment = Sentiment(raw_sentiment)
        except ValueError as e:
            raise MalformedEntryError(f"unknown sentiment: {raw_sentiment!r}") from e

    oi_usd = _optional_decimal(raw, "oiUsd")
    if oi_usd is not None and abs(oi_usd) >= MAX_OI_USD:
        raise MalformedEntryError(f"oiUsd out of range: {oi_usd}")

    return FundingEntry(
        coin=_require_str(raw, "coin"),
        avg_rate=avg_rate,
        min_rate=avg_rate if min_rate is None else min_rate,
        max_rate=avg_rate if max_rate is None else max_rate,
        sentiment=sentiment,
        exchange_count=_exchange_count(raw),
        oi_usd=oi_usd,
    )


def parse_rsi_entry(raw: dict) -> tuple[str, Decimal]:
    rsi = _to_decimal(raw, "rsi")
    if not Decimal("0") <= rsi <= Decimal("100"):
        raise MalformedEntryError(f"rsi out of range: {rsi}")
    return _require_str(raw, "ticker"), rsi


def parse_ema_entry(raw: dict) -> EmaSnapshotEntry | None:
    if raw.get("error"):
        return None
    signals = []
    for sig in _optional_list(raw, "signals"):
        sig_type = sig.get("type") if isinstance(sig, dict) else sig
        if not isinstance(sig_type, str):
            raise MalformedEntryError(f"signal without type: {sig!r}")
        signals.append(sig_type)
    return EmaSnapshotEntry(
        ticker=_require_str(raw, "ticker"),
        trend=raw.get("trend") or "UNKNOWN",
        alignment=raw.get("alignment") or "MIXED",
        price_vs_ema200=_optional_decimal(raw, "priceVsEMA200"),
        signals=signals,
        price=_optional_decimal(raw, "price"),
        ema20=_optional_decimal(raw, "ema20"),
        ema50=_optional_decimal(raw, "ema50"),
        ema200=_optional_decimal(raw, "ema200"),
    )


def parse_multi_tf_entry(raw: dict) -> MultiTimeframeEntry:
    divergence = raw.get("rsiDivergence")
    return MultiTimeframeEntry(
        coin=_require_str(raw, "coin"),
        alignment=raw.get("alignment") or "MIXED",
        rsi_divergence=divergence if isinstance(divergence, str) and divergence else None,
    )


def parse_orderbook_entry(raw: dict) -> OrderBookEntry | None:
    if raw.get("error"):
        return None
    return OrderBookEntry(
        coin=_require_str(raw, "coin"),
        pressure=raw.get("pressure") or "neutral",
        imbalance=_optional_decimal(raw, "imbalance"),
        bid_walls=_optional_list(raw, "bidWalls"),
        ask_walls=_optional_list(raw, "askWalls"),
    )


def parse_volume_entry(raw: dict) -> VolumeEntry:
    return VolumeEntry(
        coin=_require_str(raw, "coin"),
        is_spike=bool(raw.get("isSpike")),
        is_dry_up=bool(raw.get("isDryUp")),
        spike_24h=_optional_decimal(raw, "spike24h"),
        oi_to_vol_ratio=_optional_decimal(raw, "oiToVolRatio"),
    )


# ──────────────────────────────────────────────
# Store
# ──────────────────────────────────────────────


class SnapshotStore:
    """Typed loaders for every snapshot the monitor consumes.

    Args:
        settings: Data directory and snapshot file names.

    Usage:
        store = SnapshotStore(settings.snapshots)
        snapshots = store.load()
    """

    def __init__(self, settings: SnapshotSettings) -> None:
        self._settings = settings

    def load(self) -> MarketSnapshots:
        """Load all snapshots.

        Raises:
            MissingMandatoryInputError: If funding or RSI cannot be read.
        """
        return MarketSnapshots(
            funding=self.load_funding(),
            rsi=self.load_rsi(),
            ema=self.load_ema(),
            multi_tf=self.load_multi_tf(),
            orderbook=self.load_orderbook(),
            volume=self.load_volume(),
        )

    def load_funding(self) -> list[FundingEntry]:
        records = self._read_mandatory("funding", self._settings.funding_file, "coins")
        return self._parse_records("funding", records, parse_funding_entry)

    def load_rsi(self) -> dict[str, Decimal]:
        records = self._read_mandatory("rsi", self._settings.rsi_file, "coins")
        return dict(self._parse_records("rsi", records, parse_rsi_entry))

    def load_ema(self) -> dict[str, EmaSnapshotEntry] | None:
        records = self._read_optional("ema", self._settings.ema_file, "coins")
        if records is None:
            return None
        entries = self._parse_records("ema", records, parse_ema_entry)
        return {e.ticker: e for e in entries}

    def load_multi_tf(self) -> dict[str, MultiTimeframeEntry] | None:
        records = self._read_optional("multi_tf", self._settings.multi_tf_file, "results")
        if records is None:
            return None
        entries = self._parse_records("multi_tf", records, parse_multi_tf_entry)
        return {e.coin: e for e in entries}

    def load_orderbook(self) -> dict[str, OrderBookEntry] | None:
        records = self._read_optional("orderbook", self._settings.orderbook_file, "results")
        if records is None:
            return None
        entries = self._parse_records("orderbook", records, parse_orderbook_entry)
        return {e.coin: e for e in entries}

    def load_volume(self) -> dict[str, VolumeEntry] | None:
        records = self._read_optional("volume", self._settings.volume_file, "results")
        if records is None:
            return None
        entries = self._parse_records("volume", records, parse_volume_entry)
        return {e.coin: e for e in entries}

    # ──────────────────────────────────────────────
    # Internals
    # ──────────────────────────────────────────────

    @staticmethod
    def _read_records(path: Path, key: str) -> list:
        """Read a snapshot file and return its record list.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the content is not JSON or not the expected shape.
        """
        payload = json.loads(path.read_text(encoding="utf-8"), parse_float=Decimal)
        if not isinstance(payload, dict):
            raise ValueError("snapshot root is not an object")
        records = payload.get(key, [])
        if not isinstance(records, list):
            raise ValueError(f"'{key}' is not a list")
        return records

    def _read_mandatory(self, name: str, file_name: str, key: str) -> list:
        path = self._settings.path_for(file_name)
        try:
            records = self._read_records(path, key)
        except FileNotFoundError as e:
            raise MissingMandatoryInputError(name, path, "file not found") from e
        except (OSError, ValueError) as e:
            raise MissingMandatoryInputError(name, path, str(e)) from e
        logger.debug("snapshot_read", snapshot=name, path=str(path), records=len(records))
        return records

    def _read_optional(self, name: str, file_name: str, key: str) -> list | None:
        path = self._settings.path_for(file_name)
        try:
            records = self._read_records(path, key)
        except (OSError, ValueError) as e:
            logger.warning(
                "optional_snapshot_unavailable",
                snapshot=name,
                path=str(path),
                error=str(e),
            )
            return None
        logger.debug("snapshot_read", snapshot=name, path=str(path), records=len(records))
        return records

    @staticmethod
    def _parse_records(
        name: str, records: list, parser: Callable[[dict], T | None]
    ) -> list[T]:
        parsed: list[T] = []
        for index, raw in enumerate(records):
            try:
                if not isinstance(raw, dict):
                    raise MalformedEntryError(f"record is not an object: {raw!r}")
                entry = parser(raw)
            except MalformedEntryError as e:
                logger.warning(
                    "malformed_entry_skipped",
                    snapshot=name,
                    index=index,
                    error=str(e),
                )
                continue
            if entry is not None:
                parsed.append(entry)

        logger.info("snapshot_loaded", snapshot=name, entries=len(parsed))
        return parsed
