"""Snapshot access layer.

Provides the data models for every upstream snapshot and the read-only
SnapshotStore that loads them from the data directory.
"""

from squeeze.data.models import (
    EmaSnapshotEntry,
    FundingEntry,
    MarketSnapshots,
    MultiTimeframeEntry,
    OrderBookEntry,
    VolumeEntry,
)
from squeeze.data.snapshots import SnapshotStore

__all__ = [
    "EmaSnapshotEntry",
    "FundingEntry",
    "MarketSnapshots",
    "MultiTimeframeEntry",
    "OrderBookEntry",
    "SnapshotStore",
    "VolumeEntry",
]
