"""Indicator library.

Pure functions over ordered price series and funding numbers: EMA, Wilder
RSI, EMA-stack scoring, funding sentiment and cross-timeframe alignment.
No I/O.
"""

from squeeze.indicators.ema import compute_ema, compute_ema_series
from squeeze.indicators.funding import classify_sentiment
from squeeze.indicators.rsi import compute_rsi, rsi_label
from squeeze.indicators.timeframes import classify_alignment, detect_rsi_divergence
from squeeze.indicators.trend import analyze_ema_stack, classify_stack

__all__ = [
    "analyze_ema_stack",
    "classify_alignment",
    "classify_sentiment",
    "classify_stack",
    "compute_ema",
    "compute_ema_series",
    "compute_rsi",
    "detect_rsi_divergence",
    "rsi_label",
]
