"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SnapshotSettings(BaseSettings):
    """Locations of the upstream snapshots and of this monitor's own files.

    All file names are resolved relative to ``data_dir``.
    All fields configurable via SNAPSHOT_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="SNAPSHOT_")

    data_dir: Path = Path("data")

    # Mandatory inputs
    funding_file: str = "funding-rates-latest.json"
    rsi_file: str = "rsi-latest.json"

    # Optional corroboration inputs
    ema_file: str = "ema-latest.json"
    multi_tf_file: str = "multi-tf-latest.json"
    orderbook_file: str = "orderbook-depth-latest.json"
    volume_file: str = "volume-scanner-latest.json"

    # Written by the monitor
    output_file: str = "squeeze-latest.json"
    state_file: str = "squeeze-state.json"

    def path_for(self, file_name: str) -> Path:
        """Resolve a configured file name against the data directory."""
        return self.data_dir / file_name


class SqueezeSettings(BaseSettings):
    """Confluence policy thresholds.

    Controls candidate construction, the directional RSI gate, EMA extension,
    volume crowding and the per-instrument cooldown window.
    All fields configurable via SQUEEZE_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="SQUEEZE_")

    # Step 1: candidate construction
    oi_threshold_usd: Decimal = Decimal("1000000")  # strictly greater than
    divergence_threshold: Decimal = Decimal("0.002")  # max - min rate spread
    divergence_min_abs_rate: Decimal = Decimal("0.006")  # |avgRate| floor for divergence

    # Step 2: RSI gate (inclusive bounds)
    rsi_long_max: Decimal = Decimal("35")
    rsi_short_min: Decimal = Decimal("65")

    # Step 3: EMA extension
    extended_below_ema200_pct: Decimal = Decimal("-30")

    # Step 7: volume
    high_oi_to_volume_ratio: Decimal = Decimal("3")

    # Step 8: cooldown
    cooldown_hours: int = 4

    @field_validator("rsi_long_max", "rsi_short_min")
    @classmethod
    def _rsi_in_range(cls, value: Decimal) -> Decimal:
        if not Decimal("0") <= value <= Decimal("100"):
            raise ValueError("RSI bounds must lie within 0-100")
        return value

    @property
    def cooldown_ms(self) -> int:
        """Cooldown window in epoch milliseconds."""
        return self.cooldown_hours * 60 * 60 * 1000


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"
    snapshots: SnapshotSettings = Field(default_factory=SnapshotSettings)
    squeeze: SqueezeSettings = Field(default_factory=SqueezeSettings)
