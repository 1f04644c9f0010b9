"""Run driver executing one squeeze-monitor pass per scheduler tick.

Each pass moves through:
  1. LOADING: read all snapshots. A missing or unparseable funding/RSI
     snapshot fails the run (FAILED) before anything is written.
  2. EVALUATING: build candidates, gate on RSI, grade conviction, then
     filter repeats through the cooldown records.
  3. DONE: write the run artifact and persist the cooldown records. Both
     happen on every completed run, with or without alerts.

The process holds no state between passes; the cooldown store is the only
thing that survives, and it is read once and written once per pass.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

import structlog

from squeeze.config import AppSettings
from squeeze.data.snapshots import SnapshotStore
from squeeze.engine.confluence import ConfluenceEngine
from squeeze.engine.cooldown import apply_cooldown
from squeeze.engine.models import Alert
from squeeze.exceptions import MissingMandatoryInputError
from squeeze.logging import get_logger
from squeeze.state.store import CooldownStore, JsonCooldownStore, atomic_write_json

logger = get_logger(__name__)


class RunState(str, Enum):
    """Lifecycle of one pass."""

    LOADING = "loading"
    EVALUATING = "evaluating"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunResult:
    """Outcome of a completed pass."""

    timestamp_ms: int
    new_alerts: list[Alert] = field(default_factory=list)
    all_candidates: list[Alert] = field(default_factory=list)
    state: RunState = RunState.DONE

    @property
    def has_new_alerts(self) -> bool:
        return bool(self.new_alerts)

    @property
    def timestamp(self) -> str:
        """ISO-8601 UTC timestamp with millisecond precision."""
        moment = datetime.fromtimestamp(self.timestamp_ms / 1000, tz=timezone.utc)
        return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def to_dict(self) -> dict:
        return {
            "hasNewAlerts": self.has_new_alerts,
            "alerts": [a.to_dict() for a in self.new_alerts],
            "allCandidates": [a.to_dict() for a in self.all_candidates],
            "timestamp": self.timestamp,
        }


def _now_ms() -> int:
    return int(time.time() * 1000)


def _format_rate_pct(rate: Decimal) -> str:
    return str((rate * 100).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP))


class SqueezeMonitor:
    """Runs one confluence/cooldown pass over the current snapshots.

    Args:
        settings: Application settings (snapshot paths and thresholds).
        snapshot_store: Snapshot loader. Defaults to a SnapshotStore over
            ``settings.snapshots``.
        cooldown_store: Cooldown record store. Defaults to a JsonCooldownStore
            at the configured state file.
        clock: Returns the current time in epoch millis.
    """

    def __init__(
        self,
        settings: AppSettings,
        snapshot_store: SnapshotStore | None = None,
        cooldown_store: CooldownStore | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._settings = settings
        self._snapshot_store = snapshot_store or SnapshotStore(settings.snapshots)
        self._cooldown_store = cooldown_store or JsonCooldownStore(
            settings.snapshots.path_for(settings.snapshots.state_file)
        )
        self._engine = ConfluenceEngine(settings.squeeze)
        self._clock = clock
        self._state = RunState.LOADING

    @property
    def state(self) -> RunState:
        return self._state

    def run_once(self, now_ms: int | None = None) -> RunResult:
        """Execute a single pass.

        Args:
            now_ms: Evaluation time in epoch millis. Defaults to the clock.

        Returns:
            RunResult of the completed pass.

        Raises:
            MissingMandatoryInputError: If the funding or RSI snapshot is
                absent or unparseable. Nothing is written in that case.
        """
        now = self._clock() if now_ms is None else now_ms
        structlog.contextvars.bind_contextvars(run_id=uuid.uuid4().hex[:12])
        try:
            return self._run(now)
        finally:
            structlog.contextvars.unbind_contextvars("run_id")

    def _run(self, now: int) -> RunResult:
        self._state = RunState.LOADING
        try:
            snapshots = self._snapshot_store.load()
        except MissingMandatoryInputError as e:
            self._state = RunState.FAILED
            logger.error(
                "mandatory_snapshot_missing",
                snapshot=e.snapshot,
                path=str(e.path),
                detail=e.detail,
            )
            raise
        last_alerted = self._cooldown_store.load()

        self._state = RunState.EVALUATING
        candidates = self._engine.evaluate(snapshots)
        outcome = apply_cooldown(
            candidates,
            last_alerted,
            now_ms=now,
            cooldown_ms=self._settings.squeeze.cooldown_ms,
        )

        result = RunResult(
            timestamp_ms=now,
            new_alerts=outcome.new_alerts,
            all_candidates=candidates,
        )
        self._log_candidates(result)

        output_path = self._settings.snapshots.path_for(self._settings.snapshots.output_file)
        atomic_write_json(output_path, result.to_dict())
        self._cooldown_store.save(outcome.last_alerted)

        self._state = RunState.DONE
        logger.info(
            "squeeze_run_complete",
            funding_entries=len(snapshots.funding),
            candidates=len(candidates),
            new_alerts=len(outcome.new_alerts),
            suppressed=len(outcome.suppressed),
            output=str(output_path),
        )
        return result

    @staticmethod
    def _log_candidates(result: RunResult) -> None:
        new_keys = {id(a) for a in result.new_alerts}
        for alert in result.all_candidates:
            logger.info(
                "squeeze_candidate",
                coin=alert.coin,
                direction=alert.direction.value,
                conviction=alert.conviction.value,
                funding_pct=_format_rate_pct(alert.avg_rate),
                rsi=alert.rsi_value,
                triple_confluence=alert.triple_confluence,
                status="new" if id(alert) in new_keys else "cooldown",
                reason=alert.reason,
            )
