"""Shared test fixtures for the squeeze monitor."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from squeeze.config import AppSettings, SnapshotSettings, SqueezeSettings


@pytest.fixture
def squeeze_settings() -> SqueezeSettings:
    """Default confluence thresholds."""
    return SqueezeSettings()


@pytest.fixture
def snapshot_settings(tmp_path: Path) -> SnapshotSettings:
    """Snapshot settings rooted at the test's temporary directory."""
    return SnapshotSettings(data_dir=tmp_path)


@pytest.fixture
def app_settings(
    snapshot_settings: SnapshotSettings, squeeze_settings: SqueezeSettings
) -> AppSettings:
    """Return AppSettings with test defaults and a temporary data directory."""
    return AppSettings(
        log_level="DEBUG",
        snapshots=snapshot_settings,
        squeeze=squeeze_settings,
    )


@pytest.fixture
def write_snapshot(tmp_path: Path) -> Callable[[str, object], Path]:
    """Return a helper writing a JSON payload under the temporary data dir."""

    def _write(file_name: str, payload: object) -> Path:
        path = tmp_path / file_name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write
