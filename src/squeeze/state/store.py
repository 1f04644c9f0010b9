"""Durable cooldown records.

Defines the CooldownStore contract used by the run driver. The JSON
implementation persists a flat ``"<DIRECTION>_<COIN>" -> epoch millis``
mapping; the in-memory implementation backs tests.

Records are never expired or pruned.
"""

import json
import math
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from squeeze.logging import get_logger

logger = get_logger(__name__)


def atomic_write_json(path: Path, payload: Any) -> None:
    """Write ``payload`` as indented JSON, replacing ``path`` atomically.

    Parent directories are created as needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2)
            fh.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class CooldownStore(ABC):
    """Abstract key-value store for last-alert timestamps."""

    @abstractmethod
    def load(self) -> dict[str, int]:
        """Return the cooldown records, or an empty mapping on first run."""
        ...

    @abstractmethod
    def save(self, last_alerted: dict[str, int]) -> None:
        """Persist the full cooldown mapping, replacing what was stored."""
        ...


class InMemoryCooldownStore(CooldownStore):
    """Process-local store. Each save replaces the held mapping with a copy."""

    def __init__(self, initial: dict[str, int] | None = None) -> None:
        self._records = dict(initial or {})
        self.save_count = 0

    def load(self) -> dict[str, int]:
        return dict(self._records)

    def save(self, last_alerted: dict[str, int]) -> None:
        self._records = dict(last_alerted)
        self.save_count += 1


class JsonCooldownStore(CooldownStore):
    """Cooldown records persisted as a JSON object on local disk.

    An absent file is a first run. An unreadable or corrupt file is logged
    and treated as empty so that the run still completes; its records are
    overwritten at the next save. The older wrapped layout
    ``{"lastAlerted": {...}}`` is accepted on load.

    Args:
        path: Location of the state file.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, int]:
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.info("cooldown_state_absent", path=str(self._path))
            return {}
        except (OSError, ValueError) as e:
            logger.warning("cooldown_state_unreadable", path=str(self._path), error=str(e))
            return {}

        if isinstance(payload, dict) and isinstance(payload.get("lastAlerted"), dict):
            payload = payload["lastAlerted"]
        if not isinstance(payload, dict):
            logger.warning(
                "cooldown_state_unreadable",
                path=str(self._path),
                error="root is not an object",
            )
            return {}

        records: dict[str, int] = {}
        for key, value in payload.items():
            if (
                isinstance(value, bool)
                or not isinstance(value, (int, float))
                or (isinstance(value, float) and not math.isfinite(value))
            ):
                logger.warning("cooldown_record_skipped", key=key, value=repr(value))
                continue
            records[key] = int(value)

        logger.debug("cooldown_state_loaded", path=str(self._path), records=len(records))
        return records

    def save(self, last_alerted: dict[str, int]) -> None:
        atomic_write_json(self._path, dict(sorted(last_alerted.items())))
        logger.debug("cooldown_state_saved", path=str(self._path), records=len(last_alerted))
