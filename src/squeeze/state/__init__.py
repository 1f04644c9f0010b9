"""Alert state persistence (cooldown records)."""

from squeeze.state.store import (
    CooldownStore,
    InMemoryCooldownStore,
    JsonCooldownStore,
    atomic_write_json,
)

__all__ = [
    "CooldownStore",
    "InMemoryCooldownStore",
    "JsonCooldownStore",
    "atomic_write_json",
]
