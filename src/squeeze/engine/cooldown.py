"""Cooldown filtering of repeat alerts per instrument and direction."""

from dataclasses import dataclass, field

from squeeze.engine.models import Alert
from squeeze.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CooldownOutcome:
    """Result of filtering one run's alerts against the cooldown records.

    ``last_alerted`` is a new mapping; the input mapping is never mutated.
    """

    new_alerts: list[Alert] = field(default_factory=list)
    suppressed: list[Alert] = field(default_factory=list)
    last_alerted: dict[str, int] = field(default_factory=dict)


def apply_cooldown(
    alerts: list[Alert],
    last_alerted: dict[str, int],
    now_ms: int,
    cooldown_ms: int,
) -> CooldownOutcome:
    """Split alerts into new and suppressed, stamping new ones with ``now_ms``.

    An alert is suppressed when less than ``cooldown_ms`` has elapsed since
    the last alert for the same direction and instrument. Exactly
    ``cooldown_ms`` elapsed counts as new. Records for keys not alerted this
    run are carried over unchanged.

    Args:
        alerts: Alerts that passed the confluence steps, in evaluation order.
        last_alerted: Cooldown records, key -> epoch millis of last alert.
        now_ms: Current time in epoch millis.
        cooldown_ms: Cooldown window in millis.

    Returns:
        CooldownOutcome with new alerts, suppressed alerts and the updated
        records.
    """
    outcome = CooldownOutcome(last_alerted=dict(last_alerted))

    for alert in alerts:
        key = alert.cooldown_key
        last = outcome.last_alerted.get(key)
        if last is not None and now_ms - last < cooldown_ms:
            outcome.suppressed.append(alert)
            logger.debug(
                "alert_in_cooldown",
                key=key,
                remaining_ms=cooldown_ms - (now_ms - last),
            )
            continue

        outcome.last_alerted[key] = now_ms
        outcome.new_alerts.append(alert)

    return outcome
