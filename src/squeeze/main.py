"""Entry point for the squeeze monitor.

Invoked once per tick by an external scheduler. Loads settings, configures
logging, runs a single pass and exits:
- 0 when the pass completed, with or without candidates;
- 1 when a mandatory snapshot (funding or RSI) was missing or unparseable.
"""

import sys

from squeeze.config import AppSettings
from squeeze.exceptions import MissingMandatoryInputError
from squeeze.logging import get_logger, setup_logging
from squeeze.runner import SqueezeMonitor


def run(settings: AppSettings | None = None) -> int:
    """Run one pass and return the process exit code."""
    settings = settings or AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("squeeze.main")

    monitor = SqueezeMonitor(settings)
    try:
        result = monitor.run_once()
    except MissingMandatoryInputError:
        logger.error("squeeze_run_failed", state=monitor.state.value)
        return 1

    logger.info(
        "squeeze_monitor_finished",
        has_new_alerts=result.has_new_alerts,
        new_alerts=len(result.new_alerts),
    )
    return 0


def main() -> None:
    """Synchronous console entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
