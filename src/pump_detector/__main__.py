"""Command-line entry point: `python -m pump_detector`."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging

from pump_detector.config import get_settings
from pump_detector.pipeline import PumpMonitor

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Real-time cryptocurrency pump detection.")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single scan cycle, print the live view as JSON and exit.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override LOG_LEVEL from the environment.",
    )
    return parser.parse_args(argv)


async def _run(monitor: PumpMonitor, *, once: bool) -> None:
    try:
        if once:
            result = await monitor.run_cycle()
            logger.info("Cycle finished: %s", json.dumps(result.to_dict()))
            print(json.dumps(monitor.live().to_dict(), indent=2))
            return

        await monitor.start()
        # Runs until cancelled (Ctrl+C).
        await asyncio.Event().wait()
    finally:
        await monitor.close()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    settings = get_settings()
    level = getattr(logging, args.log_level) if args.log_level else settings.get_logging_level()
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if not args.once and not settings.monitor.auto_start:
        logger.info("MONITOR_AUTO_START is disabled; nothing to do")
        return

    monitor = PumpMonitor(settings)

    try:
        asyncio.run(_run(monitor, once=args.once))
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
