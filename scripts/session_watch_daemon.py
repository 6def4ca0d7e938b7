"""
Daemon that polls the session cache and logs sessions appearing, expiring or switching role.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from clubhub.config import get_settings
from clubhub.dependencies import get_session_store
from clubhub.watcher import SessionChange, SessionWatcher

logger = logging.getLogger(__name__)


def log_change(change: SessionChange) -> None:
    logger.info("Session %s... %s (role=%s)", change.token[:8], change.kind, change.role)


def main() -> int:
    parser = argparse.ArgumentParser(description="Club Hub session watcher")
    parser.add_argument(
        "--interval-seconds",
        type=float,
        default=None,
        help="Seconds between polls (defaults to CLUBHUB_SESSION_POLL_SECONDS)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll and exit",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()
    interval = args.interval_seconds or settings.session_poll_seconds
    watcher = SessionWatcher(get_session_store(), poll_seconds=interval)
    watcher.add_listener(log_change)

    try:
        watcher.run_loop(max_polls=1 if args.once else None)
    except KeyboardInterrupt:
        logger.info("Session watcher stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
