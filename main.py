#!/usr/bin/env python3
"""
Disclosure Ingest - Command Line Entry Point

Runs ingestion once (for cron jobs and smoke tests) or keeps the recurring
schedule alive in the foreground:
- Daily run at 11:00 ET
- Weekly deep run on Sunday at 08:00 ET
"""
from __future__ import annotations

import time
import logging
import signal as sig

from config.settings import get_config
from modules.orchestrator import run_ingestion
from modules.scheduler import IngestScheduler

# Module logger
main_logger = logging.getLogger("disclosure_ingest.main")


class ScheduleService:
    """Foreground process that owns the scheduler until a shutdown signal."""

    def __init__(self, scheduler: IngestScheduler = None):
        self.config = get_config()
        self.scheduler = scheduler or IngestScheduler()
        self._running = True
        self._setup_signal_handlers()

    def _setup_signal_handlers(self) -> None:
        """Setup graceful shutdown handlers."""
        sig.signal(sig.SIGINT, self._handle_shutdown)
        sig.signal(sig.SIGTERM, self._handle_shutdown)

    def _handle_shutdown(self, signum, frame) -> None:
        """Handle shutdown signals gracefully."""
        main_logger.info("Shutdown signal received, stopping...")
        self._running = False

    def run_forever(self) -> None:
        main_logger.info("=" * 60)
        main_logger.info("Disclosure Ingest Scheduler Starting")
        main_logger.info("=" * 60)

        validation = self.config.validate_all()
        for service, valid in validation.items():
            status = "✓" if valid else "✗"
            main_logger.info(f"  {status} {service} configured")

        self.scheduler.start_scheduler()
        try:
            while self._running:
                time.sleep(1)
        finally:
            self.scheduler.shutdown(wait=True)
        main_logger.info("Disclosure Ingest Scheduler stopped")


def _print_summary(summary) -> None:
    main_logger.info(
        f"Run {summary.run_id}: {summary.status.value} | found {summary.total_found}, "
        f"saved {summary.total_saved} in {summary.duration_ms}ms"
    )
    for source, saved in summary.per_source_saved.items():
        found = summary.per_source_found.get(source, 0)
        main_logger.info(f"  {source}: {found} found, {saved} saved")
    for error in summary.errors:
        main_logger.warning(f"  error: {error}")


# -----------------------------------------------------------------------------
# Entry Point
# -----------------------------------------------------------------------------
def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Financial disclosure ingestion"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single ingestion pass and exit (for cron jobs)"
    )
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Offline run with synthetic sample data only"
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=get_config().scheduler.manual_max_pages,
        help="Listing pages per source for --once (default: %(default)s)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    args = parser.parse_args()

    if args.debug:
        logging.getLogger("disclosure_ingest").setLevel(logging.DEBUG)

    if args.once or args.test_mode:
        summary = run_ingestion(max_pages=args.max_pages, test_mode=args.test_mode)
        _print_summary(summary)
        return

    ScheduleService().run_forever()


if __name__ == "__main__":
    main()
