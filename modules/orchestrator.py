"""
Disclosure Ingest - Orchestrator

Runs every enabled connector in priority order, normalizes and saves what
each one collects, and records the run. A connector that raises is logged
into the run's error list and the next connector still runs.
"""
from __future__ import annotations

import time
import logging
from datetime import datetime
from typing import Callable, Optional

from config.settings import get_config
from modules.db_manager import DatabaseManager, get_db
from modules.feed_aggregated import AggregatedFeedConnector
from modules.feed_synthetic import SyntheticConnector
from modules.models import DiscoveryWindow, RunStatus, RunSummary
from modules.normalizer import normalize_candidate
from modules.persistence import PersistenceGateway
from modules.scraper_house import HouseConnector
from modules.scraper_regulator import RegulatorConnector
from modules.scraper_senate import SenateConnector
from modules.source_base import SourceConnector

orch_logger = logging.getLogger("disclosure_ingest.orchestrator")

ConnectorFactory = Callable[[], SourceConnector]

# Data-quality preference, best first
PRIORITY: list[tuple[str, ConnectorFactory]] = [
    ("regulator", RegulatorConnector),
    ("aggregated_feed", AggregatedFeedConnector),
    ("house", HouseConnector),
    ("senate", SenateConnector),
]


def enabled_factories() -> list[tuple[str, ConnectorFactory]]:
    """Connector factories switched on in SourcesConfig, in priority order."""
    sources = get_config().sources
    return [(name, factory) for name, factory in PRIORITY if getattr(sources, name, False)]


def final_status(total_saved: int, errors: list[str]) -> RunStatus:
    if errors:
        return RunStatus.PARTIAL_FAILURE
    if total_saved > 0:
        return RunStatus.SUCCESS
    return RunStatus.NO_DATA


class IngestOrchestrator:
    """
    One ingestion run over a list of connector factories.

    Connectors are constructed lazily, inside the failure boundary, so a
    connector that cannot even be built only costs its own results.
    """

    def __init__(self,
                 db: Optional[DatabaseManager] = None,
                 factories: Optional[list[tuple[str, ConnectorFactory]]] = None,
                 window_days: Optional[int] = None):
        self.db = db or get_db()
        self.gateway = PersistenceGateway(self.db)
        self.factories = factories
        self.window_days = (
            window_days if window_days is not None else get_config().scraping.window_days
        )

    def run(self, max_pages: int = 3) -> RunSummary:
        """Run every enabled network connector."""
        factories = self.factories if self.factories is not None else enabled_factories()
        return self._execute(factories, max_pages, test_mode=False)

    def run_test_mode(self) -> RunSummary:
        """Offline run: synthetic sample data only."""
        return self._execute([("synthetic", SyntheticConnector)], max_pages=1, test_mode=True)

    def _run_connector(self, factory: ConnectorFactory, window: DiscoveryWindow,
                       max_pages: int) -> tuple[int, int, list[str]]:
        """Collect, normalize and save one source. Returns (found, saved, errors)."""
        with factory() as connector:
            result = connector.collect(window, max_pages)
            now = datetime.now()
            records = [
                normalize_candidate(raw, connector.name, connector.provenance, now)
                for raw in result.candidates
            ]
            saved = self.gateway.save_all(records)
            orch_logger.info(
                f"{connector.name}: found {result.found}, saved {saved.saved}, "
                f"skipped {saved.skipped}, failed {saved.failed}"
            )
            return result.found, saved.saved, result.errors

    def _execute(self, factories: list[tuple[str, ConnectorFactory]],
                 max_pages: int, test_mode: bool) -> RunSummary:
        started = time.monotonic()
        run_id = self.db.create_run(max_pages, test_mode)
        window = DiscoveryWindow.trailing(self.window_days)

        mode = "test mode" if test_mode else f"max_pages={max_pages}"
        orch_logger.info(f"Run {run_id} started ({mode}, window {window.start} to {window.end})")
        self.db.log_event("INFO", "orchestrator", f"Run {run_id} started ({mode})")

        per_source_found: dict[str, int] = {}
        per_source_saved: dict[str, int] = {}
        errors: list[str] = []

        for name, factory in factories:
            orch_logger.info(f"=== {name} ===")
            try:
                found, saved, source_errors = self._run_connector(factory, window, max_pages)
            except Exception as e:
                orch_logger.error(f"{name} failed: {e}", exc_info=True)
                self.db.log_event("ERROR", "orchestrator", f"{name}: {e}")
                errors.append(f"{name}: {e}")
                per_source_found.setdefault(name, 0)
                per_source_saved.setdefault(name, 0)
                continue

            per_source_found[name] = found
            per_source_saved[name] = saved
            errors.extend(f"{name}: {err}" for err in source_errors)

        total_found = sum(per_source_found.values())
        total_saved = sum(per_source_saved.values())
        status = final_status(total_saved, errors)

        self.db.finalize_run(
            run_id, status, total_found, total_saved,
            per_source_found, per_source_saved, errors,
        )
        duration_ms = int((time.monotonic() - started) * 1000)

        level = "WARNING" if errors else "INFO"
        message = (
            f"Run {run_id} finished: {status.value}, found {total_found}, "
            f"saved {total_saved}, {len(errors)} errors in {duration_ms}ms"
        )
        orch_logger.log(getattr(logging, level), message)
        self.db.log_event(level, "orchestrator", message)

        return RunSummary(
            run_id=run_id,
            status=status,
            total_found=total_found,
            total_saved=total_saved,
            per_source_found=per_source_found,
            per_source_saved=per_source_saved,
            errors=errors,
            duration_ms=duration_ms,
        )


def run_ingestion(max_pages: int = 3, test_mode: bool = False,
                  db: Optional[DatabaseManager] = None) -> RunSummary:
    """Run one ingestion pass with the configured connectors."""
    orchestrator = IngestOrchestrator(db=db)
    if test_mode:
        return orchestrator.run_test_mode()
    return orchestrator.run(max_pages)
