"""
Disclosure Ingest - Source Connector Base

Every source implements discover() and extract(); collect() drives them
with a per-document failure boundary so one bad filing never stops the
rest of the source.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from modules.errors import FetchError, ParseError
from modules.fetcher import DocumentFetcher
from modules.models import DiscoveryWindow, FilingReference, Provenance, RawTransaction, SourceResult


class SourceConnector(ABC):
    """
    A disclosure source.

    Subclasses set ``name`` (the source tag stored with each record),
    ``chamber`` and ``provenance`` (default tag for their records).
    """

    name: str = "source"
    chamber: Optional[str] = None
    provenance: Provenance = Provenance.VERIFIED

    def __init__(self, fetcher: Optional[DocumentFetcher] = None):
        self.fetcher = fetcher
        self.logger = logging.getLogger(f"disclosure_ingest.{self.name}")

    def __enter__(self) -> "SourceConnector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self.fetcher is not None:
            self.fetcher.close()

    @abstractmethod
    def discover(self, window: DiscoveryWindow, max_pages: int) -> list[FilingReference]:
        """List filing documents published inside the window."""

    @abstractmethod
    def extract(self, ref: FilingReference) -> list[RawTransaction]:
        """Extract candidate transactions from one filing."""

    def collect(self, window: DiscoveryWindow, max_pages: int) -> SourceResult:
        """
        Discover then extract every filing.

        FetchError/ParseError on a single filing are logged and counted, and
        the loop moves on. Errors during discovery propagate to the caller.
        """
        result = SourceResult(source=self.name)
        refs = self.discover(window, max_pages)
        self.logger.info(f"Discovered {len(refs)} filings")

        for ref in refs:
            result.documents_seen += 1
            try:
                transactions = self.extract(ref)
            except (FetchError, ParseError) as e:
                result.documents_failed += 1
                self.logger.warning(f"Skipping filing {ref.url}: {e}")
                continue
            result.candidates.extend(t.with_reference(ref) for t in transactions)

        self.logger.info(
            f"Collected {result.found} candidates from {result.documents_seen} filings "
            f"({result.documents_failed} failed)"
        )
        return result
