"""
Disclosure Ingest - Regulator (SEC EDGAR) Scraper

Enumerates recent filings for politicians listed in the regulator
registry through the EDGAR submissions API, then parses each primary
document with the layered table / tagged-field / labeled-text patterns.
"""
from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any, Optional

from config.settings import get_config
from modules.errors import ConfigurationError, FetchError, ParseError
from modules.extractor import (
    HtmlTableParser, LabeledTextParser, TaggedFieldParser, TransactionExtractor,
)
from modules.fetcher import DocumentFetcher
from modules.models import DiscoveryWindow, FilingReference, RawTransaction, SourceResult
from modules.source_base import SourceConnector


def load_registry(path: Path) -> list[dict[str, Any]]:
    """Read the politician -> CIK registry."""
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError("Regulator registry not found", {"path": str(path)}) from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid regulator registry: {e}", {"path": str(path)}) from e
    return data.get("politicians", [])


class RegulatorConnector(SourceConnector):
    """SEC EDGAR filings for registry politicians."""

    name = "regulator"

    def __init__(self,
                 fetcher: Optional[DocumentFetcher] = None,
                 registry_path: Optional[Path] = None):
        self.settings = get_config().regulator
        super().__init__(fetcher or DocumentFetcher(
            delay_seconds=self.settings.delay_seconds,
            user_agent=self.settings.user_agent,
            headers={"Accept": "application/json, text/html;q=0.9, */*;q=0.8"},
        ))
        self.registry_path = registry_path or self.settings.registry_path
        self.extractor = TransactionExtractor([
            HtmlTableParser(),
            TaggedFieldParser(),
            LabeledTextParser(),
        ])
        self._registry_errors: list[str] = []

    def _require_cik(self, entry: dict[str, Any]) -> str:
        cik = str(entry.get("cik") or "").strip()
        if not cik.isdigit():
            raise ConfigurationError(
                "Registry entry has no CIK", {"politician": entry.get("name", "?")}
            )
        return cik

    def _form_matches(self, form: str) -> bool:
        return form in self.settings.forms or "Transaction" in form

    def filings_from_submissions(self, submissions: dict[str, Any],
                                 entry: dict[str, Any], cik: str,
                                 window: DiscoveryWindow) -> list[FilingReference]:
        """Pick matching forms filed inside the window from filings.recent."""
        recent = submissions.get("filings", {}).get("recent", {})
        forms = recent.get("form", [])
        dates = recent.get("filingDate", [])
        accessions = recent.get("accessionNumber", [])
        documents = recent.get("primaryDocument", [])

        hints = {k: str(entry[k]) for k in ("party", "chamber", "state", "district") if entry.get(k)}
        refs = []
        for form, filed, accession, document in zip(forms, dates, accessions, documents):
            if not self._form_matches(form):
                continue
            try:
                filed_on = date.fromisoformat(filed)
            except ValueError:
                continue
            if filed_on < window.start:
                continue
            url = (f"{self.settings.archive_url}/{int(cik)}/"
                   f"{accession.replace('-', '')}/{document}")
            refs.append(FilingReference(
                politician=entry["name"],
                url=url,
                reported_date=filed,
                chamber=entry.get("chamber"),
                format_hint="html",
                politician_hints=hints,
            ))
        return refs

    def discover(self, window: DiscoveryWindow, max_pages: int) -> list[FilingReference]:
        refs: list[FilingReference] = []
        for entry in load_registry(self.registry_path):
            try:
                cik = self._require_cik(entry)
            except ConfigurationError as e:
                self.logger.error(str(e))
                self._registry_errors.append(str(e))
                continue

            url = f"{self.settings.data_url}/submissions/CIK{cik.zfill(10)}.json"
            try:
                submissions = self.fetcher.fetch_json(url)
            except (FetchError, ParseError) as e:
                self.logger.warning(f"Submissions unavailable for {entry.get('name')}: {e}")
                continue

            found = self.filings_from_submissions(submissions, entry, cik, window)
            self.logger.info(f"{entry.get('name')}: {len(found)} recent filings")
            refs.extend(found)
        return refs

    def extract(self, ref: FilingReference) -> list[RawTransaction]:
        content = self.fetcher.fetch(ref.url)
        return self.extractor.extract(content)

    def collect(self, window: DiscoveryWindow, max_pages: int) -> SourceResult:
        self._registry_errors = []
        result = super().collect(window, max_pages)
        result.errors.extend(self._registry_errors)
        return result
