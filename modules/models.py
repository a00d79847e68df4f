"""
Disclosure Ingest - Data Models

Dataclasses passed between connectors, the normalizer, persistence and the
orchestrator.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional


class Provenance(str, Enum):
    """Where a stored transaction came from."""
    VERIFIED = "verified"
    CURATED = "curated"
    SYNTHETIC = "synthetic"


class RunStatus(str, Enum):
    RUNNING = "Running"
    SUCCESS = "Success"
    PARTIAL_FAILURE = "PartialFailure"
    NO_DATA = "NoData"


@dataclass(frozen=True)
class DiscoveryWindow:
    """Inclusive date range a connector searches for filings."""
    start: date
    end: date

    @classmethod
    def trailing(cls, days: int, today: Optional[date] = None) -> "DiscoveryWindow":
        end = today or date.today()
        return cls(start=end - timedelta(days=days), end=end)

    def contains(self, value: Optional[date]) -> bool:
        if value is None:
            return True
        return self.start <= value <= self.end

    def years(self) -> list[int]:
        return list(range(self.start.year, self.end.year + 1))


@dataclass
class FilingReference:
    """A discovered filing document, before extraction."""
    politician: str
    url: str
    reported_date: Optional[str] = None  # as published by the source
    chamber: Optional[str] = None
    format_hint: Optional[str] = None  # 'pdf', 'html', 'json'
    politician_hints: dict[str, str] = field(default_factory=dict)
    payload: Optional[dict] = None  # inline record for structured feeds


@dataclass
class RawTransaction:
    """Candidate transaction exactly as extracted from a document."""
    ticker: str
    company_name: Optional[str]
    transaction_type: str
    transaction_date: str
    amount: str
    asset_type: Optional[str] = None
    comment: Optional[str] = None
    politician: Optional[str] = None
    filing_url: Optional[str] = None
    reported_date: Optional[str] = None
    chamber: Optional[str] = None
    provenance: Optional[Provenance] = None
    politician_hints: dict[str, str] = field(default_factory=dict)

    def with_reference(self, ref: FilingReference) -> "RawTransaction":
        """Fill unset filing context from the reference it was extracted from."""
        return replace(
            self,
            politician=self.politician or ref.politician,
            filing_url=self.filing_url or ref.url,
            reported_date=self.reported_date or ref.reported_date,
            chamber=self.chamber or ref.chamber,
            politician_hints={**ref.politician_hints, **self.politician_hints},
        )


@dataclass
class NormalizedTransaction:
    """Canonical transaction ready for persistence."""
    politician: str
    ticker: str
    transaction_type: str
    transaction_date: datetime
    reported_date: datetime
    amount: str
    filing_url: str
    source: str
    provenance: Provenance
    company_name: Optional[str] = None
    amount_min: Optional[int] = None
    amount_max: Optional[int] = None
    asset_type: str = "Stock"
    comment: Optional[str] = None
    chamber: Optional[str] = None
    politician_hints: dict[str, str] = field(default_factory=dict)


@dataclass
class Politician:
    name: str
    party: str
    chamber: str
    state: str
    district: Optional[str] = None
    id: Optional[int] = None


@dataclass
class SourceResult:
    """Outcome of one connector's collect pass."""
    source: str
    candidates: list[RawTransaction] = field(default_factory=list)
    documents_seen: int = 0
    documents_failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def found(self) -> int:
        return len(self.candidates)


@dataclass
class SaveResult:
    saved: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class ScrapeRun:
    """Persisted record of one ingestion run."""
    id: int
    start_time: str
    status: str
    max_pages: Optional[int] = None
    test_mode: bool = False
    end_time: Optional[str] = None
    total_found: int = 0
    total_saved: int = 0
    per_source_found: dict[str, int] = field(default_factory=dict)
    per_source_saved: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


@dataclass
class RunSummary:
    """What a caller gets back from an ingestion run."""
    run_id: Optional[int]
    status: RunStatus
    total_found: int
    total_saved: int
    per_source_found: dict[str, int]
    per_source_saved: dict[str, int]
    errors: list[str]
    duration_ms: int
    # the run completed; partial failures are reported in errors
    success: bool = True

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data
