"""
Scrape API Routes

Synchronous ingestion runs triggered over HTTP.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from modules.db_manager import DatabaseManager, get_db
from modules.models import RunSummary
from modules.orchestrator import IngestOrchestrator

router = APIRouter()

route_logger = logging.getLogger("disclosure_ingest.api.scrape")


class ScrapeRequest(BaseModel):
    """Scrape request body."""
    max_pages: int = Field(3, alias="maxPages", ge=1, le=50)
    test_mode: bool = Field(False, alias="testMode")

    class Config:
        populate_by_name = True


class ScrapeResponse(BaseModel):
    """Outcome of one ingestion run."""
    success: bool
    total_found: int = Field(alias="totalFound")
    total_saved: int = Field(alias="totalSaved")
    per_source_found: dict[str, int] = Field(alias="perSourceFound")
    per_source_saved: dict[str, int] = Field(alias="perSourceSaved")
    errors: list[str]
    duration_ms: int = Field(alias="durationMs")
    run_id: Optional[int] = Field(alias="runId")
    status: str

    class Config:
        populate_by_name = True

    @classmethod
    def from_summary(cls, summary: RunSummary) -> "ScrapeResponse":
        return cls(**summary.to_dict())


def request_db(request: Request) -> DatabaseManager:
    """The app-owned database manager, or the global one outside the lifespan."""
    db = getattr(request.app.state, "db", None)
    return db if db is not None else get_db()


@router.post("/scrape", response_model=ScrapeResponse, response_model_by_alias=True)
def run_scrape(request: Request, body: Optional[ScrapeRequest] = None):
    """
    Run every enabled connector and wait for the result.

    - **maxPages**: listing pages per source (default: 3)
    - **testMode**: offline synthetic run, no network access

    Partial failures still return 200 with the error list embedded.
    """
    body = body or ScrapeRequest()
    try:
        orchestrator = IngestOrchestrator(db=request_db(request))
    except Exception as e:
        route_logger.error(f"Could not start ingestion run: {e}")
        raise HTTPException(status_code=500, detail=f"Could not start ingestion run: {e}")

    if body.test_mode:
        summary = orchestrator.run_test_mode()
    else:
        summary = orchestrator.run(body.max_pages)
    return ScrapeResponse.from_summary(summary)
