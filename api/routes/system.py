"""
System API Routes

Endpoints for storage stats, logs, the run history and configuration.
"""
from __future__ import annotations

from typing import Optional
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from api.routes.scrape import request_db
from config.settings import get_config
from modules.models import ScrapeRun

router = APIRouter()


class SystemStats(BaseModel):
    """System statistics response model."""
    total_politicians: int
    total_transactions: int
    by_provenance: dict[str, int]
    total_runs: int
    total_logs: int


class LogEntry(BaseModel):
    """Log entry response model."""
    id: Optional[int]
    level: str
    module: str
    message: str
    created_at: Optional[str]


class RunResponse(BaseModel):
    """Persisted ingestion run."""
    id: int
    start_time: str = Field(alias="startTime")
    end_time: Optional[str] = Field(alias="endTime")
    status: str
    max_pages: Optional[int] = Field(alias="maxPages")
    test_mode: bool = Field(alias="testMode")
    total_found: int = Field(alias="totalFound")
    total_saved: int = Field(alias="totalSaved")
    per_source_found: dict[str, int] = Field(alias="perSourceFound")
    per_source_saved: dict[str, int] = Field(alias="perSourceSaved")
    errors: list[str]

    class Config:
        populate_by_name = True

    @classmethod
    def from_run(cls, run: ScrapeRun) -> "RunResponse":
        return cls(
            id=run.id,
            start_time=run.start_time,
            end_time=run.end_time,
            status=run.status,
            max_pages=run.max_pages,
            test_mode=run.test_mode,
            total_found=run.total_found,
            total_saved=run.total_saved,
            per_source_found=run.per_source_found,
            per_source_saved=run.per_source_saved,
            errors=run.errors,
        )


class ConfigResponse(BaseModel):
    """Sanitized configuration response."""
    sources: dict[str, bool]
    window_days: int
    regulator_configured: bool
    feed_configured: bool
    synthetic_padding: int
    timezone: str
    daily_cron: str
    weekly_cron: str


@router.get("/stats", response_model=SystemStats)
async def get_system_stats(request: Request):
    """
    Get system statistics.

    Returns counts for politicians, transactions by provenance, runs and logs.
    """
    stats = request_db(request).get_stats()

    return SystemStats(
        total_politicians=stats.get("total_politicians", 0),
        total_transactions=stats.get("total_transactions", 0),
        by_provenance=stats.get("by_provenance", {}),
        total_runs=stats.get("total_runs", 0),
        total_logs=stats.get("total_logs", 0),
    )


@router.get("/logs", response_model=list[LogEntry])
async def get_logs(
    request: Request,
    limit: int = Query(100, ge=1, le=500, description="Number of logs to return"),
    level: Optional[str] = Query(None, description="Filter by log level (INFO, WARNING, ERROR)"),
):
    """
    Get recent system logs.

    - **limit**: Maximum number of logs (default: 100, max: 500)
    - **level**: Filter by log level (INFO, WARNING, ERROR)
    """
    logs = request_db(request).get_recent_logs(limit=limit, level=level.upper() if level else None)

    return [
        LogEntry(
            id=log.id,
            level=log.level,
            module=log.module,
            message=log.message,
            created_at=log.created_at,
        )
        for log in logs
    ]


@router.get("/runs", response_model=list[RunResponse], response_model_by_alias=True)
async def get_runs(
    request: Request,
    limit: int = Query(20, ge=1, le=200, description="Number of runs to return"),
):
    """Most recent ingestion runs first."""
    return [RunResponse.from_run(run) for run in request_db(request).get_recent_runs(limit)]


@router.get("/runs/{run_id}", response_model=RunResponse, response_model_by_alias=True)
async def get_run(request: Request, run_id: int):
    run = request_db(request).get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return RunResponse.from_run(run)


@router.get("/config", response_model=ConfigResponse)
async def get_config_info():
    """
    Get current ingestion configuration.

    Returns sanitized config (no contact details).
    """
    config = get_config()

    return ConfigResponse(
        sources={
            "regulator": config.sources.regulator,
            "aggregated_feed": config.sources.aggregated_feed,
            "house": config.sources.house,
            "senate": config.sources.senate,
        },
        window_days=config.scraping.window_days,
        regulator_configured=config.regulator.validate(),
        feed_configured=config.feed.validate(),
        synthetic_padding=config.feed.synthetic_padding,
        timezone=config.scheduler.timezone,
        daily_cron=config.scheduler.daily_cron,
        weekly_cron=config.scheduler.weekly_cron,
    )
