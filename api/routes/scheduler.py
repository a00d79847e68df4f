"""
Scheduler API Routes

Status and control of the recurring ingestion triggers.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from api.routes.scrape import ScrapeResponse
from modules.scheduler import IngestScheduler

router = APIRouter()

route_logger = logging.getLogger("disclosure_ingest.api.scheduler")


class TaskStatus(BaseModel):
    name: str
    is_running: bool = Field(alias="isRunning")

    class Config:
        populate_by_name = True


class CronStatusResponse(BaseModel):
    success: bool = True
    tasks: list[TaskStatus]


class CronAction(BaseModel):
    """Control action: trigger-daily, trigger-weekly, stop-all, start-all, stop:<name>, start:<name>."""
    action: str


class CronActionResponse(BaseModel):
    success: bool
    message: str
    result: Optional[ScrapeResponse] = None
    tasks: list[TaskStatus] = []


def _scheduler(request: Request) -> IngestScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not initialized")
    return scheduler


def _tasks(scheduler: IngestScheduler) -> list[TaskStatus]:
    return [TaskStatus(name=t["name"], is_running=t["is_running"]) for t in scheduler.status()]


@router.get("/cron", response_model=CronStatusResponse, response_model_by_alias=True)
async def get_cron_status(request: Request):
    """List the scheduled triggers and whether each one is active."""
    return CronStatusResponse(tasks=_tasks(_scheduler(request)))


@router.post("/cron", response_model=CronActionResponse, response_model_by_alias=True)
def control_cron(request: Request, body: CronAction):
    """
    Perform a scheduler control action.

    Manual triggers run synchronously and return the run summary.
    Unknown actions and unknown task names are rejected with 400.
    """
    scheduler = _scheduler(request)
    action = body.action.strip()
    result = None

    if action in ("trigger-daily", "trigger-weekly"):
        trigger = scheduler.trigger_daily if action == "trigger-daily" else scheduler.trigger_weekly
        try:
            summary = trigger()
        except Exception as e:
            route_logger.error(f"Manual trigger {action} failed: {e}")
            raise HTTPException(status_code=500, detail=f"{action} failed: {e}")
        result = ScrapeResponse.from_summary(summary)
        message = f"{action} finished with status {summary.status.value}"
    elif action == "stop-all":
        scheduler.stop_all()
        message = "All scheduled tasks stopped"
    elif action == "start-all":
        scheduler.start_all()
        message = "All scheduled tasks started"
    elif action.startswith(("stop:", "start:")):
        verb, _, name = action.partition(":")
        try:
            getattr(scheduler, verb)(name)
        except KeyError:
            raise HTTPException(status_code=400, detail=f"Unknown task: {name}")
        message = f"Task {name} {'stopped' if verb == 'stop' else 'started'}"
    else:
        raise HTTPException(status_code=400, detail=f"Unknown action: {action}")

    route_logger.info(message)
    return CronActionResponse(
        success=True, message=message, result=result, tasks=_tasks(scheduler)
    )
