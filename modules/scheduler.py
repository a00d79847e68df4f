"""
Disclosure Ingest - Run Scheduler

Named cron triggers on an APScheduler BackgroundScheduler. Each trigger
calls the ingestion entry point with its own page cap; a failing run is
logged and the trigger keeps firing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config.settings import SchedulerConfig, get_config
from modules.models import RunSummary
from modules.orchestrator import run_ingestion

sched_logger = logging.getLogger("disclosure_ingest.scheduler")

DAILY = "daily-scrape"
WEEKLY = "weekly-deep-scrape"

RunFn = Callable[..., RunSummary]


@dataclass
class ScheduledTask:
    name: str
    cron: str
    max_pages: int
    enabled: bool = True


def _job_executed_listener(event) -> None:
    sched_logger.debug(f"Job {event.job_id} executed at {event.scheduled_run_time}")


def _job_error_listener(event) -> None:
    sched_logger.error(f"Job {event.job_id} crashed: {event.exception}")


def _job_missed_listener(event) -> None:
    sched_logger.warning(f"Job {event.job_id} missed its run at {event.scheduled_run_time}")


class IngestScheduler:
    """
    Process-scoped scheduler for recurring ingestion runs.

    Created once by the API lifespan or ``main.py`` and shut down
    by the same owner.
    """

    def __init__(self,
                 run_fn: RunFn = run_ingestion,
                 settings: Optional[SchedulerConfig] = None):
        self.run_fn = run_fn
        self.settings = settings or get_config().scheduler
        self.scheduler = BackgroundScheduler(
            timezone=self.settings.timezone,
            job_defaults={
                "coalesce": True,  # one catch-up run, not a burst
                "max_instances": 1,
                "misfire_grace_time": 300,
            },
        )
        self.scheduler.add_listener(_job_executed_listener, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(_job_error_listener, EVENT_JOB_ERROR)
        self.scheduler.add_listener(_job_missed_listener, EVENT_JOB_MISSED)

        self.tasks: dict[str, ScheduledTask] = {
            DAILY: ScheduledTask(DAILY, self.settings.daily_cron, self.settings.daily_max_pages),
            WEEKLY: ScheduledTask(WEEKLY, self.settings.weekly_cron, self.settings.weekly_max_pages),
        }
        for task in self.tasks.values():
            self.scheduler.add_job(
                self._run_scheduled,
                trigger=CronTrigger.from_crontab(task.cron, timezone=self.settings.timezone),
                args=[task.name],
                id=task.name,
                name=task.name,
                replace_existing=True,
            )

    # -------------------------------------------------------------------------
    # Job callback
    # -------------------------------------------------------------------------
    def _run_scheduled(self, name: str) -> Optional[RunSummary]:
        task = self.tasks[name]
        sched_logger.info(f"Scheduled run {name} (max_pages={task.max_pages})")
        try:
            summary = self.run_fn(max_pages=task.max_pages)
        except Exception as e:
            sched_logger.error(f"Scheduled run {name} failed: {e}", exc_info=True)
            return None
        sched_logger.info(
            f"Scheduled run {name} finished: {summary.status.value}, saved {summary.total_saved}"
        )
        return summary

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start_scheduler(self) -> None:
        """Start the background thread."""
        if not self.scheduler.running:
            self.scheduler.start()
            sched_logger.info(
                f"Scheduler started ({self.settings.timezone}): "
                + ", ".join(f"{t.name} [{t.cron}]" for t in self.tasks.values())
            )

    def shutdown(self, wait: bool = False) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            sched_logger.info("Scheduler shutdown complete")

    # -------------------------------------------------------------------------
    # Trigger control
    # -------------------------------------------------------------------------
    def _task(self, name: str) -> ScheduledTask:
        try:
            return self.tasks[name]
        except KeyError:
            raise KeyError(f"Unknown scheduled task: {name}") from None

    def start(self, name: str) -> None:
        """Resume one trigger."""
        task = self._task(name)
        if not task.enabled:
            self.scheduler.resume_job(name)
            task.enabled = True
            sched_logger.info(f"Resumed {name}")

    def stop(self, name: str) -> None:
        """Pause one trigger; its schedule is kept."""
        task = self._task(name)
        if task.enabled:
            self.scheduler.pause_job(name)
            task.enabled = False
            sched_logger.info(f"Paused {name}")

    def start_all(self) -> None:
        for name in self.tasks:
            self.start(name)

    def stop_all(self) -> None:
        for name in self.tasks:
            self.stop(name)

    def status(self) -> list[dict]:
        return [{"name": t.name, "is_running": t.enabled} for t in self.tasks.values()]

    # -------------------------------------------------------------------------
    # Manual triggers
    # -------------------------------------------------------------------------
    def trigger_daily(self) -> RunSummary:
        """Run immediately with the manual page cap. Errors reach the caller."""
        sched_logger.info("Manual daily run triggered")
        return self.run_fn(max_pages=self.settings.manual_max_pages)

    def trigger_weekly(self) -> RunSummary:
        """Run the deep scrape immediately. Errors reach the caller."""
        sched_logger.info("Manual weekly run triggered")
        return self.run_fn(max_pages=self.settings.weekly_max_pages)
