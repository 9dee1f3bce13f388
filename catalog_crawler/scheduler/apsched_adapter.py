"""APScheduler wrapper firing the daily crawl."""

from __future__ import annotations

from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..config import ScheduleConfig
from ..logging_conf import configure_logging

DAILY_JOB_ID = "crawl::daily"


class APSchedulerAdapter:
    """Manage the recurring crawl job."""

    def __init__(self) -> None:
        self.scheduler = BackgroundScheduler()
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_daily(self, schedule: ScheduleConfig, callback: Callable[[], object]) -> None:
        if not schedule.enabled:
            self.logger.info("schedule_disabled")
            return
        trigger = self._build_trigger(schedule)
        self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=DAILY_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info("job_scheduled", cron=schedule.cron, timezone=schedule.timezone)

    def remove_daily(self) -> None:
        try:
            self.scheduler.remove_job(DAILY_JOB_ID)
        except Exception:  # noqa: BLE001
            self.logger.warning("job_remove_failed", job_id=DAILY_JOB_ID)

    @staticmethod
    def _build_trigger(schedule: ScheduleConfig) -> CronTrigger:
        return CronTrigger.from_crontab(schedule.cron, timezone=schedule.timezone)

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter", "DAILY_JOB_ID"]
