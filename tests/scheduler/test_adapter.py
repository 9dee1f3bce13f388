from __future__ import annotations

from apscheduler.triggers.cron import CronTrigger

from catalog_crawler.config import ScheduleConfig
from catalog_crawler.scheduler import DAILY_JOB_ID, APSchedulerAdapter


class StubScheduler:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    def add_job(self, callback, trigger, id, replace_existing, max_instances, coalesce):  # noqa: ANN001, A002
        self.calls.append(
            {
                "id": id,
                "callback": callback,
                "trigger": trigger,
                "replace_existing": replace_existing,
                "max_instances": max_instances,
                "coalesce": coalesce,
            }
        )

    def get_jobs(self):
        return []

    def start(self):
        self.calls.append({"event": "started"})

    def shutdown(self, wait=False):  # noqa: ARG002
        self.calls.append({"event": "shutdown"})

    def remove_job(self, job_id):  # noqa: ANN001
        self.calls.append({"event": "remove", "id": job_id})


def test_build_trigger_uses_crontab_and_timezone() -> None:
    trigger = APSchedulerAdapter._build_trigger(ScheduleConfig(cron="15 4 * * *", timezone="Europe/Malta"))
    assert isinstance(trigger, CronTrigger)
    assert str(trigger.timezone) == "Europe/Malta"
    fields = {field.name: str(field) for field in trigger.fields}
    assert (fields["hour"], fields["minute"]) == ("4", "15")


def test_schedule_daily_registers_single_job() -> None:
    adapter = APSchedulerAdapter()
    stub = StubScheduler()
    adapter.scheduler = stub  # type: ignore[assignment]

    def crawl() -> None:
        return None

    adapter.schedule_daily(ScheduleConfig(), crawl)
    adapter.start()
    adapter.start()
    adapter.remove_daily()
    adapter.shutdown()

    job = stub.calls[0]
    assert job["id"] == DAILY_JOB_ID
    assert job["callback"] is crawl
    assert job["replace_existing"] is True
    assert (job["max_instances"], job["coalesce"]) == (1, True)
    assert [call.get("event") for call in stub.calls[1:]] == ["started", "remove", "shutdown"]


def test_disabled_schedule_adds_nothing() -> None:
    adapter = APSchedulerAdapter()
    stub = StubScheduler()
    adapter.scheduler = stub  # type: ignore[assignment]
    adapter.schedule_daily(ScheduleConfig(enabled=False), lambda: None)
    assert stub.calls == []


def test_list_jobs_reports_pending_job() -> None:
    adapter = APSchedulerAdapter()
    adapter.schedule_daily(ScheduleConfig(), lambda: None)
    jobs = adapter.list_jobs()
    assert [job["id"] for job in jobs] == [DAILY_JOB_ID]
    assert jobs[0]["trigger"].startswith("cron[")
