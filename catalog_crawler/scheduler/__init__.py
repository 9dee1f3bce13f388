"""Scheduling adapters."""

from .apsched_adapter import APSchedulerAdapter, DAILY_JOB_ID

__all__ = ["APSchedulerAdapter", "DAILY_JOB_ID"]
