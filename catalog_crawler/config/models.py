"""Pydantic models describing crawler configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.triggers.cron import CronTrigger
from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_TIMEZONE = "Europe/Malta"
DEFAULT_SUBJECT = "Changes from competitors site"


def _validate_timezone(value: str) -> str:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {value}") from exc
    return value


class ScheduleConfig(BaseModel):
    """When the daily crawl fires."""

    enabled: bool = True
    cron: str = Field(default="0 3 * * *", description="Crontab expression, five fields.")
    timezone: str = DEFAULT_TIMEZONE

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        return _validate_timezone(value)

    @model_validator(mode="after")
    def _check_cron(self) -> "ScheduleConfig":
        try:
            CronTrigger.from_crontab(self.cron, timezone=self.timezone)
        except ValueError as exc:
            raise ValueError(f"Invalid cron expression {self.cron!r}: {exc}") from exc
        return self


class NotifierConfig(BaseModel):
    """SMTP delivery settings for the change report."""

    recipients: str = Field(default="", description="Comma-separated list of addresses.")
    subject: str = DEFAULT_SUBJECT
    sender_name: str = "Catalog Crawler"
    sender_address: str = "crawler@localhost"
    smtp_host: str = "localhost"
    smtp_port: int = 25
    use_tls: bool = False
    username: str = ""
    password: str = ""
    timeout: float = 30.0

    @field_validator("recipients", mode="before")
    @classmethod
    def _coerce_recipients(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ", ".join(str(item).strip() for item in value if str(item).strip())
        return str(value).strip()

    @field_validator("smtp_port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("smtp_port must be between 1 and 65535")
        return value

    def recipient_list(self) -> list[str]:
        return [item.strip() for item in self.recipients.split(",") if item.strip()]


class CrawlerConfig(BaseModel):
    """Top-level settings shared by every run."""

    source_urls: list[str] = Field(default_factory=list)
    page_size: int = 500
    time_budget_seconds: float = 60.0
    page_retries: int = 0
    request_timeout: float = 15.0
    user_agent: str | None = None
    max_workers: int = 1
    timezone: str = DEFAULT_TIMEZONE
    database_path: Path = Field(default=Path("data/catalog.db"))
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    notifier: NotifierConfig = Field(default_factory=NotifierConfig)

    @field_validator("source_urls", mode="before")
    @classmethod
    def _normalise_sources(cls, value: Any) -> list[str]:
        if value in (None, ""):
            return []
        if isinstance(value, str):
            value = [value]
        cleaned: list[str] = []
        for item in value:
            url = str(item).strip()
            if url and url not in cleaned:
                cleaned.append(url)
        return cleaned

    @field_validator("database_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        return _validate_timezone(value)

    @model_validator(mode="after")
    def _validate_limits(self) -> "CrawlerConfig":
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        if self.time_budget_seconds <= 0:
            raise ValueError("time_budget_seconds must be > 0")
        if self.page_retries < 0:
            raise ValueError("page_retries must be >= 0")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        return self

    def resolved_database_path(self, base_dir: Path) -> Path:
        """Return the SQLite path, relative paths anchored at ``base_dir``."""

        if not self.database_path.is_absolute():
            return (base_dir / self.database_path).resolve()
        return self.database_path


__all__ = [
    "CrawlerConfig",
    "DEFAULT_SUBJECT",
    "DEFAULT_TIMEZONE",
    "NotifierConfig",
    "ScheduleConfig",
]
