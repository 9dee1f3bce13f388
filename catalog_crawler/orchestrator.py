"""Run coordinator wiring together fetching, classification, persistence and reporting."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Protocol, Sequence

import structlog

from .config import CrawlerConfig
from .engine import (
    CatalogFetcher,
    Classifier,
    ProductStore,
    ReportComposer,
    ThreadPoolManager,
    flatten_products,
    validate_source_url,
)
from .engine.catalog import CatalogEntry
from .engine.report import source_host
from .errors import InvalidSourceUrl, SourceTimeout, StorageError
from .logging_conf import configure_logging, source_logger


class Notifier(Protocol):
    def send(self, recipients: str, subject: str, html_body: str) -> bool:
        """Deliver ``html_body``; return whether delivery succeeded."""


class RunStatus(str, Enum):
    EMAIL_SENT = "email_sent"
    EMAIL_FAILED = "email_failed"
    NOTHING_CHANGED = "nothing_changed"


STATUS_MESSAGES = {
    RunStatus.EMAIL_SENT: "Success! Please check your email.",
    RunStatus.EMAIL_FAILED: (
        "Products were changed in the database, but the email was not sent. "
        "Ask an admin for help."
    ),
    RunStatus.NOTHING_CHANGED: "Nothing is changed.",
}


@dataclass(slots=True)
class SourceOutcome:
    """What one source contributed to a run."""

    source_url: str
    products: int = 0
    entries: int = 0
    new_count: int = 0
    changed_count: int = 0
    unchanged_count: int = 0
    inserted: bool = False
    updated: bool = False
    error: str | None = None
    report: str = ""

    @property
    def db_updated(self) -> bool:
        return self.inserted or self.updated


@dataclass(slots=True)
class RunSummary:
    db_updated: bool = False
    notification_sent: bool = False
    sources: list[SourceOutcome] = field(default_factory=list)
    message: str = ""

    @property
    def notification_failed(self) -> bool:
        return self.db_updated and not self.notification_sent

    @property
    def status(self) -> RunStatus:
        if self.notification_sent:
            return RunStatus.EMAIL_SENT
        if self.db_updated:
            return RunStatus.EMAIL_FAILED
        return RunStatus.NOTHING_CHANGED

    @property
    def status_message(self) -> str:
        return STATUS_MESSAGES[self.status]


class Orchestrator:
    """Central coordinator for one crawl-diff-report run over all sources."""

    def __init__(
        self,
        config: CrawlerConfig,
        store: ProductStore,
        notifier: Notifier,
        fetcher: CatalogFetcher | None = None,
        composer: ReportComposer | None = None,
        thread_pool: ThreadPoolManager | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.store = store
        self.notifier = notifier
        self.fetcher = fetcher or CatalogFetcher(
            page_size=config.page_size,
            request_timeout=config.request_timeout,
            page_retries=config.page_retries,
            user_agent=config.user_agent,
        )
        self.classifier = Classifier(store)
        self.composer = composer or ReportComposer()
        self.thread_pool = thread_pool or ThreadPoolManager(config.max_workers)
        self._clock = clock
        self.logger = configure_logging().bind(component="orchestrator")

    def close(self) -> None:
        self.fetcher.close()
        self.thread_pool.shutdown()

    # ------------------------------------------------------------------
    def run(self, source_urls: Sequence[str] | None = None) -> RunSummary:
        urls = list(self.config.source_urls if source_urls is None else source_urls)
        self.logger.info("run_started", sources=len(urls))
        outcomes = self.thread_pool.map_ordered(self._process_source_safely, urls)

        summary = RunSummary(sources=outcomes)
        summary.db_updated = any(outcome.db_updated for outcome in outcomes)
        summary.message = self.composer.combine(outcome.report for outcome in outcomes)
        if summary.db_updated:
            notifier_cfg = self.config.notifier
            summary.notification_sent = bool(
                self.notifier.send(notifier_cfg.recipients, notifier_cfg.subject, summary.message)
            )
            if not summary.notification_sent:
                self.logger.error(
                    "changes_persisted_notification_failed",
                    sources=[o.source_url for o in outcomes if o.db_updated],
                )
        self.logger.info(
            "run_finished",
            db_updated=summary.db_updated,
            notification_sent=summary.notification_sent,
            status=summary.status.value,
        )
        return summary

    def process_source(self, source_url: str) -> SourceOutcome:
        outcome = SourceOutcome(source_url=source_url)
        log = source_logger(source_host(source_url).lower())
        try:
            validate_source_url(source_url)
        except InvalidSourceUrl:
            log.warning("source_skipped_invalid_url", url=source_url)
            outcome.error = "invalid_url"
            outcome.report = self.composer.compose(source_url, [], {})
            return outcome

        deadline = self._clock() + self.config.time_budget_seconds
        try:
            products = self.fetcher.fetch_all(source_url, deadline=deadline, logger=log)
        except SourceTimeout as exc:
            log.error(
                "source_timeout",
                url=source_url,
                budget_seconds=self.config.time_budget_seconds,
                error=str(exc),
            )
            outcome.error = "timeout"
            outcome.report = self.composer.compose(source_url, [], {})
            return outcome

        outcome.products = len(products)
        entries = flatten_products(products)
        outcome.entries = len(entries)
        persisted_new: list[CatalogEntry] = []
        persisted_changed: dict[int, CatalogEntry] = {}
        if entries:
            try:
                classification = self.classifier.classify(entries, source_url)
            except StorageError as exc:
                log.error("lookup_failed", url=source_url, error=str(exc))
                outcome.error = "storage"
                outcome.report = self.composer.compose(source_url, [], {})
                return outcome
            outcome.new_count = len(classification.new_items)
            outcome.changed_count = len(classification.changed_items)
            outcome.unchanged_count = classification.unchanged
            if classification.new_items:
                try:
                    outcome.inserted = self.store.insert_batch(source_url, classification.new_items)
                    persisted_new = classification.new_items
                    log.info("batch_inserted", url=source_url, rows=len(persisted_new))
                except StorageError as exc:
                    outcome.error = "storage"
                    log.error("batch_insert_failed", url=source_url, error=str(exc))
            if classification.changed_items:
                try:
                    outcome.updated = self.store.update_batch(classification.changed_items)
                    persisted_changed = classification.changed_items
                    log.info("batch_updated", url=source_url, rows=len(persisted_changed))
                except StorageError as exc:
                    outcome.error = "storage"
                    log.error("batch_update_failed", url=source_url, error=str(exc))

        log.info(
            "source_processed",
            url=source_url,
            products=outcome.products,
            entries=outcome.entries,
            new=outcome.new_count,
            changed=outcome.changed_count,
            unchanged=outcome.unchanged_count,
        )
        outcome.report = self.composer.compose(source_url, persisted_new, persisted_changed)
        return outcome

    def _process_source_safely(self, source_url: str) -> SourceOutcome:
        try:
            return self.process_source(source_url)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("source_failed", url=source_url, error=str(exc), exc_info=True)
            return SourceOutcome(
                source_url=source_url,
                error="unexpected",
                report=self.composer.compose(source_url, [], {}),
            )


__all__ = ["Notifier", "Orchestrator", "RunStatus", "RunSummary", "SourceOutcome"]
