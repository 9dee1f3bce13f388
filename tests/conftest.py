"""Shared fixtures for catalog-crawler tests."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable
from zoneinfo import ZoneInfo

import httpx
import pytest

from catalog_crawler.config import ConfigLocator, ConfigRepository, CrawlerConfig, NotifierConfig
from catalog_crawler.engine import CatalogEntry, ProductStore
from catalog_crawler.infra import SQLiteManager

FIXED_NOW = datetime(2024, 5, 20, 12, 0, 0, tzinfo=ZoneInfo("Europe/Malta"))


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CATALOG_CRAWLER_HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def sample_config() -> Callable[..., CrawlerConfig]:
    def _builder(**overrides: Any) -> CrawlerConfig:
        base: dict[str, Any] = {
            "source_urls": ["https://shop-a.example/products.json"],
            "page_size": 500,
            "time_budget_seconds": 60,
            "notifier": NotifierConfig(recipients="team@example.com"),
        }
        base.update(overrides)
        return CrawlerConfig(**base)

    return _builder


@pytest.fixture
def sqlite_manager() -> Iterable[SQLiteManager]:
    manager = SQLiteManager()
    yield manager
    manager.close_all()


@pytest.fixture
def store(sqlite_manager: SQLiteManager, tmp_path: Path) -> ProductStore:
    return ProductStore(sqlite_manager, tmp_path / "catalog.db", now=lambda: FIXED_NOW)


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> ConfigRepository:
    return ConfigRepository(ConfigLocator(project_root=tmp_path))


def make_product(sku: str | None, price: Any = "10.00", title: str = "Widget", variant: str = "Default") -> dict:
    return {"title": title, "variants": [{"sku": sku, "price": price, "title": variant}]}


def make_page(count: int, start: int = 0) -> dict:
    return {"products": [make_product(f"SKU-{start + i}", price="1.00") for i in range(count)]}


def entry(sku: str, price: str | None = "10.00", title: str = "Widget Default") -> CatalogEntry:
    return CatalogEntry(sku=sku, price=price, title=title)


def paged_transport(pages: list[Any], requests: list[httpx.Request]) -> httpx.MockTransport:
    """Serve ``pages[n - 1]`` for ``page=n``; dict payloads become JSON, ints become status codes."""

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        page = int(request.url.params.get("page", "1"))
        payload = pages[page - 1] if page <= len(pages) else {"products": []}
        if isinstance(payload, int):
            return httpx.Response(payload, request=request)
        if isinstance(payload, str):
            return httpx.Response(200, request=request, text=payload)
        if isinstance(payload, Exception):
            raise payload
        return httpx.Response(200, request=request, json=payload)

    return httpx.MockTransport(handler)
