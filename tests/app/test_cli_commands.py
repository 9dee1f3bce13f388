from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from catalog_crawler import app as app_module
from catalog_crawler.app import AppState, app
from catalog_crawler.config import ConfigLocator, ConfigRepository, NotifierConfig
from catalog_crawler.engine import ProductStore
from catalog_crawler.infra import SQLiteManager
from catalog_crawler.orchestrator import RunSummary, SourceOutcome

from conftest import entry

SHOP_A = "https://shop-a.example/products.json"


class StubOrchestrator:
    def __init__(self, summary: RunSummary) -> None:
        self.summary = summary
        self.calls: list[object] = []

    def run(self, source_urls=None) -> RunSummary:  # noqa: ANN001
        self.calls.append(source_urls)
        return self.summary

    def close(self) -> None:
        return None


def make_state(tmp_path: Path, summary: RunSummary | None = None, recipients: str = "team@example.com") -> AppState:
    repository = ConfigRepository(ConfigLocator(project_root=tmp_path))
    config = repository.load().model_copy(update={"notifier": NotifierConfig(recipients=recipients)})
    storage = SQLiteManager()
    store = ProductStore(storage, repository.database_path())
    return AppState(
        repository=repository,
        config=config,
        scheduler=SimpleNamespace(list_jobs=lambda: []),
        orchestrator=StubOrchestrator(summary or RunSummary()),
        store=store,
        storage=storage,
    )


def _install(monkeypatch: pytest.MonkeyPatch, state: AppState) -> None:
    monkeypatch.setattr("catalog_crawler.app.build_state", lambda verbose: state)


def test_run_reports_success(monkeypatch, tmp_path) -> None:
    outcome = SourceOutcome(source_url=SHOP_A, products=2, new_count=1, inserted=True)
    summary = RunSummary(db_updated=True, notification_sent=True, sources=[outcome])
    state = make_state(tmp_path, summary)
    _install(monkeypatch, state)

    result = CliRunner().invoke(app, ["run"])
    assert result.exit_code == 0, result.stdout
    assert state.orchestrator.calls == [None]
    assert "Run result" in result.stdout
    assert "Success! Please check your email." in result.stdout


def test_run_nothing_changed_with_selected_source(monkeypatch, tmp_path) -> None:
    state = make_state(tmp_path, RunSummary(sources=[SourceOutcome(source_url=SHOP_A)]))
    _install(monkeypatch, state)

    result = CliRunner().invoke(app, ["run", "--source", SHOP_A, "--quiet"])
    assert result.exit_code == 0, result.stdout
    assert state.orchestrator.calls == [[SHOP_A]]
    assert "Nothing is changed." in result.stdout
    assert "Run result" not in result.stdout


def test_run_email_failure_exits_non_zero(monkeypatch, tmp_path) -> None:
    summary = RunSummary(db_updated=True, notification_sent=False, sources=[SourceOutcome(source_url=SHOP_A, updated=True)])
    state = make_state(tmp_path, summary)
    _install(monkeypatch, state)

    result = CliRunner().invoke(app, ["run", "--quiet"])
    assert result.exit_code == 1
    assert "the email was not sent" in result.stdout


def test_run_refuses_without_recipients(monkeypatch, tmp_path) -> None:
    state = make_state(tmp_path, recipients="")
    _install(monkeypatch, state)

    result = CliRunner().invoke(app, ["run"])
    assert result.exit_code == 1
    assert app_module.MISSING_RECIPIENTS_MESSAGE in result.stdout
    assert state.orchestrator.calls == []


def test_source_add_list_remove_roundtrip(monkeypatch, tmp_path) -> None:
    state = make_state(tmp_path)
    _install(monkeypatch, state)
    runner = CliRunner()

    added = runner.invoke(app, ["source", "add", SHOP_A])
    assert added.exit_code == 0, added.stdout
    assert "added" in added.stdout
    again = runner.invoke(app, ["source", "add", SHOP_A])
    assert "already configured" in again.stdout

    listed = runner.invoke(app, ["source", "list"])
    assert listed.exit_code == 0, listed.stdout
    assert "SHOP-A.EXAMPLE" in listed.stdout

    removed = runner.invoke(app, ["source", "remove", SHOP_A])
    assert removed.exit_code == 0, removed.stdout
    assert state.repository.reload().source_urls == []

    missing = runner.invoke(app, ["source", "remove", SHOP_A])
    assert missing.exit_code == 1
    assert "not found" in missing.stdout


def test_products_lists_stored_rows(monkeypatch, tmp_path) -> None:
    state = make_state(tmp_path)
    state.store.insert_batch(SHOP_A, [entry("X1", "12", "Shirt")])
    _install(monkeypatch, state)

    result = CliRunner().invoke(app, ["products", "--limit", "5"])
    assert result.exit_code == 0, result.stdout
    assert "X1" in result.stdout
    assert "Shirt" in result.stdout


def test_products_empty_table(monkeypatch, tmp_path) -> None:
    _install(monkeypatch, make_state(tmp_path))
    result = CliRunner().invoke(app, ["products"])
    assert result.exit_code == 0
    assert "No stored products yet." in result.stdout


def test_init_db_creates_database(monkeypatch, tmp_path) -> None:
    state = make_state(tmp_path)
    _install(monkeypatch, state)
    result = CliRunner().invoke(app, ["init-db"])
    assert result.exit_code == 0, result.stdout
    assert state.repository.database_path().exists()


def test_log_show_without_lines(monkeypatch, tmp_path) -> None:
    _install(monkeypatch, make_state(tmp_path))
    result = CliRunner().invoke(app, ["log", "show", "--source", "nowhere.example"])
    assert result.exit_code == 0
    assert "No log lines yet." in result.stdout
