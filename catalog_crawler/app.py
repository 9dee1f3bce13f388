"""Typer CLI entrypoint for catalog-crawler."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, CrawlerConfig
from .engine import ProductStore
from .engine.report import source_host
from .infra import SMTPNotifier, SQLiteManager
from .logging_conf import (
    available_source_logs,
    configure_logging,
    global_log_path,
    source_log_path,
    tail_log,
)
from .orchestrator import Orchestrator, RunStatus, RunSummary
from .scheduler import APSchedulerAdapter

app = typer.Typer(
    help="catalog-crawler: watch product feeds for new items and price changes.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
source_app = typer.Typer(
    name="source",
    help="Manage the list of catalog feeds.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Inspect log files.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()

MISSING_RECIPIENTS_MESSAGE = "Please add recipient emails to get the report."


@dataclass
class AppState:
    repository: ConfigRepository
    config: CrawlerConfig
    scheduler: APSchedulerAdapter
    orchestrator: Orchestrator
    store: ProductStore
    storage: SQLiteManager


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    config = repository.load()
    storage = SQLiteManager()
    store = ProductStore(storage, repository.database_path(), timezone=config.timezone)
    notifier = SMTPNotifier(config.notifier)
    orchestrator = Orchestrator(config=config, store=store, notifier=notifier)
    return AppState(
        repository=repository,
        config=config,
        scheduler=APSchedulerAdapter(),
        orchestrator=orchestrator,
        store=store,
        storage=storage,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _render_summary_table(summary: RunSummary) -> Table:
    table = Table(title="Run result", box=box.SIMPLE_HEAD)
    table.add_column("Source", style="cyan", overflow="fold")
    table.add_column("Products", justify="right")
    table.add_column("New", style="green", justify="right")
    table.add_column("Changed", style="yellow", justify="right")
    table.add_column("Unchanged", style="dim", justify="right")
    table.add_column("Status", style="magenta")
    for outcome in summary.sources:
        if outcome.error:
            status = outcome.error
        elif outcome.db_updated:
            status = "updated"
        else:
            status = "no changes"
        table.add_row(
            outcome.source_url,
            str(outcome.products),
            str(outcome.new_count),
            str(outcome.changed_count),
            str(outcome.unchanged_count),
            status,
        )
    return table


app.add_typer(source_app, name="source", help="Manage catalog feeds (list/add/remove).")
app.add_typer(log_app, name="log", help="View or tail log files.")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("run", help="Crawl every configured feed now and email the change report.")
def run(
    ctx: typer.Context,
    sources: Optional[List[str]] = typer.Option(
        None,
        "--source",
        help="Crawl only this feed URL (repeatable). Defaults to the configured list.",
    ),
    quiet: bool = typer.Option(False, "--quiet", help="Print only the outcome message.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    if not state.config.notifier.recipient_list():
        console.print(MISSING_RECIPIENTS_MESSAGE, style="yellow")
        raise typer.Exit(code=1)
    urls = list(sources) if sources else None
    summary = state.orchestrator.run(urls)
    if not quiet:
        console.print(_render_summary_table(summary))
    style = {
        RunStatus.EMAIL_SENT: "green",
        RunStatus.EMAIL_FAILED: "red",
        RunStatus.NOTHING_CHANGED: "dim",
    }[summary.status]
    console.print(summary.status_message, style=style)
    if summary.status is RunStatus.EMAIL_FAILED:
        raise typer.Exit(code=1)


@app.command("init-db", help="Create or upgrade the product table.")
def init_db(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    path = state.repository.database_path()
    state.storage.ensure_schema(state.storage.connect(path))
    console.print(f"Product table ready at {path}.", style="green")


@app.command("products", help="Show the most recently updated stored products.")
def products(
    ctx: typer.Context,
    source: Optional[str] = typer.Option(None, "--source", help="Only rows of this feed URL."),
    limit: int = typer.Option(20, "--limit", help="Number of rows to display."),
) -> None:
    state = _get_state(ctx)
    rows = state.store.list_products(source, limit=limit)
    if not rows:
        console.print("No stored products yet.", style="dim")
        return
    total = state.store.count(source)
    table = Table(title=f"Stored products · {len(rows)} of {total}", box=box.SIMPLE_HEAD)
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Source", style="cyan")
    table.add_column("SKU", style="magenta")
    table.add_column("Title", overflow="fold")
    table.add_column("Price", style="green", justify="right")
    table.add_column("Updated", style="yellow")
    for row in rows:
        table.add_row(
            str(row.id),
            source_host(row.source_url),
            row.sku,
            row.title,
            row.price or "",
            row.updated_at or "",
        )
    console.print(table)


@app.command("schedule", help="Run the daily crawl on the configured cron schedule until interrupted.")
def schedule(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    if not state.config.schedule.enabled:
        console.print("Scheduling is disabled in the configuration.", style="yellow")
        raise typer.Exit(code=1)
    state.scheduler.schedule_daily(state.config.schedule, state.orchestrator.run)
    state.scheduler.start()
    for job in state.scheduler.list_jobs():
        console.print(f"Next run of {job['id']}: {job['next_run_time']}", style="cyan")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping scheduler.", style="dim")
    finally:
        state.scheduler.shutdown()
        state.orchestrator.close()


@source_app.command("list", help="List configured feed URLs.")
def source_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    sources = state.repository.list_sources()
    if not sources:
        console.print("No feeds configured. Add one with `catalog-crawler source add URL`.", style="yellow")
        raise typer.Exit(code=0)
    table = Table(title=f"Configured feeds · {len(sources)}", box=box.SIMPLE_HEAD)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Host", style="cyan", no_wrap=True)
    table.add_column("URL", overflow="fold")
    for index, url in enumerate(sources, start=1):
        table.add_row(str(index), source_host(url), url)
    console.print(table)


@source_app.command("add", help="Add a feed URL to the configuration.")
def source_add(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Feed URL, e.g. https://shop.example/products.json"),
) -> None:
    state = _get_state(ctx)
    if state.repository.add_source(url):
        console.print(f"Feed `{url.strip()}` added.", style="green")
    else:
        console.print(f"Feed `{url.strip()}` is already configured.", style="yellow")


@source_app.command("remove", help="Remove a feed URL from the configuration.")
def source_remove(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Feed URL to remove."),
) -> None:
    state = _get_state(ctx)
    if not state.repository.remove_source(url):
        console.print(f"Feed `{url.strip()}` not found.", style="red")
        raise typer.Exit(code=1)
    console.print(f"Feed `{url.strip()}` removed. Stored products are kept.", style="green")


@log_app.command("list", help="List available per-source log files.")
def log_list() -> None:
    logs = list(available_source_logs())
    if not logs:
        console.print("No source logs yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="Show the tail of a log file.")
def log_show(
    source: Optional[str] = typer.Option(
        None, "--source", help="Feed host (e.g. shop.example); global log when omitted."
    ),
    tail: int = typer.Option(100, "--tail", help="Number of trailing lines."),
) -> None:
    path = source_log_path(source) if source else global_log_path()
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log lines yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} lines", style="cyan")
    console.print("".join(lines))


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
