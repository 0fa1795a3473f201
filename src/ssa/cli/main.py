"""CLI application using Typer for scheduled search alerts."""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import List, Optional
import typer
from rich.console import Console
from rich.table import Table

from ..config.settings import settings
from ..core.ids import generate_subscription_id, verify_unsubscribe_key
from ..core.models import SavedQuery, Subscription, utcnow
from ..core.timestamps import UTC
from ..notify.runner import BatchReport, NotificationRunner
from ..notify.scheduler import BatchScheduler
from ..search.solr import SolrSearchClient
from ..store.subscriptions import SubscriptionStore
from ..utils.logging import get_logger

app = typer.Typer(
    name="ssa",
    help="Scheduled Search Alerts - email digests of new search results",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


def _open_store(data_dir: Optional[Path]) -> SubscriptionStore:
    return SubscriptionStore(data_dir or settings.data_dir)


def _parse_timestamp(value: Optional[str], option: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return UTC.parse(value)
    except ValueError as e:
        raise typer.BadParameter(f"not an ISO 8601 timestamp: {value!r}", param_hint=option) from e


async def _run_batch(data_dir: Optional[Path], now: Optional[datetime] = None) -> BatchReport:
    store = _open_store(data_dir)
    try:
        async with SolrSearchClient() as client:
            runner = NotificationRunner(search_client=client, store=store, console=console)
            return await runner.run(now=now)
    finally:
        store.close()


def _print_report(report: BatchReport) -> None:
    table = Table(title="Scheduled Search Alerts")
    table.add_column("Subscription", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("New", justify="right")
    table.add_column("Detail", style="white")
    for outcome in report.outcomes:
        style = "red" if outcome in report.failures else "green"
        table.add_row(
            outcome.subscription_id,
            f"[{style}]{outcome.status.value}[/{style}]",
            str(outcome.new_records),
            outcome.detail or outcome.range_filter or "",
        )
    console.print(table)
    counts = ", ".join(f"{k}={v}" for k, v in report.counts().items() if v)
    console.print(f"Processed {len(report.outcomes)} searches ({counts or 'nothing to do'})")


@app.command()
def notify(
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", help="Directory holding subscriptions.db"),
    now: Optional[str] = typer.Option(None, "--now", help="Override the run time (ISO 8601, UTC)"),
) -> None:
    """Run one batch: send digests for every due scheduled search."""
    report = asyncio.run(_run_batch(data_dir, _parse_timestamp(now, "--now")))
    if not report.enabled:
        raise typer.Exit(0)
    _print_report(report)
    if not report.succeeded:
        console.print(f"[bold red]✗ {len(report.failures)} searches failed[/bold red]")
        raise typer.Exit(1)
    console.print("[bold green]✓ Batch complete[/bold green]")


@app.command()
def watch(
    interval_hours: int = typer.Option(24, "--every", min=1, help="Hours between batches"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", help="Directory holding subscriptions.db"),
) -> None:
    """Run batches periodically until interrupted."""
    console.print(f"[bold blue]Running scheduled search alerts every {interval_hours}h[/bold blue]")
    scheduler = BatchScheduler(lambda: _run_batch(data_dir), interval_hours=interval_hours)
    try:
        scheduler.start()
    except KeyboardInterrupt:
        console.print("Stopped.")


@app.command()
def subscribe(
    email: str = typer.Option(..., "--email", "-e", help="Recipient address"),
    query: str = typer.Option("*:*", "--query", "-q", help="Search query"),
    filters: Optional[List[str]] = typer.Option(None, "--filter", "-f", help="Filter query (repeatable)"),
    frequency_days: int = typer.Option(7, "--every", min=1, help="Days between notifications"),
    since: Optional[str] = typer.Option(None, "--since", help="Notify about records newer than this (ISO 8601)"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir"),
) -> None:
    """Register a scheduled search."""
    last_sent = _parse_timestamp(since, "--since") or utcnow()
    subscription = Subscription(
        subscription_id=generate_subscription_id(),
        email=email,
        query=SavedQuery(query=query, filters=filters or []),
        frequency_days=frequency_days,
        last_notification_sent=last_sent,
    )
    store = _open_store(data_dir)
    try:
        store.add(subscription)
    finally:
        store.close()
    console.print(f"[green]Subscribed[/green] {subscription.subscription_id}")


@app.command("list")
def list_subscriptions(
    show_all: bool = typer.Option(False, "--all", help="Include inactive subscriptions"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir"),
) -> None:
    """List scheduled searches."""
    store = _open_store(data_dir)
    try:
        subscriptions = store.list(active_only=not show_all)
    finally:
        store.close()
    table = Table(title="Scheduled Searches")
    table.add_column("ID", style="cyan")
    table.add_column("Email")
    table.add_column("Query", style="white")
    table.add_column("Every", justify="right")
    table.add_column("Last sent", style="green")
    table.add_column("Active")
    for s in subscriptions:
        table.add_row(
            s.subscription_id,
            s.email or "",
            s.query.query,
            f"{s.frequency_days}d",
            UTC.format(s.last_notification_sent),
            "yes" if s.is_active else "no",
        )
    console.print(table)


@app.command()
def unsubscribe(
    subscription_id: str = typer.Argument(..., help="Subscription ID"),
    key: str = typer.Option(..., "--key", help="Unsubscribe key from the alert email"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir"),
) -> None:
    """Deactivate a scheduled search."""
    if not verify_unsubscribe_key(subscription_id, key, settings.unsubscribe_secret):
        console.print(f"[red]Invalid unsubscribe key for {subscription_id}[/red]")
        raise typer.Exit(1)
    store = _open_store(data_dir)
    try:
        found = store.deactivate(subscription_id)
    finally:
        store.close()
    if not found:
        console.print(f"[red]Unknown subscription {subscription_id}[/red]")
        raise typer.Exit(1)
    console.print(f"Unsubscribed {subscription_id}")


@app.command()
def version() -> None:
    """Show version information."""
    from .. import __version__
    console.print(f"Scheduled Search Alerts v{__version__}")


if __name__ == "__main__":
    app()
