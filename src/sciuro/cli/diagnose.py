"""Configuration and matching diagnostics.

This module provides CLI commands for checking a deployment without
touching the cluster:
- check-config: Validate settings and compile the node matcher
- match: Fetch alerts once and show which ones apply to a node, with the
  conditions they would produce
"""

import asyncio
import json
from datetime import timedelta

import typer
from prometheus_client import CollectorRegistry
from rich.console import Console
from rich.table import Table

from sciuro.cache import AlertCache
from sciuro.cli.bootstrap import configure_logging, load_settings
from sciuro.exceptions import AlertCacheError, AlertConversionError, ConfigurationError
from sciuro.match import create_matcher
from sciuro.metrics import ReconcileMetrics, SyncMetrics
from sciuro.reconciler import ConditionReconciler, parse_priority
from sciuro.sources import create_alert_source


def check_config() -> None:
    """Validate configuration and exit non-zero if it is unusable."""
    settings = load_settings()
    try:
        create_matcher(settings.node_filters, settings.node_expression)
    except ConfigurationError as e:
        print(f"Error: {e}")
        raise typer.Exit(1)

    backend = (
        f"alertmanager {settings.alertmanager_url} (receiver {settings.alert_receiver})"
        if settings.alertmanager_url
        else f"prometheus {', '.join(settings.prometheus_urls)}"
    )
    matcher = "node filters" if settings.node_filters else "node expression"
    print("Configuration OK")
    print(f"  Backend: {backend}")
    print(f"  Matcher: {matcher}")
    print(f"  Condition prefix: {settings.condition_prefix}")
    print(f"  Linger: {settings.linger_duration}s")


def match_node(
    node: str = typer.Option(..., "--node", "-n", help="Full node name to match alerts for"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the alerts and conditions that apply to a node right now."""
    settings = load_settings()
    configure_logging(settings)

    async def _match() -> None:
        try:
            matcher = create_matcher(settings.node_filters, settings.node_expression)
            source = create_alert_source(settings)
        except ConfigurationError as e:
            print(f"Error: {e}")
            raise typer.Exit(1)

        registry = CollectorRegistry()
        cache = AlertCache(
            source=source,
            matcher=matcher,
            metrics=SyncMetrics(registry),
            interval_seconds=settings.alert_cache_ttl,
        )
        reconciler = ConditionReconciler(
            prefix=settings.condition_prefix,
            linger=timedelta(seconds=settings.linger_duration),
            metrics=ReconcileMetrics(registry),
        )

        try:
            await cache.refresh()
            found = cache.query(node)
            conditions = reconciler.reconcile([], found.alerts, found.retrieved_at)
        except (AlertCacheError, AlertConversionError) as e:
            print(f"Error: {e}")
            raise typer.Exit(1)
        finally:
            await source.aclose()

        if json_output:
            data = {
                "node": node,
                "retrieved_at": found.retrieved_at,
                "partial_error": str(found.partial_error) if found.partial_error else None,
                "alerts": [
                    {"labels": a.labels, "annotations": a.annotations} for a in found.alerts
                ],
                "conditions": [
                    {"type": c.type, "status": c.status, "message": c.message}
                    for c in conditions
                ],
            }
            print(json.dumps(data, indent=2, default=str))
            return

        console = Console()
        if found.partial_error is not None:
            console.print(f"[yellow]Partial alert fetch:[/yellow] {found.partial_error}")

        table = Table(title=f"Alerts for {node}")
        table.add_column("Alert", style="cyan")
        table.add_column("Priority", justify="right")
        table.add_column("Started")
        table.add_column("Summary")
        for alert in found.alerts:
            table.add_row(
                alert.name or "-",
                str(parse_priority(alert)),
                alert.starts_at.strftime("%Y-%m-%d %H:%M:%S") if alert.starts_at else "-",
                alert.annotations.get("summary", ""),
            )
        console.print(table)

        table = Table(title="Resulting conditions")
        table.add_column("Type", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Message")
        for c in conditions:
            table.add_row(c.type, c.status, c.message)
        console.print(table)

    asyncio.run(_match())
