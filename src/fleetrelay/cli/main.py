#!/usr/bin/env python3
"""
Fleet Relay CLI

Usage:
    fleetrelay serve [OPTIONS]                        # Run the webhook relay
    fleetrelay catalog list [--notifications PATH]    # List notification definitions
    fleetrelay records show MC_ID [--format FORMAT]   # Show a stored notification record

Examples:
    fleetrelay serve --fleet-mode --notifications notifications.yaml --access-token @/secrets/token
    fleetrelay catalog list --notifications notifications.yaml
    fleetrelay records show mc-1 --database-url sqlite+aiosqlite:///fleetrelay.db
"""

import asyncio
import json
import sys
from typing import Any, Dict

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from fleetrelay import __version__
from fleetrelay.core.catalog import NotificationCatalog
from fleetrelay.core.config import RelayConfig
from fleetrelay.exceptions.base import FleetRelayError, RecordNotFoundError
from fleetrelay.services.webhook_service import run_server
from fleetrelay.stores import DatabaseRecordStore

console = Console()


def _config_from_options(**options: Any) -> RelayConfig:
    """Build configuration from the environment, letting given options win"""
    overrides: Dict[str, Any] = {key: value for key, value in options.items() if value is not None}
    return RelayConfig.from_env(**overrides)


@click.group()
@click.version_option(version=__version__)
def cli():
    """Fleet Relay - managed notifications from Alertmanager alerts"""


@cli.group()
def catalog():
    """Notification catalog commands"""


@cli.group()
def records():
    """Notification record commands"""


@cli.command("serve")
@click.option("--ocm-url", help="OCM API base URL")
@click.option("--access-token", help="OCM access token, or @FILE to read it from a file")
@click.option("--cluster-id", help="Cluster ID, or @FILE; required outside fleet mode")
@click.option("--fleet-mode/--no-fleet-mode", default=None, help="Route alerts by management and hosted cluster")
@click.option("--notifications", "notifications_path", help="Notification definitions YAML file")
@click.option("--store", "store_backend", type=click.Choice(["memory", "database"]), help="Record store backend")
@click.option("--database-url", help="Database URL for the database record store")
@click.option("--host", help="Bind address")
@click.option("--port", "-p", type=int, help="Server port")
@click.option("--debug", "debug_mode", is_flag=True, default=None, help="Enable debug mode")
@click.option("--skip-ocm-check", is_flag=True, help="Do not check the OCM API is reachable on startup")
def serve(skip_ocm_check, **options):
    """Run the Alertmanager webhook relay"""
    config = _config_from_options(**options)
    if config.debug_mode:
        config = config.update(log_level="DEBUG")

    console.print(f"Starting Fleet Relay on [bold blue]{config.host}:{config.port}[/bold blue]")
    asyncio.run(run_server(config, check_ocm=not skip_ocm_check))


@catalog.command("list")
@click.option("--notifications", "notifications_path", help="Notification definitions YAML file")
@click.option("--format", "-f", "output_format", default="table", type=click.Choice(["table", "json"]))
def list_catalog(notifications_path, output_format):
    """List notification definitions"""
    config = _config_from_options(notifications_path=notifications_path)
    if not config.notifications_path:
        raise click.UsageError("--notifications or FLEETRELAY_NOTIFICATIONS_PATH is required")

    definitions = list(NotificationCatalog.from_yaml(config.notifications_path))

    if output_format == "json":
        click.echo(json.dumps([d.model_dump(mode="json") for d in definitions], indent=2))
        return

    if not definitions:
        console.print("No notifications defined")
        return

    table = Table(title="Notification Definitions")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Severity", style="yellow")
    table.add_column("Wait (min)", style="green", justify="right")
    table.add_column("Limited Support", style="magenta")
    table.add_column("Resolves", style="blue")
    table.add_column("Summary")

    for definition in definitions:
        table.add_row(
            definition.name,
            definition.severity.value,
            str(definition.resend_wait_minutes),
            "yes" if definition.limited_support else "no",
            "yes" if definition.handles_resolve else "no",
            definition.summary
        )

    console.print(table)


@records.command("show")
@click.argument("management_cluster_id")
@click.option("--database-url", help="Database URL of the record store")
@click.option("--format", "-f", "output_format", default="table", type=click.Choice(["table", "json"]))
def show_record(management_cluster_id, database_url, output_format):
    """Show the notification record of a management cluster"""
    config = _config_from_options(database_url=database_url)

    async def _show_record():
        store = DatabaseRecordStore.from_url(config.database_url)
        try:
            await store.initialize()
            return await store.get(management_cluster_id)
        finally:
            await store.close()

    try:
        record, version = asyncio.run(_show_record())
    except RecordNotFoundError:
        console.print(f"No notification record for [bold]{escape(management_cluster_id)}[/bold]")
        return

    if output_format == "json":
        click.echo(json.dumps({"version": version, **record.model_dump(mode="json")}, indent=2))
        return

    table = Table(title=f"Notification Record {management_cluster_id} (version {version})")
    table.add_column("Notification", style="cyan")
    table.add_column("Target", style="blue")
    table.add_column("Last Sent", style="green")
    table.add_column("Sent", justify="right")
    table.add_column("Last Resolved", style="yellow")
    table.add_column("Resolved", justify="right")

    for entry in record.records_by_name:
        for item in entry.items:
            table.add_row(
                entry.notification_name,
                item.target_id,
                item.last_sent_at.isoformat() if item.last_sent_at else "-",
                str(item.sent_count),
                item.last_resolved_at.isoformat() if item.last_resolved_at else "-",
                str(item.resolved_sent_count)
            )

    console.print(table)


def main():
    """Entry point for the CLI"""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\nStopped")
        sys.exit(0)
    except FleetRelayError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
