"""Report CLI commands."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from serverdeck.cli.runtime import build_store, open_gateway
from serverdeck.core import analytics
from serverdeck.schemas.server import ServerRecord

console = Console()
app = typer.Typer(no_args_is_help=True)

_THRESHOLD_STYLES = {
    "critical": "bold red",
    "warning": "yellow",
    "ok": "green",
}


async def _fetch(location: str, company: str, env: str) -> list[ServerRecord]:
    async with open_gateway() as gateway:
        store = build_store(gateway)
        if not await store.load():
            console.print(f"[red]Failed to load servers: {store.last_error}[/red]")
            raise typer.Exit(1)
    return analytics.dashboard_filter(store.records, location=location, company=company, server_type=env)


def _records(location: str, company: str, env: str) -> list[ServerRecord]:
    return asyncio.run(_fetch(location, company, env))


def _counts_table(title: str, label: str, rows) -> Table:
    table = Table(title=title)
    table.add_column(label)
    table.add_column("Servers", justify="right")
    for row in rows:
        table.add_row(row.name, str(row.count))
    return table


LocationOpt = typer.Option(analytics.ANY, "--location", help="Only servers at this location")
CompanyOpt = typer.Option(analytics.ANY, "--company", help="Only servers of this company")
EnvOpt = typer.Option(analytics.ANY, "--env", help="Only servers of this environment")


@app.command("summary")
def summary_report(location: str = LocationOpt, company: str = CompanyOpt, env: str = EnvOpt):
    """Totals, CPU usage, backup coverage and alarms."""
    records = _records(location, company, env)
    s = analytics.summary(records)
    console.print(f"[bold]Servers:[/bold]   {s.total}")
    console.print(f"[bold]CPU usage:[/bold] {s.cpu_usage_percent:.1f}%")
    console.print(f"[bold]Backup:[/bold]    {s.backup_enabled} yes / {s.backup_disabled} no")
    console.print(f"[bold]Alarms:[/bold]    {s.alarm_total}")

    console.print(_counts_table("Environments", "Environment", analytics.environment_distribution(records)))
    console.print(_counts_table("Hardware", "Type", analytics.hardware_distribution(records)))


@app.command("os")
def os_report(location: str = LocationOpt, company: str = CompanyOpt, env: str = EnvOpt):
    """Servers per operating system family, and those without a maintenance window."""
    records = _records(location, company, env)
    console.print(_counts_table("Operating Systems", "OS", analytics.os_distribution(records)))
    missing = analytics.missing_maintenance_by_os(records)
    if missing:
        console.print(_counts_table("Missing Maintenance Window", "OS", missing))


@app.command("patch")
def patch_report(location: str = LocationOpt, company: str = CompanyOpt, env: str = EnvOpt):
    """Patch status distribution."""
    table = Table(title="Patch Status")
    table.add_column("Status")
    table.add_column("Servers", justify="right")
    table.add_column("Share", justify="right")
    for share in analytics.patch_distribution(_records(location, company, env)):
        table.add_row(share.status, str(share.count), f"{share.percentage:.1f}%")
    console.print(table)


@app.command("growth")
def growth_report(location: str = LocationOpt, company: str = CompanyOpt, env: str = EnvOpt):
    """Cumulative server growth and virtual/physical split over time."""
    records = _records(location, company, env)
    table = Table(title="Growth (last 12 months)")
    table.add_column("Month")
    table.add_column("Servers", justify="right")
    for point in analytics.growth_by_month(records):
        table.add_row(point.label, str(point.count))
    console.print(table)

    table = Table(title="Hardware by Quarter")
    table.add_column("Quarter")
    table.add_column("Virtual", justify="right")
    table.add_column("Physical", justify="right")
    for point in analytics.hardware_by_quarter(records):
        table.add_row(point.label, str(point.virtual), str(point.physical))
    console.print(table)


@app.command("admins")
def admins_report(location: str = LocationOpt, company: str = CompanyOpt, env: str = EnvOpt):
    """Servers per system admin."""
    table = Table(title="Servers per Admin")
    table.add_column("Admin")
    table.add_column("Servers", justify="right")
    for load in analytics.servers_per_admin(_records(location, company, env)):
        style = _THRESHOLD_STYLES[load.threshold]
        table.add_row(load.name or "-", f"[{style}]{load.count}[/{style}]")
    console.print(table)


@app.command("locations")
def locations_report(company: str = CompanyOpt, env: str = EnvOpt):
    """Servers per location with their resources."""
    records = _records(analytics.ANY, company, env)
    console.print(_counts_table("Servers by Location", "Location", analytics.servers_by_location(records)))

    table = Table(title="Resources")
    table.add_column("Server")
    table.add_column("Location")
    table.add_column("Cores", justify="right")
    table.add_column("RAM GB", justify="right")
    table.add_column("Storage GB", justify="right")
    for point in analytics.resource_points(records):
        table.add_row(point.name, point.location, str(point.cores), str(point.ram_gb), str(point.storage_gb))
    console.print(table)


@app.command("applications")
def applications_report():
    """Servers grouped by application."""
    groups = analytics.application_groups(_records(analytics.ANY, analytics.ANY, analytics.ANY))
    if not groups:
        console.print("[yellow]No servers are assigned to an application.[/yellow]")
        return
    for name, servers in groups.items():
        console.print(f"[bold]{name}[/bold] ({len(servers)})")
        for s in servers:
            console.print(f"  {s.server_name:<30} {s.server_type:<12} {s.ip_address}")


@app.command("alarms")
def alarms_report(location: str = LocationOpt, company: str = CompanyOpt, env: str = EnvOpt):
    """Servers with active alarms."""
    alarmed = analytics.alarmed_servers(_records(location, company, env))
    if not alarmed:
        console.print("[green]No active alarms.[/green]")
        return

    table = Table(title="Active Alarms")
    table.add_column("Server")
    table.add_column("Location")
    table.add_column("Alarms", justify="right")
    for s in alarmed:
        table.add_row(s.server_name, s.location, f"[red]{s.alarm_count}[/red]")
    console.print(table)
