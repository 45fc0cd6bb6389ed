"""Server management CLI commands."""

from __future__ import annotations

import asyncio
import csv
from datetime import datetime
from pathlib import Path

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.table import Table

from serverdeck.cli.runtime import (
    build_store,
    open_gateway,
    parse_assignments,
    parse_filters,
    parse_sort,
)
from serverdeck.core.exporter import EXPORT_FORMATS, cell_text, export_filename, export_records, header_for
from serverdeck.core.pagination import ELLIPSIS, pagination_range
from serverdeck.core.store import InventoryStore
from serverdeck.schemas.server import SERVER_FIELDS, ServerCreate, ServerUpdate

console = Console()
app = typer.Typer(no_args_is_help=True)

_LIST_FIELDS = frozenset({"tags", "cpu_load_trend"})


def _apply_view_options(
    store: InventoryStore,
    view: str | None,
    filters: list[str] | None,
    search: str | None,
    sort: list[str] | None,
    fields: str | None,
) -> None:
    if view:
        match = next((v for v in store.saved_views if v.name == view or v.id == view), None)
        if match is None:
            console.print(f"[red]Saved view not found: {view}[/red]")
            raise typer.Exit(1)
        store.load_view(match.id)
    if filters:
        store.set_filters(parse_filters(filters))
    if search:
        store.set_search(search)
    if sort:
        store.set_sort_keys(parse_sort(sort))
    if fields:
        store.set_visible_fields(f.strip() for f in fields.split(",") if f.strip())


async def _load_or_exit(store: InventoryStore) -> None:
    if not await store.load():
        console.print(f"[red]Failed to load servers: {store.last_error}[/red]")
        raise typer.Exit(1)


@app.command("list")
def list_servers(
    filters: list[str] = typer.Option(None, "--filter", "-f", help="field=value, repeatable"),
    search: str = typer.Option(None, "--search", "-s", help="Search across all fields"),
    sort: list[str] = typer.Option(None, "--sort", help="field[:asc|desc], primary first, up to 3"),
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
    page_size: int = typer.Option(None, "--page-size", help="Servers per page"),
    view: str = typer.Option(None, "--view", help="Apply a saved view by name or id"),
    fields: str = typer.Option(None, "--fields", help="Comma separated fields to show"),
):
    """List servers with filtering, search, sorting and pagination."""
    asyncio.run(_list_servers(filters, search, sort, page, page_size, view, fields))


async def _list_servers(filters, search, sort, page, page_size, view, fields):
    async with open_gateway() as gateway:
        store = build_store(gateway)
        await _load_or_exit(store)

    _apply_view_options(store, view, filters, search, sort, fields)
    if page_size:
        store.set_page_size(page_size)
    store.set_page(page)

    if not store.derived_view:
        console.print("[yellow]No servers found.[/yellow]")
        return

    table = Table(title="Servers")
    table.add_column("ID", style="dim")
    for field in store.visible_fields:
        table.add_column(header_for(field))
    for s in store.page_items:
        table.add_row(s.id[:8], *(cell_text(f, getattr(s, f, None)) for f in store.visible_fields))

    console.print(table)
    pages = " ".join("…" if p == ELLIPSIS else (f"[bold]{p}[/bold]" if p == store.page else str(p))
                     for p in pagination_range(store.page, store.total_pages))
    console.print(f"Page {store.page} of {store.total_pages} ({len(store.derived_view)} servers)  {pages}")


@app.command("show")
def show_server(
    server_id: str = typer.Argument(..., help="Server id"),
):
    """Show server details and change history."""
    asyncio.run(_show_server(server_id))


async def _show_server(server_id: str):
    async with open_gateway() as gateway:
        store = build_store(gateway)
        await _load_or_exit(store)
        server = store.get(server_id)
        if not server:
            console.print(f"[red]Server not found: {server_id}[/red]")
            raise typer.Exit(1)
        history = await store.load_history(server_id)

    console.print(f"[bold]Server: {server.server_name}[/bold]")
    for field in SERVER_FIELDS:
        console.print(f"  {header_for(field) + ':':<20} {cell_text(field, getattr(server, field)) or '-'}")

    if not history:
        return
    table = Table(title="History")
    table.add_column("When")
    table.add_column("Field")
    table.add_column("Old")
    table.add_column("New")
    table.add_column("User")
    for entry in history:
        table.add_row(
            entry.timestamp.strftime("%d.%m.%Y %H:%M"),
            header_for(entry.field),
            entry.old_value or "-",
            entry.new_value or "-",
            entry.user,
        )
    console.print(table)


@app.command("add")
def add_server(
    name: str = typer.Argument(..., help="Server name"),
    ip: str = typer.Argument(..., help="IPv4 address"),
    os_name: str = typer.Option("", "--os", help="Operating system"),
    hardware: str = typer.Option("VMware", "--hardware", help="VMware or Bare-Metal"),
    env: str = typer.Option("Production", "--env", help="Production/Test/Development/Staging/QA"),
    location: str = typer.Option("", "--location", help="Location"),
    company: str = typer.Option("", "--company", help="Owning company"),
    backup: str = typer.Option("No", "--backup", help="Yes or No"),
    tags: str = typer.Option("", "--tags", help="Comma separated tags"),
):
    """Add a server manually."""
    try:
        draft = ServerCreate(
            server_name=name,
            ip_address=ip,
            operating_system=os_name,
            hardware_type=hardware,
            server_type=env,
            location=location,
            company=company,
            backup=backup,
            tags=[t for t in tags.split(",") if t.strip()],
        )
    except PydanticValidationError as e:
        console.print(f"[red]Invalid server: {e}[/red]")
        raise typer.Exit(1)
    asyncio.run(_add_server(draft))


async def _add_server(draft: ServerCreate):
    async with open_gateway() as gateway:
        store = build_store(gateway)
        server = await store.create(draft)

    if server is None:
        console.print(f"[red]Failed to add server: {store.last_error}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Server added: {server.server_name} (ID: {server.id})[/green]")


def _coerce_assignments(updates: dict[str, str]) -> dict[str, object]:
    coerced: dict[str, object] = {}
    for field, value in updates.items():
        if field in _LIST_FIELDS:
            coerced[field] = [v.strip() for v in value.split(",") if v.strip()]
        else:
            coerced[field] = value
    return coerced


@app.command("update")
def update_server(
    server_id: str = typer.Argument(..., help="Server id"),
    assignments: list[str] = typer.Option(..., "--set", help="field=value, repeatable"),
):
    """Update fields of a server; changed fields are recorded in its history."""
    try:
        patch = ServerUpdate.model_validate(_coerce_assignments(parse_assignments(assignments)))
    except PydanticValidationError as e:
        console.print(f"[red]Invalid update: {e}[/red]")
        raise typer.Exit(1)
    asyncio.run(_update_server(server_id, patch))


async def _update_server(server_id: str, patch: ServerUpdate):
    async with open_gateway() as gateway:
        store = build_store(gateway)
        await _load_or_exit(store)
        known = len(store.history_for(server_id))
        server = await store.update(server_id, patch)
        changed = len(store.history_for(server_id)) - known

    if server is None:
        console.print(f"[red]Failed to update server: {store.last_error}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Server {server.server_name} updated ({changed} fields changed).[/green]")


@app.command("import")
def import_servers(
    file: Path = typer.Argument(..., help="CSV file whose header row uses server field names"),
):
    """Bulk import servers from a CSV file."""
    asyncio.run(_import_servers(file))


async def _import_servers(file: Path):
    if not file.exists():
        console.print(f"[red]File not found: {file}[/red]")
        raise typer.Exit(1)

    drafts = []
    with open(file, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for line, row in enumerate(reader, start=2):
            values = {k: v for k, v in row.items() if k in SERVER_FIELDS and v not in (None, "")}
            try:
                drafts.append(ServerCreate.model_validate(_coerce_assignments(values)))
            except PydanticValidationError as e:
                console.print(f"[yellow]Skipping line {line}: {e.error_count()} invalid fields[/yellow]")

    async with open_gateway() as gateway:
        store = build_store(gateway)
        created = [s for s in [await store.create(d) for d in drafts] if s is not None]

    console.print(f"[green]Imported {len(created)} servers.[/green]")


@app.command("export")
def export_servers(
    fmt: str = typer.Option("csv", "--format", help="csv or xlsx"),
    output: Path = typer.Option(None, "--output", "-o", help="Target file"),
    filters: list[str] = typer.Option(None, "--filter", "-f", help="field=value, repeatable"),
    search: str = typer.Option(None, "--search", "-s", help="Search across all fields"),
    sort: list[str] = typer.Option(None, "--sort", help="field[:asc|desc]"),
    view: str = typer.Option(None, "--view", help="Apply a saved view by name or id"),
    fields: str = typer.Option(None, "--fields", help="Comma separated fields to export"),
):
    """Export the filtered server list."""
    if fmt not in EXPORT_FORMATS:
        console.print(f"[red]Unsupported format: {fmt}[/red]")
        raise typer.Exit(1)
    asyncio.run(_export_servers(fmt, output, filters, search, sort, view, fields))


async def _export_servers(fmt, output, filters, search, sort, view, fields):
    async with open_gateway() as gateway:
        store = build_store(gateway)
        await _load_or_exit(store)

    _apply_view_options(store, view, filters, search, sort, fields)
    data = export_records(store.derived_view, store.visible_fields, fmt)
    target = output or Path(export_filename(fmt, datetime.now()))
    target.write_bytes(data)
    console.print(f"[green]Exported {len(store.derived_view)} servers to {target}[/green]")


@app.command("tag")
def tag_servers(
    tag: str = typer.Argument(..., help="Tag to add"),
    server_ids: list[str] = typer.Argument(..., help="Server ids"),
):
    """Add a tag to several servers at once."""
    asyncio.run(_tag_servers(tag, server_ids))


async def _tag_servers(tag: str, server_ids: list[str]):
    async with open_gateway() as gateway:
        store = build_store(gateway)
        await _load_or_exit(store)
        for server_id in server_ids:
            store.toggle_select(server_id)
        tagged = await store.bulk_tag(tag)

    console.print(f"[green]Tagged {tagged} servers with '{tag}'.[/green]")
    if store.last_error:
        console.print(f"[yellow]Some servers could not be tagged: {store.last_error}[/yellow]")


@app.command("delete")
def delete_servers(
    server_ids: list[str] = typer.Argument(..., help="Server ids"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete servers and their history."""
    if not yes:
        typer.confirm(f"Delete {len(server_ids)} server(s)?", abort=True)
    asyncio.run(_delete_servers(server_ids))


async def _delete_servers(server_ids: list[str]):
    async with open_gateway() as gateway:
        store = build_store(gateway)
        await _load_or_exit(store)
        deleted = await store.delete_many(server_ids)

    console.print(f"[green]Deleted {len(deleted)} of {len(server_ids)} servers.[/green]")
    if len(deleted) < len(server_ids):
        console.print(f"[red]Last error: {store.last_error}[/red]")
        raise typer.Exit(1)
