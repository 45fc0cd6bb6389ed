"""Saved view CLI commands."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from serverdeck.cli.runtime import load_views, parse_filters, parse_sort, save_views
from serverdeck.config import settings
from serverdeck.core.gateway import InMemoryGateway
from serverdeck.core.store import InventoryStore

console = Console()
app = typer.Typer(no_args_is_help=True)


def _view_store() -> InventoryStore:
    # Views carry no server data, so no backend is needed to edit them
    store = InventoryStore.from_settings(InMemoryGateway(), settings)
    load_views(store)
    return store


@app.command("save")
def save_view(
    name: str = typer.Argument(..., help="View name"),
    filters: list[str] = typer.Option(None, "--filter", "-f", help="field=value, repeatable"),
    sort: list[str] = typer.Option(None, "--sort", help="field[:asc|desc], primary first"),
    fields: str = typer.Option(None, "--fields", help="Comma separated visible fields"),
):
    """Save a named combination of filters, sort order and visible fields."""
    store = _view_store()
    store.set_filters(parse_filters(filters))
    if sort:
        store.set_sort_keys(parse_sort(sort))
    if fields:
        store.set_visible_fields(f.strip() for f in fields.split(",") if f.strip())
    view = store.save_view(name)
    save_views(store)
    console.print(f"[green]View saved: {view.name} (ID: {view.id})[/green]")


@app.command("list")
def list_views():
    """List saved views."""
    store = _view_store()
    if not store.saved_views:
        console.print("[yellow]No saved views.[/yellow]")
        return

    table = Table(title="Saved Views")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Owner")
    table.add_column("Filters")
    table.add_column("Sort")
    table.add_column("Fields")
    for v in store.saved_views:
        table.add_row(
            v.id,
            v.name,
            v.owner_id,
            ", ".join(f"{f.key}={f.value}" for f in v.filters) or "-",
            ", ".join(f"{s.key}:{s.direction}" for s in v.sort_keys) or "-",
            ", ".join(v.visible_fields),
        )
    console.print(table)


@app.command("delete")
def delete_view(
    view_id: str = typer.Argument(..., help="View id"),
):
    """Delete a saved view."""
    store = _view_store()
    if not store.delete_view(view_id):
        console.print(f"[red]View not found: {view_id}[/red]")
        raise typer.Exit(1)
    save_views(store)
    console.print("[green]View deleted.[/green]")
