"""Database management CLI commands."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from serverdeck.config import settings
from serverdeck.core.errors import GatewayError
from serverdeck.core.http_gateway import HttpGateway
from serverdeck.core.sql_gateway import SqlGateway
from serverdeck.core.store import InventoryStore
from serverdeck.core.sync import push_store

console = Console()
app = typer.Typer(no_args_is_help=True)


@app.command()
def init():
    """Initialize the database (create all tables)."""
    asyncio.run(_init_db())


async def _init_db():
    from serverdeck.db.session import engine, init_models

    await init_models(engine)
    await engine.dispose()
    console.print("[green]Database initialized successfully.[/green]")


@app.command()
def sync(
    api_url: str = typer.Option(None, "--api-url", help="Target API, defaults to API_URL"),
):
    """Push every local server and its history to a remote API."""
    target = api_url or settings.api_url
    if not target:
        console.print("[red]No target API configured (use --api-url or API_URL).[/red]")
        raise typer.Exit(1)
    asyncio.run(_sync(target))


async def _sync(target: str):
    from serverdeck.db.session import async_session_factory, engine, init_models

    await init_models(engine)
    local = SqlGateway(async_session_factory)
    store = InventoryStore.from_settings(local, settings)
    try:
        if not await store.load():
            console.print(f"[red]Failed to load local servers: {store.last_error}[/red]")
            raise typer.Exit(1)
        for server in store.records:
            await store.load_history(server.id)

        remote = HttpGateway.from_url(target, actor=settings.actor, timeout=settings.api_timeout)
        try:
            result = await push_store(store, remote, batch_size=settings.sync_batch_size)
        except GatewayError as e:
            console.print(f"[red]Sync failed: {e}[/red]")
            raise typer.Exit(1)
        finally:
            await remote.aclose()
    finally:
        await engine.dispose()

    console.print(f"[green]Synced {result.servers} servers and {result.history} history entries.[/green]")
