"""Shared plumbing for CLI commands: gateway selection, store setup, option parsing."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import typer

from serverdeck.config import settings
from serverdeck.core.gateway import PersistenceGateway
from serverdeck.core.http_gateway import HttpGateway
from serverdeck.core.sql_gateway import SqlGateway
from serverdeck.core.store import InventoryStore
from serverdeck.schemas.view import ServerFilter, SortDirection, SortKey


@asynccontextmanager
async def open_gateway() -> AsyncIterator[PersistenceGateway]:
    """REST gateway when an API url is configured, the database otherwise."""
    if settings.api_url:
        gateway = HttpGateway.from_url(settings.api_url, actor=settings.actor, timeout=settings.api_timeout)
        try:
            yield gateway
        finally:
            await gateway.aclose()
        return

    from serverdeck.db.session import async_session_factory, engine, init_models

    await init_models(engine)
    try:
        yield SqlGateway(async_session_factory)
    finally:
        await engine.dispose()


def views_file() -> Path:
    return Path(settings.views_path)


def load_views(store: InventoryStore) -> None:
    path = views_file()
    if path.exists():
        store.import_views(json.loads(path.read_text(encoding="utf-8")))


def save_views(store: InventoryStore) -> None:
    views_file().write_text(json.dumps(store.export_views(), indent=2), encoding="utf-8")


def build_store(gateway: PersistenceGateway) -> InventoryStore:
    store = InventoryStore.from_settings(gateway, settings)
    load_views(store)
    return store


def parse_filters(values: list[str] | None) -> list[ServerFilter]:
    """``key=value`` pairs into filters."""
    filters = []
    for raw in values or []:
        key, sep, value = raw.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected key=value, got {raw!r}")
        filters.append(ServerFilter(key=key.strip(), value=value))
    return filters


def parse_sort(values: list[str] | None) -> list[SortKey]:
    """``key`` or ``key:desc`` entries into sort keys, primary first."""
    keys = []
    for raw in values or []:
        key, _, direction = raw.partition(":")
        try:
            keys.append(SortKey(key=key.strip(), direction=SortDirection(direction.strip().lower() or "asc")))
        except ValueError:
            raise typer.BadParameter(f"Expected key[:asc|desc], got {raw!r}") from None
    return keys


def parse_assignments(values: list[str] | None) -> dict[str, str]:
    updates = {}
    for raw in values or []:
        key, sep, value = raw.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected field=value, got {raw!r}")
        updates[key.strip()] = value
    return updates
