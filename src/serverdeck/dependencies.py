"""FastAPI dependency injection."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header

from serverdeck.config import settings
from serverdeck.core.sql_gateway import SqlGateway
from serverdeck.db.session import async_session_factory


def get_gateway() -> SqlGateway:
    """Gateway over the application database."""
    return SqlGateway(async_session_factory)


async def get_actor(x_actor: Annotated[str | None, Header()] = None) -> str:
    """Pass-through gate: whoever the caller claims to be, falling back to the default actor."""
    return x_actor or settings.actor


# Common dependency aliases
Gateway = Annotated[SqlGateway, Depends(get_gateway)]
CurrentActor = Annotated[str, Depends(get_actor)]
