"""Common query helpers."""

from __future__ import annotations

from typing import Any, Iterator, Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from serverdeck.db.session import Base

T = TypeVar("T", bound=Base)
S = TypeVar("S")


def chunked(items: Sequence[S], size: int) -> Iterator[Sequence[S]]:
    """Yield consecutive slices of at most ``size`` items."""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def get_by_id(session: AsyncSession, model: type[T], ident: Any) -> T | None:
    """Fetch a single row by primary key column ``id``."""
    result = await session.execute(select(model).where(model.id == ident))
    return result.scalar_one_or_none()
