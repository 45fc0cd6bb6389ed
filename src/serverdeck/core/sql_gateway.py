"""SQLAlchemy-backed persistence gateway."""

from __future__ import annotations

import logging

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from serverdeck.core.errors import NotFoundError, TransportError, ValidationError
from serverdeck.core.gateway import apply_patch, complete_draft
from serverdeck.db.queries import get_by_id
from serverdeck.models.server import Server
from serverdeck.models.server_history import ServerHistory
from serverdeck.schemas.history import HistoryEntry
from serverdeck.schemas.server import ServerCreate, ServerRecord, ServerUpdate

logger = logging.getLogger(__name__)


def _row_values(record: ServerRecord) -> dict:
    # Enums go to the database as their plain string values
    return record.model_dump(mode="json", exclude={"created_at", "updated_at", "last_patch_date"}) | {
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "last_patch_date": record.last_patch_date,
    }


def _to_record(row: Server) -> ServerRecord:
    try:
        return ServerRecord.model_validate(row)
    except PydanticValidationError as e:
        raise TransportError(f"Malformed server row {row.id}: {e}") from e


class SqlGateway:
    """Gateway storing servers and history through an async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def fetch_all(self) -> list[ServerRecord]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(Server).order_by(Server.server_name))
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to fetch servers: {e}") from e
        return [_to_record(row) for row in rows]

    async def fetch_one(self, server_id: str) -> ServerRecord:
        try:
            async with self.session_factory() as session:
                row = await get_by_id(session, Server, server_id)
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to fetch server {server_id}: {e}") from e
        if row is None:
            raise NotFoundError(f"Server not found: {server_id}")
        return _to_record(row)

    async def create(self, draft: ServerCreate) -> ServerRecord:
        record = complete_draft(draft)
        try:
            async with self.session_factory() as session:
                session.add(Server(**_row_values(record)))
                await session.commit()
        except IntegrityError as e:
            raise ValidationError(f"Server id already exists: {record.id}") from e
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to create server: {e}") from e
        return record

    async def update(self, server_id: str, patch: ServerUpdate) -> ServerRecord:
        try:
            async with self.session_factory() as session:
                row = await get_by_id(session, Server, server_id)
                if row is None:
                    raise NotFoundError(f"Server not found: {server_id}")
                updated = apply_patch(_to_record(row), patch)
                for field, value in _row_values(updated).items():
                    setattr(row, field, value)
                await session.commit()
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to update server {server_id}: {e}") from e
        return updated

    async def delete(self, server_id: str) -> None:
        try:
            async with self.session_factory() as session:
                row = await get_by_id(session, Server, server_id)
                if row is None:
                    raise NotFoundError(f"Server not found: {server_id}")
                await session.execute(delete(ServerHistory).where(ServerHistory.server_id == server_id))
                await session.delete(row)
                await session.commit()
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to delete server {server_id}: {e}") from e

    async def batch_upsert(self, records: list[ServerRecord]) -> int:
        try:
            async with self.session_factory() as session:
                for record in records:
                    await session.merge(Server(**_row_values(record)))
                await session.commit()
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to upsert servers: {e}") from e
        logger.info("Upserted %d servers", len(records))
        return len(records)

    async def fetch_history(self, server_id: str) -> list[HistoryEntry]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ServerHistory)
                    .where(ServerHistory.server_id == server_id)
                    .order_by(ServerHistory.timestamp)
                )
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to fetch history of server {server_id}: {e}") from e
        return [HistoryEntry.model_validate(row) for row in rows]

    async def batch_upsert_history(self, entries: list[HistoryEntry]) -> int:
        try:
            async with self.session_factory() as session:
                for entry in entries:
                    await session.merge(ServerHistory(**entry.model_dump()))
                await session.commit()
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to upsert history: {e}") from e
        return len(entries)
