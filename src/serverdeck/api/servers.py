"""Server API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from serverdeck.core.errors import NotFoundError, ValidationError
from serverdeck.core.gateway import utcnow
from serverdeck.core.history import diff_history
from serverdeck.dependencies import CurrentActor, Gateway
from serverdeck.schemas.history import HistoryEntry
from serverdeck.schemas.server import (
    ServerCreate,
    ServerImport,
    ServerListResponse,
    ServerRecord,
    ServerUpdate,
)

router = APIRouter()


@router.get("", response_model=ServerListResponse)
async def list_servers(gateway: Gateway, actor: CurrentActor):
    items = await gateway.fetch_all()
    return ServerListResponse(items=items, total=len(items))


@router.post("", response_model=ServerRecord, status_code=201)
async def create_server(request: ServerCreate, gateway: Gateway, actor: CurrentActor):
    if not request.updated_by:
        request = request.model_copy(update={"updated_by": actor})
    try:
        return await gateway.create(request)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/batch")
async def upsert_servers(request: ServerImport, gateway: Gateway, actor: CurrentActor):
    count = await gateway.batch_upsert(request.servers)
    return {"count": count}


@router.get("/{server_id}", response_model=ServerRecord)
async def get_server(server_id: str, gateway: Gateway, actor: CurrentActor):
    try:
        return await gateway.fetch_one(server_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Server not found")


@router.patch("/{server_id}", response_model=ServerRecord)
async def update_server(server_id: str, request: ServerUpdate, gateway: Gateway, actor: CurrentActor):
    stamp = {}
    if request.updated_by is None:
        stamp["updated_by"] = actor
    if request.updated_at is None:
        stamp["updated_at"] = utcnow()
    if stamp:
        request = ServerUpdate.model_validate({**request.changes(), **stamp})
    try:
        current = await gateway.fetch_one(server_id)
        updated = await gateway.update(server_id, request)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Server not found")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    entries = diff_history(current, request.changes(), request.updated_by, request.updated_at)
    if entries:
        await gateway.batch_upsert_history(entries)
    return updated


@router.delete("/{server_id}")
async def delete_server(server_id: str, gateway: Gateway, actor: CurrentActor):
    try:
        await gateway.delete(server_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Server not found")
    return {"message": "Server deleted"}


@router.get("/{server_id}/history", response_model=list[HistoryEntry])
async def get_server_history(server_id: str, gateway: Gateway, actor: CurrentActor):
    return await gateway.fetch_history(server_id)
