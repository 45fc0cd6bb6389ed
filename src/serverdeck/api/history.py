"""History API endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from serverdeck.dependencies import CurrentActor, Gateway
from serverdeck.schemas.history import HistoryImport

router = APIRouter()


@router.post("/batch")
async def upsert_history(request: HistoryImport, gateway: Gateway, actor: CurrentActor):
    count = await gateway.batch_upsert_history(request.entries)
    return {"count": count}
