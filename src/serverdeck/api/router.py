"""Main router aggregation."""

from fastapi import APIRouter

from serverdeck.api.history import router as history_router
from serverdeck.api.servers import router as servers_router

api_router = APIRouter()

api_router.include_router(servers_router, prefix="/servers", tags=["servers"])
api_router.include_router(history_router, prefix="/history", tags=["history"])
