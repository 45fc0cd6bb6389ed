"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from serverdeck.api.router import api_router
from serverdeck.config import settings
from serverdeck.core.errors import TransportError
from serverdeck.db.session import _is_sqlite, engine, init_models

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if _is_sqlite:
        await init_models(engine)
        logger.info("Initialized SQLite schema at %s", settings.database_url)
    yield
    await engine.dispose()


app = FastAPI(
    title="serverdeck",
    description="Server inventory management",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.exception_handler(TransportError)
async def transport_error_handler(request: Request, exc: TransportError):
    logger.error("Backend failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage backend unavailable"})


@app.get("/health")
async def health_check():
    return {"status": "ok"}
