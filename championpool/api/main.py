"""
championpool.api.main — FastAPI application entry point
========================================================

Run with::

    uvicorn championpool.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from championpool import __version__  # noqa: E402
from championpool.api.deps import get_config, get_engine  # noqa: E402
from championpool.api.routes.points import router as points_router  # noqa: E402
from championpool.api.routes.public import router as public_router  # noqa: E402
from championpool.api.routes.users import router as users_router  # noqa: E402
from championpool.database.engine import init_db, run_db  # noqa: E402
from championpool.errors import ChampionPoolError, InternalError  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Allowed CORS origins from ``CORS_ALLOW_ORIGINS`` (comma-separated)."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return []
    return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle: ensure tables and the pool row exist."""
    engine = get_engine()
    cfg = get_config()
    await run_db(init_db, engine, pool_capacity=cfg.pool_capacity)
    logger.info("ChampionPool API started, engine ready (%s)", engine.url.database)
    yield
    logger.info("ChampionPool API shutting down")


app = FastAPI(
    title="ChampionPool API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ChampionPoolError)
async def championpool_error_handler(request: Request, exc: ChampionPoolError) -> JSONResponse:
    """Render every service error as ``{"error": code, "message": ...}``."""
    if isinstance(exc, InternalError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    headers = None
    retry_after = exc.retry_after_seconds()
    if retry_after is not None:
        headers = {"Retry-After": str(retry_after)}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


app.include_router(users_router, prefix="/api")
app.include_router(points_router, prefix="/api")
app.include_router(public_router, prefix="/api")
