"""Application entry point for the FastAPI backend."""
from __future__ import annotations

import logging
from typing import Iterable

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .database import engine, init_db
from .routers import (
    conversations_router,
    follows_router,
    groups_router,
    posts_router,
    profiles_router,
    read_status_router,
    realtime_router,
)
from .security import CyclicPolicyError, PolicyViolationError, row_security
from .services.migrations import ensure_policy_tables, upgrade_schema

logger = logging.getLogger(__name__)

settings = get_settings()
APP_NAME = settings.app_name
API_VERSION = settings.api_version

app = FastAPI(title=APP_NAME, version=API_VERSION)

if settings.cors_origins:
    origins: Iterable[str] = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
else:
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(profiles_router)
app.include_router(follows_router)
app.include_router(posts_router)
app.include_router(conversations_router)
app.include_router(groups_router)
app.include_router(read_status_router)
app.include_router(realtime_router)


@app.exception_handler(PolicyViolationError)
async def _policy_violation_handler(_request: Request, exc: PolicyViolationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})


@app.exception_handler(CyclicPolicyError)
async def _cyclic_policy_handler(_request: Request, exc: CyclicPolicyError) -> JSONResponse:
    logger.error("Cyclic policy evaluation: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Authorization policy misconfigured"},
    )


@app.on_event("startup")
async def _startup() -> None:
    """Ensure the database schema is ready before serving."""

    try:
        upgrade_schema(settings.database_url)
        init_db()
        ensure_policy_tables(engine)
    except Exception:  # pragma: no cover - best effort logging
        logger.exception("Database initialisation failed")
        raise

    logger.info(
        "%s %s ready (%d table policies, group member visibility: %s, mutual follow for DMs: %s)",
        APP_NAME,
        API_VERSION,
        len(row_security.registered()),
        settings.group_member_visibility,
        settings.dm_require_mutual_follow,
    )


@app.get("/api", tags=["system"])
def api_info() -> dict[str, str]:
    return {"service": APP_NAME, "version": API_VERSION}


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
