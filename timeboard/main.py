"""Timeboard — team timezone dashboard API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from timeboard.config import settings
from timeboard.database import async_session, close_db, init_db
from timeboard.errors import RegistryError
from timeboard.middleware.identity import IdentityMiddleware
from timeboard.middleware.request_logging import RequestLoggingMiddleware
from timeboard.routes import members
from timeboard.seed import seed_data

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    # Seed demo members on first startup
    if settings.seed_demo_members:
        await seed_data(async_session)
    yield
    await close_db()


app = FastAPI(
    title="Timeboard",
    description="Team timezone dashboard — shared team-member registry with live working status",
    version=settings.api_version,
    lifespan=lifespan,
)

app.add_middleware(IdentityMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(members.router, prefix=settings.api_prefix)


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=headers,
    )


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "timeboard", "version": settings.api_version}
