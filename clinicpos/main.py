"""
ClinicPOS Finance API: application entry-point.

Initializes the FastAPI application, registers middleware, exception handlers,
routers, and manages the application lifecycle (DB table creation on startup).
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy import text

from clinicpos.api.api import api_router
from clinicpos.core.cache import cache
from clinicpos.core.config import settings
from clinicpos.core.exceptions import add_exception_handlers
from clinicpos.core.logging import setup_logging
from clinicpos.core.resilience import DB_UNAVAILABLE_ERRORS, db_circuit_breaker, retry_with_backoff
from clinicpos.db.base import metadata
from clinicpos.db.session import AsyncSessionLocal, engine
from clinicpos.middleware import RequestIDMiddleware, RequestTimingMiddleware

VERSION = "1.0.0"

setup_logging()
logger = logging.getLogger(__name__)


@retry_with_backoff(
    max_retries=5,
    base_delay=2.0,
    max_delay=30.0,
    retryable_exceptions=DB_UNAVAILABLE_ERRORS,
)
async def create_tables() -> None:
    """Create missing tables; retried while the database is still starting."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: create tables, retrying with backoff.  If the database stays
    unreachable the app starts in degraded mode and ``/health`` reports
    ``database: false``.

    Shutdown: dispose of the connection pool.
    """
    try:
        logger.info("Connecting to database…")
        await create_tables()
        logger.info("Database tables ready")
    except DB_UNAVAILABLE_ERRORS as exc:
        logger.error(
            "Could not connect to database; starting in DEGRADED mode. "
            "Database-dependent endpoints will fail until it is available. Last error: %s",
            exc,
        )

    yield

    logger.info("Shutting down, disposing connection pool")
    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=VERSION,
    description=(
        "Clinic finance backend: investors, investments with multi-investor "
        "shares, contributions and their ledger, patient bills and medicine stock."
    ),
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
)

# The last middleware added is the outermost.
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Liveness / readiness probe.

    Runs ``SELECT 1`` against the database and reports circuit breaker state
    and cache statistics.
    """
    db_healthy = True
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("Health check database probe failed: %s", exc)
        db_healthy = False

    return {
        "status": "ok" if db_healthy else "degraded",
        "version": VERSION,
        "database": db_healthy,
        "circuit_breaker": db_circuit_breaker.get_status(),
        "cache": cache.get_stats(),
    }
