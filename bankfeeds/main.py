"""Bank Feeds API: main entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from bankfeeds.config import settings
from bankfeeds.core.database import async_session_factory, engine
from bankfeeds.core.middleware import RequestLoggingMiddleware

logger = structlog.get_logger()

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    logger.info("Starting Bank Feeds API", env=settings.app_env)
    yield
    logger.info("Shutting down Bank Feeds API")
    await engine.dispose()


app = FastAPI(
    title="Bank Feeds API",
    description="Bank statement import, categorization and reconciliation",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    # Trailing slash redirects drop the Authorization header behind some proxies
    redirect_slashes=False,
)

# ── Middleware ─────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


# ── Health Check ──────────────────────────────────
@app.get("/health", tags=["system"])
async def health_check():
    """Liveness probe: always returns healthy if the process is running."""
    return {"status": "healthy", "version": VERSION}


@app.get("/ready", tags=["system"])
async def readiness_check():
    """Readiness probe: checks DB connectivity."""
    checks = {"database": "unknown", "api": "ok"}
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
            checks["database"] = "ok"
    except Exception as e:
        logger.warning("readiness_check_failed", error=str(e))
        checks["database"] = f"error: {e}"
        return {"status": "degraded", "checks": checks}

    return {"status": "ready", "checks": checks}


# ── API Routes ────────────────────────────────────
from bankfeeds.api.v1 import bank_feeds, categorization_rules  # noqa: E402

app.include_router(bank_feeds.router, prefix="/api/v1/bank-feeds", tags=["bank-feeds"])
app.include_router(
    categorization_rules.router,
    prefix="/api/v1/categorization-rules",
    tags=["categorization-rules"],
)
