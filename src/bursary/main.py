"""
Bursary Portal API - Main Application Entry Point

Builds the FastAPI app and wires up:
- Logging
- Database and Redis lifecycle
- Draining of post-commit side effects on shutdown
- CORS middleware
- API routing
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from bursary.api import api_router
from bursary.core import dispatch
from bursary.core.config import settings
from bursary.core.database import async_session_maker, close_db, init_db
from bursary.core.redis import close_redis, init_redis, ping_redis

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Startup and shutdown hooks.

    Covers:
    - Redis connection
    - Database connection
    - Waiting for in-flight notifications and emails
    """
    # Startup
    print(f"Starting Bursary Portal API in {settings.python_env} mode...")

    # Initialize Redis (rate limiting falls back to memory without it)
    try:
        await init_redis()
        print("[OK] Redis connected")
    except Exception as e:
        print(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    # Initialize Database
    try:
        await init_db()
        print("[OK] Database connected")
    except Exception as e:
        print(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    yield  # Application runs here

    # Shutdown
    print("Shutting down Bursary Portal API...")

    await dispatch.drain()
    print("[OK] Pending side effects drained")

    await close_redis()
    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="Bursary Portal API",
    description="Student bursary applications: profiles, submissions, review and disbursement",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Portal banner with the running environment."""
    return {
        "message": f"Welcome to the {settings.organization_name} Bursary Portal API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Liveness check; does not touch the database."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict:
    """Readiness check: database must answer; Redis is reported but optional."""
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        logger.error(f"Readiness check: database unavailable: {e}")
        database = "unavailable"

    redis = "connected" if await ping_redis() else "unavailable"
    return {
        "status": "ready" if database == "connected" else "not_ready",
        "database": database,
        "redis": redis,
        "pending_side_effects": dispatch.pending_count(),
    }
