"""Sakuga Legends API - FastAPI Application."""

import logging
from contextlib import asynccontextmanager

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.middleware import CorrelationIDMiddleware, CorrelationIdFilter

# Configure logging - cleaner output for development
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] [%(correlation_id)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
for _handler in logging.getLogger().handlers:
    _handler.addFilter(CorrelationIdFilter())

# Suppress noisy loggers - SQLAlchemy is especially chatty
logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine.Engine").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.dialects").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)
logging.getLogger("watchfiles").setLevel(logging.WARNING)

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.api.v1.router import api_router
from app.core.cache import get_cache
from app.core.errors import register_exception_handlers
from app.core.tasks import TaskManager
from app.db.database import init_db, get_db
from app.db.models import Animator, Clip, SubmissionStatus

logger = logging.getLogger(__name__)
settings = get_settings()

# Rate limiter - default per-IP limit for every endpoint
# Mutating endpoints (favorites, votes, submissions) have stricter limits applied via decorators
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.default_rate_limit])

task_manager = TaskManager.get_instance()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    await init_db()
    logger.info(f"{settings.app_name} started")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await task_manager.cancel_all(timeout=10.0)
    await get_cache().close()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.app_name,
    description="API for the Sakuga Legends animation clip catalogue",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting
app.state.limiter = limiter

# Error envelopes for ApiError, validation, rate limits and unexpected failures
register_exception_handlers(app)

# CORS middleware - restricted methods and headers for security
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Correlation-ID"],
    expose_headers=["X-Correlation-ID"],  # Allow frontend to read correlation ID
)

# Correlation ID middleware for request tracing
app.add_middleware(CorrelationIDMiddleware)

# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/health/db")
async def db_status(db: AsyncSession = Depends(get_db)):
    """Check database status and data availability."""
    try:
        result = await db.execute(
            select(func.count(Clip.id)).where(
                Clip.submission_status == SubmissionStatus.APPROVED.value
            )
        )
        clip_count = result.scalar_one_or_none() or 0

        result = await db.execute(
            select(func.count(Clip.id)).where(
                Clip.submission_status == SubmissionStatus.PENDING.value
            )
        )
        pending_count = result.scalar_one_or_none() or 0

        result = await db.execute(select(func.count(Animator.id)))
        animator_count = result.scalar_one_or_none() or 0

        return {
            "status": "healthy",
            "has_data": clip_count > 0,
            "clip_count": clip_count,
            "pending_count": pending_count,
            "animator_count": animator_count,
            "background_tasks": task_manager.get_task_stats(),
        }
    except Exception as e:
        logger.error(f"Health check DB error: {e}")
        return {
            "status": "error",
            "has_data": False,
            "clip_count": 0,
            "error": "Database health check failed",
        }


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }
