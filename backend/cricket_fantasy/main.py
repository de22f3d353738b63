"""Main FastAPI application entry point."""

import logging

import asyncpg

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cricket_fantasy.api.routes import router
from cricket_fantasy.config import get_settings
from cricket_fantasy.db import close_pool, init_pool
from cricket_fantasy.errors import ConfigurationError

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Cricket Fantasy Backend",
    description="Read-only API for fixture scores and fantasy leaderboards",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.on_event("startup")
async def startup_event() -> None:
    """Log startup information and open the database pool if configured."""
    logger.info("Starting Cricket Fantasy Backend")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    if not settings.db_connection_string:
        logger.warning("DATABASE_URL not set; database endpoints will return 503")
        return

    try:
        await init_pool()
    except (ConfigurationError, asyncpg.PostgresError, OSError) as e:
        logger.warning(f"Database unavailable at startup: {e}")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Cleanup on shutdown."""
    logger.info("Shutting down Cricket Fantasy Backend")
    await close_pool()
