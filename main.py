"""
FastAPI Menu Recommendation Service - Main Application
Personalized menu recommendations for the ordering platform
"""
import os
import logging
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from menu_reco.core.config import settings
from menu_reco.core.database import init_db
from menu_reco.core.logging_config import configure_logging
from menu_reco.routers import recommendations
from menu_reco.services.recommendations import get_cache

logger = logging.getLogger(__name__)

# Scheduler instance
scheduler = AsyncIOScheduler()

APP_VERSION = "1.0.0"


def purge_signal_cache() -> int:
    """Drop expired velocity/affinity entries from the signal cache"""
    removed = get_cache().cleanup_expired()
    if removed:
        logger.info(f"Purged {removed} expired signal cache entries")
    return removed


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager
    Handles startup and shutdown events
    """
    # Startup
    configure_logging()
    logger.info(f"Starting {settings.APP_NAME} at {datetime.now().isoformat()}")

    await init_db()
    logger.info("Database initialized")

    if settings.ENABLE_SCHEDULER:
        scheduler.add_job(
            purge_signal_cache,
            trigger=IntervalTrigger(minutes=settings.CACHE_CLEANUP_INTERVAL_MINUTES),
            id="signal_cache_cleanup",
            name="Signal cache cleanup",
            replace_existing=True
        )
        scheduler.start()
        logger.info(f"Cache cleanup scheduled every {settings.CACHE_CLEANUP_INTERVAL_MINUTES} minutes")

    yield

    # Shutdown
    logger.info("Shutting down application")
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Multi-strategy menu recommendations with contextual and diversity re-ranking",
    version=APP_VERSION,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint - health check"""
    return {
        "message": settings.APP_NAME,
        "status": "running",
        "version": APP_VERSION,
        "timestamp": datetime.now().isoformat()
    }


# Include routers
app.include_router(recommendations.router, prefix="/recommendations", tags=["recommendations"])


if __name__ == "__main__":
    import uvicorn

    configure_logging()

    # SSL configuration
    ssl_keyfile = settings.SSL_KEY_PATH if settings.SSL_ENABLED else None
    ssl_certfile = settings.SSL_CERT_PATH if settings.SSL_ENABLED else None

    if ssl_keyfile and ssl_certfile and os.path.exists(ssl_keyfile) and os.path.exists(ssl_certfile):
        logger.info(f"Starting HTTPS server on port {settings.PORT}")
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.PORT,
            ssl_keyfile=ssl_keyfile,
            ssl_certfile=ssl_certfile,
            reload=settings.DEBUG
        )
    else:
        if settings.SSL_ENABLED:
            logger.warning(f"SSL certificates not found, starting HTTP server on port {settings.PORT}")
        else:
            logger.info(f"Starting HTTP server on port {settings.PORT}")
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.PORT,
            reload=settings.DEBUG
        )
