"""
FastAPI application hosting the collector scheduler
"""

import logging
from typing import Optional

from fastapi import FastAPI

from api.routes import health, sources
from core.config import settings
from core.logging import setup_logging
from ingestion.scheduler import CollectorScheduler

logger = logging.getLogger(__name__)


def create_app(scheduler: Optional[CollectorScheduler] = None) -> FastAPI:
    """
    Build the API application.

    Without an injected scheduler, one is built from settings at startup.
    """
    app = FastAPI(
        title="Analytics Collector API",
        description="Scheduled analytics collection and per-source status",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.scheduler = scheduler

    app.include_router(health.router)
    app.include_router(sources.router)

    @app.on_event("startup")
    async def startup_event():
        """Application startup event"""
        logger.info("Starting Analytics Collector API")
        logger.info(f"Environment: {settings.ENVIRONMENT}")

        if app.state.scheduler is None:
            app.state.scheduler = CollectorScheduler.from_settings(settings)
        app.state.scheduler.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        """Application shutdown event"""
        logger.info("Shutting down Analytics Collector API")
        if app.state.scheduler is not None:
            await app.state.scheduler.shutdown()

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Analytics Collector API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
            "endpoints": {
                "sources": "/sources"
            }
        }

    return app


setup_logging()
app = create_app()
