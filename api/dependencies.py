"""
FastAPI dependencies
"""

from fastapi import HTTPException, Request

from ingestion.scheduler import CollectorScheduler


def get_scheduler(request: Request) -> CollectorScheduler:
    """Scheduler created at startup and kept on the application state"""
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not initialized")
    return scheduler
