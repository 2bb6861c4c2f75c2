"""
Health check endpoint with scheduler and per-source status
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from api.dependencies import get_scheduler
from ingestion.scheduler import CollectorScheduler
from schemas.api import HealthCheckResponse, overall_status
from schemas.job import JobStatus, SchedulerStatus

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(scheduler: CollectorScheduler = Depends(get_scheduler)):
    """
    Health check endpoint.

    A source counts as failing when its most recent run failed or its
    schedule could not be armed.
    """
    states = scheduler.job_states()
    total = len(states)
    armed = sum(1 for state in states if state.status != JobStatus.IDLE)
    failing = sum(1 for state in states if state.last_error is not None)

    return HealthCheckResponse(
        status=overall_status(scheduler.status == SchedulerStatus.STARTED, total, failing),
        timestamp=datetime.now(timezone.utc),
        scheduler_status=scheduler.status,
        total_sources=total,
        armed_sources=armed,
        failing_sources=failing
    )
