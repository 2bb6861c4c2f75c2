"""
Per-source job status and manual runs
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_scheduler
from ingestion.scheduler import CollectorScheduler
from schemas.api import SourceListResponse
from schemas.job import JobState, RunResult

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sources", tags=["Sources"])


def _require_source(scheduler: CollectorScheduler, name: str) -> None:
    if name not in scheduler.sources:
        raise HTTPException(status_code=404, detail=f"Unknown source: {name}")


@router.get("", response_model=SourceListResponse)
async def list_sources(scheduler: CollectorScheduler = Depends(get_scheduler)):
    states = scheduler.job_states()
    return SourceListResponse(total=len(states), sources=states)


@router.get("/{name}", response_model=JobState)
async def get_source(name: str, scheduler: CollectorScheduler = Depends(get_scheduler)):
    _require_source(scheduler, name)
    return scheduler.job_state(name)


@router.post("/{name}/run", response_model=RunResult)
async def run_source(name: str, scheduler: CollectorScheduler = Depends(get_scheduler)):
    """Run one source immediately; skipped if it is already running"""
    _require_source(scheduler, name)
    logger.info(f"Manual run requested for {name}")
    return await scheduler.trigger(name)
