"""
Pydantic schemas for API request/response models
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from schemas.job import JobState, SchedulerStatus

# ============================================================================
# Health Check Schemas
# ============================================================================


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall status: healthy, degraded, unhealthy")
    timestamp: datetime
    scheduler_status: SchedulerStatus
    total_sources: int = 0
    armed_sources: int = 0
    failing_sources: int = 0

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "scheduler_status": "started",
                "total_sources": 3,
                "armed_sources": 3,
                "failing_sources": 0
            }
        }


def overall_status(scheduler_running: bool, total: int, failing: int) -> str:
    """Derive the overall health label from scheduler state and failing sources"""
    if not scheduler_running:
        return "unhealthy"
    if total == 0 or failing == 0:
        return "healthy"
    if failing < total:
        return "degraded"
    return "unhealthy"


# ============================================================================
# Source Schemas
# ============================================================================


class SourceListResponse(BaseModel):
    """All configured sources with their job state"""
    total: int
    sources: List[JobState] = Field(default_factory=list)
