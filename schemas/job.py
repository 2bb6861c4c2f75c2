"""
Per-source job state and run results tracked by the scheduler
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel


class JobStatus(str, Enum):
    """Lifecycle of one source job"""
    IDLE = "idle"
    ARMED = "armed"
    RUNNING = "running"


class SchedulerStatus(str, Enum):
    """Lifecycle of the scheduler as a whole"""
    STOPPED = "stopped"
    STARTED = "started"
    STOPPING = "stopping"


class RunStatus(str, Enum):
    """Outcome of one triggered run"""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


class RunResult(BaseModel):
    """Outcome of one triggered run of a source"""
    source_name: str
    status: RunStatus
    records_collected: int = 0
    events_published: int = 0
    events_failed: int = 0
    error: Optional[Dict[str, Any]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class JobState(BaseModel):
    """Status snapshot of one source job"""
    source_name: str
    schedule: str
    mode: str
    status: JobStatus = JobStatus.IDLE
    next_run_at: Optional[datetime] = None
    last_run_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    last_failure_at: Optional[datetime] = None
    last_error: Optional[Dict[str, Any]] = None
    last_records: int = 0
    total_runs: int = 0
    total_failures: int = 0
    total_events_published: int = 0
    total_events_failed: int = 0
    skipped_fires: int = 0


class PublishSummary(BaseModel):
    """Per-batch publish counts"""
    published: int = 0
    failed: int = 0
