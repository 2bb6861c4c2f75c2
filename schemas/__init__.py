"""
Pydantic schemas shared by the collector and the API.

Schemas:
    source: Configured analytics source
    response: Raw tabular responses from the analytics API
    record: Parsed realtime and ranged records
    event: Documents handed to the event sink
    job: Per-source job state and run results
    api: API response models
"""

__all__ = [
    "SourceConfig",
    "SourceMode",
    "RawTableResponse",
    "RealtimeRecord",
    "RangedRecord",
    "Event",
    "JobState",
    "RunResult",
    "HealthCheckResponse",
]
