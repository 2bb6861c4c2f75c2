"""
Collection pipeline: fetch, parse and publish analytics data on a schedule.

Modules:
    sanitizer: Field-name cleanup for document keys
    parser: Realtime and ranged table parsing into records
    dates: Relative date expressions for ranged queries
    collector: Per-source collection job (validate, fetch, parse)
    publisher: Event assembly and best-effort publishing
    scheduler: Per-source cron scheduling with graceful shutdown

Subpackages:
    clients: Analytics API clients
    sinks: Event sinks (HTTP, logging, in-memory)

Each run is independent: a failing source is logged and recorded in its
job state, and the next fire of that source runs normally.

Usage:
    from ingestion.scheduler import CollectorScheduler

    scheduler = CollectorScheduler.from_settings()
    await scheduler.serve(stop_event)
"""

__all__ = [
    "CollectionJob",
    "EventPublisher",
    "CollectorScheduler",
    "sanitize",
    "parse_response",
]
