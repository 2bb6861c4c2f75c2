"""
Per-source cron scheduling of collection runs.

Every configured source gets its own APScheduler job, keyed by source name
and holding its own trigger and configuration. Runs of different sources
are independent asyncio tasks. A fire that arrives while the same source is
still running is coalesced to a no-op and counted in ``skipped_fires``:
timer fires are dropped by APScheduler (``max_instances=1``) and reported
through its max-instances event, manual triggers hit the RUNNING guard.
"""

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, JobSubmissionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from core.config import Settings, load_source_configs, settings
from core.exceptions import CollectorException, ConfigError, ScheduleError
from ingestion.collector import CollectionJob
from ingestion.publisher import EventPublisher
from ingestion.sinks import build_sink
from schemas.job import JobState, JobStatus, RunResult, RunStatus, SchedulerStatus
from schemas.source import SourceConfig

logger = logging.getLogger(__name__)

# Crontab numbering, 0 and 7 are both Sunday
_DOW_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat", "sun"]
_DOW_SINGLE = re.compile(r"[0-7]")
_DOW_RANGE = re.compile(r"([0-7])-([0-7])")
_DURATION_PART = re.compile(r"([0-9]+(?:\.[0-9]+)?)(ms|h|m|s)")
_DURATION_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}

_DESCRIPTORS = {
    "@yearly": {"month": 1, "day": 1, "hour": 0, "minute": 0, "second": 0},
    "@annually": {"month": 1, "day": 1, "hour": 0, "minute": 0, "second": 0},
    "@monthly": {"day": 1, "hour": 0, "minute": 0, "second": 0},
    "@weekly": {"day_of_week": "sun", "hour": 0, "minute": 0, "second": 0},
    "@daily": {"hour": 0, "minute": 0, "second": 0},
    "@midnight": {"hour": 0, "minute": 0, "second": 0},
    "@hourly": {"minute": 0, "second": 0},
}


def _parse_duration(value: str) -> float:
    """Parse a duration like ``90s``, ``5m`` or ``1h30m`` into seconds"""
    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(value):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_SECONDS[match.group(2)]
        position = match.end()
    if position != len(value) or total <= 0:
        raise ScheduleError(
            f"Invalid @every duration: {value!r}",
            context={"schedule": f"@every {value}"}
        )
    return total


def _crontab_day_of_week(field: str) -> str:
    """
    Rewrite crontab day-of-week numbers (0=Sunday) as day names.

    APScheduler numbers weekdays from Monday, so numeric parts are expanded
    into explicit names. Named parts pass through untouched.
    """
    if field in ("*", "?"):
        return "*"

    days: List[str] = []
    for part in field.split(","):
        base, _, step = part.partition("/")
        range_match = _DOW_RANGE.fullmatch(base)
        if base in ("*", "?"):
            start, end = 0, 6
        elif _DOW_SINGLE.fullmatch(base):
            start = int(base)
            end = 6 if step else start
        elif range_match:
            start, end = int(range_match.group(1)), int(range_match.group(2))
        else:
            days.append(part)
            continue

        if step and not step.isdigit():
            raise ScheduleError(
                f"Invalid day-of-week step: {part!r}",
                context={"field": field}
            )
        increment = int(step) if step else 1
        if increment < 1 or start > end:
            raise ScheduleError(
                f"Invalid day-of-week range: {part!r}",
                context={"field": field}
            )
        days.extend(_DOW_NAMES[day] for day in range(start, end + 1, increment))

    return ",".join(dict.fromkeys(days))


def build_trigger(expression: str, tz=None) -> BaseTrigger:
    """
    Build an APScheduler trigger from a schedule expression.

    Supported forms:
        - five fields: ``minute hour day month day_of_week``
        - six fields, seconds first: ``second minute hour day month day_of_week``
        - descriptors: ``@yearly``, ``@monthly``, ``@weekly``, ``@daily``,
          ``@hourly`` (and aliases), ``@every <duration>``

    ``?`` is accepted as a synonym for ``*`` in the day and day_of_week
    fields only; anywhere else it is rejected.

    Raises:
        ScheduleError: the expression cannot be parsed
    """
    expr = expression.strip()
    context = {"schedule": expression}

    try:
        if expr.startswith("@every "):
            return IntervalTrigger(seconds=_parse_duration(expr[len("@every "):].strip()), timezone=tz)

        if expr in _DESCRIPTORS:
            return CronTrigger(timezone=tz, **_DESCRIPTORS[expr])

        fields = expr.split()
        if len(fields) == 5:
            second = "0"
            minute, hour, day, month, day_of_week = fields
        elif len(fields) == 6:
            second, minute, hour, day, month, day_of_week = fields
        else:
            raise ScheduleError(
                f"Expected 5 or 6 fields in schedule, got {len(fields)}",
                context=context
            )

        return CronTrigger(
            second=second,
            minute=minute,
            hour=hour,
            day="*" if day == "?" else day,
            month=month,
            day_of_week=_crontab_day_of_week(day_of_week),
            timezone=tz
        )

    except ScheduleError:
        raise

    except (ValueError, TypeError) as e:
        raise ScheduleError(
            f"Invalid schedule expression: {expression!r}",
            context=context,
            original_exception=e
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CollectorScheduler:
    """
    Own one independently scheduled collection job per source.

    Lifecycle: ``start`` arms a trigger per source, fires run the source's
    collection job and publish its records, ``shutdown`` stops new runs,
    waits for in-flight ones and closes the sink.
    """

    def __init__(
        self,
        sources: List[SourceConfig],
        publisher: EventPublisher,
        collection_job: Optional[CollectionJob] = None,
        shutdown_timeout: Optional[float] = None,
        timezone=None
    ):
        self.sources: Dict[str, SourceConfig] = {}
        for source in sources:
            if source.name in self.sources:
                raise ConfigError(
                    f"Duplicate source name: {source.name}",
                    context={"source_name": source.name}
                )
            self.sources[source.name] = source

        self.publisher = publisher
        self.collection_job = collection_job or CollectionJob()
        self.shutdown_timeout = shutdown_timeout
        self.timezone = timezone
        self.status = SchedulerStatus.STOPPED
        self.scheduler: Optional[AsyncIOScheduler] = None

        self._states: Dict[str, JobState] = {
            name: JobState(source_name=name, schedule=cfg.schedule, mode=cfg.mode.value)
            for name, cfg in self.sources.items()
        }
        self._armed: set = set()
        self._in_flight: Dict[asyncio.Task, str] = {}
        self._accepting = True
        self._shutdown_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "CollectorScheduler":
        """Load sources and build the sink from application settings"""
        sources = load_source_configs(config.SOURCES_CONFIG_PATH)
        publisher = EventPublisher(
            build_sink(config),
            date_timestamp_field=config.DATE_TIMESTAMP_FIELD
        )
        return cls(sources, publisher, shutdown_timeout=config.SHUTDOWN_TIMEOUT)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Arm one trigger per source. Must be called from the running event loop."""
        if self.status != SchedulerStatus.STOPPED or not self._accepting:
            logger.warning(f"Scheduler cannot start while {self.status.value}")
            return

        self.scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())

        for name, cfg in self.sources.items():
            try:
                trigger = build_trigger(cfg.schedule, tz=self.timezone)
            except ScheduleError as e:
                self._states[name].last_error = e.to_dict()
                logger.error(
                    f"Source {name} not scheduled: {e.message}",
                    extra={"error_context": e.to_dict()}
                )
                continue

            self.scheduler.add_job(
                self._run_source,
                trigger=trigger,
                args=[name],
                id=name,
                name=name,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=60,
                replace_existing=True
            )
            self._armed.add(name)
            self._states[name].status = JobStatus.ARMED

        self.scheduler.add_listener(self._on_max_instances, EVENT_JOB_MAX_INSTANCES)
        self.scheduler.start()
        self.status = SchedulerStatus.STARTED
        logger.info(
            f"Collector scheduler started with {len(self._armed)}/{len(self.sources)} sources armed"
        )

    async def serve(self, stop_event: asyncio.Event) -> None:
        """Run until ``stop_event`` is set, then shut down gracefully"""
        self.start()
        try:
            await stop_event.wait()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """
        Stop the scheduler.

        No new run starts once this is called. In-flight runs are awaited
        (cancelled and logged only if ``shutdown_timeout`` elapses), then
        the sink is closed. Concurrent or repeated calls wait for the same
        shutdown.
        """
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.ensure_future(self._shutdown())
        await asyncio.shield(self._shutdown_task)

    async def _shutdown(self) -> None:
        self._accepting = False
        self.status = SchedulerStatus.STOPPING
        logger.info("Collector scheduler stopping")

        # Pause first: shutting APScheduler down cancels its running tasks
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.pause()

        pending = dict(self._in_flight)
        if pending:
            logger.info(f"Waiting for {len(pending)} in-flight runs: {sorted(set(pending.values()))}")
            _, not_done = await asyncio.wait(list(pending), timeout=self.shutdown_timeout)
            for task in not_done:
                task.cancel()
            if not_done:
                await asyncio.gather(*not_done, return_exceptions=True)
                for task in not_done:
                    logger.error(
                        f"Run of {pending[task]} cancelled after shutdown timeout "
                        f"of {self.shutdown_timeout}s"
                    )

        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        await self.publisher.close()

        self._armed.clear()
        for state in self._states.values():
            state.status = JobStatus.IDLE
        self.status = SchedulerStatus.STOPPED
        logger.info("Collector scheduler stopped")

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    async def trigger(self, name: str) -> RunResult:
        """
        Run one source now through the same guarded path as a timer fire.

        Raises:
            KeyError: unknown source name
        """
        if name not in self.sources:
            raise KeyError(name)
        task = asyncio.ensure_future(self._run_source(name))
        return await asyncio.shield(task)

    async def run_all_once(self) -> List[RunResult]:
        """Run every source once, concurrently"""
        return list(await asyncio.gather(*(self.trigger(name) for name in self.sources)))

    def _on_max_instances(self, event: JobSubmissionEvent) -> None:
        """Count timer fires APScheduler dropped because the source is still running"""
        state = self._states.get(event.job_id)
        if state is None:
            return
        state.skipped_fires += 1
        logger.warning(f"Run of {event.job_id} still in flight, skipping this fire")

    async def _run_source(self, name: str) -> RunResult:
        cfg = self.sources[name]
        state = self._states[name]

        if not self._accepting:
            logger.info(f"Scheduler stopping, not starting run of {name}")
            return RunResult(source_name=name, status=RunStatus.SKIPPED)

        if state.status == JobStatus.RUNNING:
            state.skipped_fires += 1
            logger.warning(f"Run of {name} still in flight, skipping this fire")
            return RunResult(source_name=name, status=RunStatus.SKIPPED)

        state.status = JobStatus.RUNNING
        task = asyncio.current_task()
        self._in_flight[task] = name
        try:
            return await self._collect_and_publish(cfg, state)
        finally:
            self._in_flight.pop(task, None)
            state.status = JobStatus.ARMED if name in self._armed else JobStatus.IDLE

    async def _collect_and_publish(self, cfg: SourceConfig, state: JobState) -> RunResult:
        started_at = _utcnow()
        state.total_runs += 1
        state.last_run_at = started_at
        logger.info(f"Scheduler: Starting collection for {cfg.name}")

        try:
            records = await self.collection_job.run(cfg)
        except CollectorException as e:
            return self._record_failure(cfg, state, e, started_at)
        except Exception as e:
            logger.exception(f"Unexpected error in collection job for {cfg.name}")
            error = CollectorException(
                "Unexpected error in collection job",
                context={"source_name": cfg.name},
                original_exception=e
            )
            return self._record_failure(cfg, state, error, started_at)

        summary = await self.publisher.publish(cfg, records)

        completed_at = _utcnow()
        state.last_success_at = completed_at
        state.last_records = len(records)
        state.total_events_published += summary.published
        state.total_events_failed += summary.failed
        state.last_error = None

        status = RunStatus.SUCCESS if summary.failed == 0 else RunStatus.PARTIAL
        if status == RunStatus.PARTIAL:
            state.last_error = {
                "error_type": "PublishError",
                "message": f"{summary.failed} events failed to publish"
            }

        logger.info(
            f"Scheduler: Collection for {cfg.name} finished: {status.value} - "
            f"Records: {len(records)}, Published: {summary.published}, Failed: {summary.failed}"
        )
        return RunResult(
            source_name=cfg.name,
            status=status,
            records_collected=len(records),
            events_published=summary.published,
            events_failed=summary.failed,
            started_at=started_at,
            completed_at=completed_at
        )

    def _record_failure(
        self,
        cfg: SourceConfig,
        state: JobState,
        error: CollectorException,
        started_at: datetime
    ) -> RunResult:
        completed_at = _utcnow()
        state.total_failures += 1
        state.last_failure_at = completed_at
        state.last_records = 0
        state.last_error = error.to_dict()

        logger.error(
            f"Scheduler: Collection for {cfg.name} failed, not publishing: {error}",
            extra={"error_context": error.to_dict()}
        )
        return RunResult(
            source_name=cfg.name,
            status=RunStatus.FAILED,
            error=error.to_dict(),
            started_at=started_at,
            completed_at=completed_at
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def job_state(self, name: str) -> JobState:
        """
        Snapshot of one source's job state.

        Raises:
            KeyError: unknown source name
        """
        state = self._states[name].model_copy()
        if self.scheduler is not None and name in self._armed:
            job = self.scheduler.get_job(name)
            if job is not None:
                state.next_run_at = job.next_run_time
        return state

    def job_states(self) -> List[JobState]:
        return [self.job_state(name) for name in self.sources]
