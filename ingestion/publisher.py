"""
Event publisher - turn records into sink documents and hand them over.

Publishing is best-effort per event: a rejected or failing event is logged
and counted, and the rest of the batch is still sent.
"""

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Callable, List, Optional

from core.config import settings
from core.exceptions import PublishError
from ingestion.sinks.base import EventSink
from schemas.event import Event
from schemas.job import PublishSummary
from schemas.record import RangedRecord, RealtimeRecord, Record
from schemas.source import SourceConfig

logger = logging.getLogger(__name__)

DATE_FIELD = "date"
DATE_FIELD_FORMAT = "%Y%m%d"
_YYYYMMDD = re.compile(r"[0-9]{8}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_date_field(value: str) -> Optional[datetime]:
    """Parse a ``YYYYMMDD`` cell; None when it is anything else"""
    if not _YYYYMMDD.fullmatch(value):
        return None
    try:
        return datetime.strptime(value, DATE_FIELD_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


class EventPublisher:
    """
    Build events for one source's records and publish them to the shared sink.

    Ranged records become one event each. Realtime records of one run are
    folded into a single aggregate event with one ``<dimension>_<metric>``
    field per record.
    """

    def __init__(
        self,
        sink: EventSink,
        date_timestamp_field: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.sink = sink
        self.date_timestamp_field = date_timestamp_field or settings.DATE_TIMESTAMP_FIELD
        self.clock = clock or _utcnow
        self._lock = None if sink.concurrency_safe else asyncio.Lock()

    def build_event(self, cfg: SourceConfig, record: RangedRecord, now: datetime) -> Event:
        fields = dict(record.data)
        if DATE_FIELD in fields:
            parsed = parse_date_field(fields[DATE_FIELD])
            if parsed is not None:
                fields[self.date_timestamp_field] = parsed
            else:
                logger.debug(f"Keeping unparseable date value as is: {fields[DATE_FIELD]!r}")
        return Event(
            timestamp=now,
            document_type=cfg.document_type,
            tags=list(cfg.tags),
            fields=fields
        )

    def build_aggregate_event(
        self,
        cfg: SourceConfig,
        records: List[RealtimeRecord],
        now: datetime
    ) -> Event:
        fields = {}
        for record in records:
            if record.dimension_name:
                key = f"{record.dimension_name}_{record.metric_name}"
            else:
                key = record.metric_name
            if key in fields:
                logger.warning(
                    f"Realtime rows of {cfg.name} collide on field {key!r}: "
                    f"{fields[key]} replaced by {record.value}"
                )
            fields[key] = record.value
        return Event(
            timestamp=now,
            document_type=cfg.document_type,
            tags=list(cfg.tags),
            fields=fields
        )

    def build_events(self, cfg: SourceConfig, records: List[Record]) -> List[Event]:
        now = self.clock()
        events = [
            self.build_event(cfg, record, now)
            for record in records
            if isinstance(record, RangedRecord)
        ]
        realtime = [record for record in records if isinstance(record, RealtimeRecord)]
        if realtime:
            events.append(self.build_aggregate_event(cfg, realtime, now))
        return events

    async def publish(self, cfg: SourceConfig, records: List[Record]) -> PublishSummary:
        """
        Publish every record of one run.

        Returns:
            Counts of accepted and failed events, for logging and job status
        """
        summary = PublishSummary()
        events = self.build_events(cfg, records)

        for index, event in enumerate(events):
            context = {"source_name": cfg.name, "event_index": index}
            try:
                accepted = await self._send(event)
            except Exception as e:
                error = PublishError(
                    "Sink raised while publishing event",
                    context=context,
                    original_exception=e
                )
            else:
                if accepted:
                    summary.published += 1
                    continue
                error = PublishError("Publisher couldn't publish event to sink", context=context)

            summary.failed += 1
            logger.error(error.message, extra={"error_context": error.to_dict()})

        logger.info(
            f"Published {summary.published}/{len(events)} events for {cfg.name}"
            + (f" ({summary.failed} failed)" if summary.failed else "")
        )
        return summary

    async def _send(self, event: Event) -> bool:
        document = event.to_document()
        if self._lock is None:
            return await self.sink.publish_event(document)
        async with self._lock:
            return await self.sink.publish_event(document)

    async def close(self) -> None:
        """Release the sink connection"""
        await self.sink.close()
