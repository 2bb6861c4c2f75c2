"""
Sinks that keep documents in process: an in-memory buffer and a log writer
"""

import logging
from typing import Any, Dict, List

from ingestion.sinks.base import EventSink

logger = logging.getLogger(__name__)


class InMemoryEventSink(EventSink):
    """Collect documents in a list (tests, embedding)"""

    def __init__(self):
        self.documents: List[Dict[str, Any]] = []
        self.closed = False

    async def publish_event(self, document: Dict[str, Any]) -> bool:
        if self.closed:
            return False
        self.documents.append(document)
        return True

    async def close(self) -> None:
        self.closed = True


class LoggingEventSink(EventSink):
    """Write documents to the log instead of a downstream system (dry runs)"""

    concurrency_safe = True

    async def publish_event(self, document: Dict[str, Any]) -> bool:
        logger.info(f"Event: {document}")
        return True
