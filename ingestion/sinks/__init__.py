"""
Event sinks the publisher hands documents to.
"""

from core.config import Settings
from core.exceptions import ConfigError
from ingestion.sinks.base import EventSink
from ingestion.sinks.http_sink import HTTPEventSink
from ingestion.sinks.memory import InMemoryEventSink, LoggingEventSink

__all__ = [
    "EventSink",
    "HTTPEventSink",
    "InMemoryEventSink",
    "LoggingEventSink",
    "build_sink",
]


def build_sink(config: Settings) -> EventSink:
    """Create the sink selected by ``SINK_TYPE``"""
    sink_type = config.SINK_TYPE.lower()
    if sink_type == "http":
        return HTTPEventSink(config.SINK_URL, config.SINK_INDEX, timeout=config.SINK_TIMEOUT)
    if sink_type == "logging":
        return LoggingEventSink()
    if sink_type == "memory":
        return InMemoryEventSink()
    raise ConfigError(
        f"Unknown sink type: {config.SINK_TYPE}",
        context={"field_name": "SINK_TYPE"}
    )
