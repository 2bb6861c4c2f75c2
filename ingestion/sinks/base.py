"""
Abstract event sink boundary
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class EventSink(ABC):
    """
    Downstream system that stores or forwards published documents.

    ``publish_event`` returns False when the sink rejects a document. Sinks
    that cannot take concurrent calls leave ``concurrency_safe`` False and
    the publisher serializes access to them.
    """

    concurrency_safe: bool = False

    @abstractmethod
    async def publish_event(self, document: Dict[str, Any]) -> bool:
        """Hand one document to the sink"""
        pass

    async def close(self) -> None:
        """Release the sink connection"""
        pass
