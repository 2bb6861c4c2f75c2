"""
Abstract source client boundary
"""

from abc import ABC, abstractmethod
from typing import List

from schemas.response import RawTableResponse


class SourceClient(ABC):
    """
    Fetch one raw tabular response for a configured source query.

    Implementations raise ``FetchError`` subclasses for transport and
    authentication failures and bound every call with their own timeout.
    """

    @abstractmethod
    async def fetch_realtime(
        self,
        ids: List[str],
        metrics: List[str],
        dimensions: List[str]
    ) -> RawTableResponse:
        """Fetch the realtime (narrow) table"""
        pass

    @abstractmethod
    async def fetch_ranged(
        self,
        ids: List[str],
        start: str,
        end: str,
        metrics: List[str],
        dimensions: List[str]
    ) -> RawTableResponse:
        """Fetch the ranged (wide) table between two resolved dates"""
        pass
