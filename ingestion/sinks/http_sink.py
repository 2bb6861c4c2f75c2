"""
HTTP event sink posting JSON documents to an index endpoint
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic_core import to_jsonable_python

from ingestion.sinks.base import EventSink

logger = logging.getLogger(__name__)


class HTTPEventSink(EventSink):
    """
    POST each document to ``{base_url}/{index}/_doc``.

    Any 2xx answer counts as accepted. One ``httpx.AsyncClient`` is shared
    by every publish call until ``close``.
    """

    concurrency_safe = True

    def __init__(
        self,
        base_url: str,
        index: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.index = index
        self.url = f"{self.base_url}/{self.index}/_doc"
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def publish_event(self, document: Dict[str, Any]) -> bool:
        try:
            response = await self._client.post(self.url, json=to_jsonable_python(document))
        except httpx.HTTPError as e:
            logger.warning(f"Sink request to {self.url} failed: {e}")
            return False

        if not response.is_success:
            logger.warning(
                f"Sink rejected event ({response.status_code}): {response.text[:200]}"
            )
            return False
        return True

    async def close(self) -> None:
        await self._client.aclose()
