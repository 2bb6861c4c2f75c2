"""
Sink-bound event documents
"""

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field

TIMESTAMP_FIELD = "@timestamp"
TYPE_FIELD = "type"
TAGS_FIELD = "tags"


class Event(BaseModel):
    """
    One document handed to the event sink.

    Built once by the publisher and never mutated. ``to_document`` flattens
    the record fields into the document namespace next to the metadata.
    """

    timestamp: datetime
    document_type: str
    tags: List[str] = Field(default_factory=list)
    fields: Dict[str, Any] = Field(default_factory=dict)

    def to_document(self) -> Dict[str, Any]:
        """Flatten into the dict the sink receives; metadata keys win on collision"""
        document: Dict[str, Any] = dict(self.fields)
        document[TIMESTAMP_FIELD] = self.timestamp
        document[TYPE_FIELD] = self.document_type
        if self.tags:
            document[TAGS_FIELD] = list(self.tags)
        return document

    class Config:
        frozen = True
