"""
Pydantic schema for one configured analytics source
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, validator


class SourceMode(str, Enum):
    """Response shape the source is queried for"""
    REALTIME = "realtime"
    RANGED = "ranged"


# Type tag the original collector config used for range queries
LEGACY_RANGED_TAG = "gaservice"


def _split_list(v):
    if v is None:
        return []
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    if isinstance(v, (list, tuple)):
        return [str(item).strip() for item in v if str(item).strip()]
    return v


class SourceConfig(BaseModel):
    """
    One configured analytics query. Immutable once loaded.

    Emptiness of ``ids``, ``metrics`` and ``dimensions`` and readability of
    ``credentials_file`` are checked by the collection job on every run, not
    here, so a broken source fails its own cycle without blocking the others
    from loading.
    """

    name: str = Field(..., min_length=1, max_length=100)
    ids: List[str] = Field(default_factory=list, alias="googleanalytics_ids")
    metrics: List[str] = Field(default_factory=list, alias="googleanalytics_metrics")
    dimensions: List[str] = Field(default_factory=list, alias="googleanalytics_dimensions")
    mode: SourceMode = Field(SourceMode.REALTIME, alias="googleanalytics_type")
    start_time: Optional[str] = Field(None, alias="googleanalytics_starttime")
    end_time: Optional[str] = Field(None, alias="googleanalytics_endtime")
    schedule: str = Field(..., min_length=1)
    document_type: str = "gabeat"
    tags: List[str] = Field(default_factory=list)
    credentials_file: Optional[str] = Field(None, alias="google_credentials_file")

    @validator("ids", "metrics", "dimensions", "tags", pre=True)
    def split_comma_joined(cls, v):
        """Accept comma-joined strings as well as lists"""
        return _split_list(v)

    @validator("mode", pre=True)
    def normalize_mode(cls, v):
        """Map the legacy type tag and blanks onto a SourceMode"""
        if v is None or (isinstance(v, str) and not v.strip()):
            return SourceMode.REALTIME
        if isinstance(v, str):
            v = v.strip().lower()
            if v == LEGACY_RANGED_TAG:
                return SourceMode.RANGED
        return v

    @validator("schedule")
    def strip_schedule(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Schedule cannot be empty")
        return v

    class Config:
        frozen = True
        populate_by_name = True
