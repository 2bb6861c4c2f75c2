"""
Uniform records produced by the response parser
"""

from typing import Dict, Union

from pydantic import BaseModel, Field


class RealtimeRecord(BaseModel):
    """One realtime row: a single integer metric for one dimension combination"""
    value: int
    dimension_name: str
    metric_name: str

    class Config:
        frozen = True


class RangedRecord(BaseModel):
    """One ranged row: every column keyed by its sanitized header name, raw cell values"""
    data: Dict[str, str] = Field(default_factory=dict)

    class Config:
        frozen = True


Record = Union[RealtimeRecord, RangedRecord]
