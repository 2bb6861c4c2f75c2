"""
Tabular responses returned by the analytics source.

The two query kinds return the same table layout, but the rows mean
different things. ``RealtimeResponse`` and ``RangedResponse`` tag a table
with its kind so the collection job picks the parser exactly once.
"""

from typing import List, Union

from pydantic import BaseModel, Field


class ColumnHeader(BaseModel):
    """One column of a tabular response"""
    name: str
    column_type: str = ""
    data_type: str = ""

    class Config:
        frozen = True


class RawTableResponse(BaseModel):
    """Ordered column headers and ordered rows of string cells"""
    column_headers: List[ColumnHeader] = Field(default_factory=list)
    rows: List[List[str]] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """No rows, or a first row without cells, is a valid "no data" answer"""
        return len(self.rows) < 1 or len(self.rows[0]) < 1

    class Config:
        frozen = True


class RealtimeResponse(BaseModel):
    table: RawTableResponse

    class Config:
        frozen = True


class RangedResponse(BaseModel):
    table: RawTableResponse

    class Config:
        frozen = True


Response = Union[RealtimeResponse, RangedResponse]
