"""
Parse tabular analytics responses into uniform records.

Two pure entry points share the empty-response policy:

- ``parse_realtime``: narrow table, every column but the last is a dimension
  value, the last column is the single integer metric.
- ``parse_ranged``: wide table, every column is carried through as a raw
  string keyed by its sanitized header name.

``parse_response`` dispatches on the response kind.
"""

import logging
import re
from typing import Dict, List

from core.exceptions import MetricValueError, ParseError, RowShapeError
from ingestion.sanitizer import sanitize
from schemas.record import RangedRecord, RealtimeRecord, Record
from schemas.response import RangedResponse, RawTableResponse, RealtimeResponse, Response

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")


def _debug_table(table: RawTableResponse) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    for i, header in enumerate(table.column_headers):
        logger.debug(
            f"column header [{i}]: {header.column_type} {header.data_type} {header.name}"
        )
    for j, row in enumerate(table.rows):
        for k, cell in enumerate(row):
            logger.debug(f"data[{j}][{k}]: {cell}")


def _check_row_shapes(table: RawTableResponse) -> None:
    header_count = len(table.column_headers)
    for row_index, row in enumerate(table.rows):
        if len(row) != header_count:
            raise RowShapeError(
                "Row cell count does not match header count",
                context={
                    "row_index": row_index,
                    "cell_count": len(row),
                    "header_count": header_count
                }
            )


def _parse_int(cell: str, row_index: int) -> int:
    if not _INTEGER.fullmatch(cell):
        raise MetricValueError(
            f"Error converting metric value to int: {cell!r}",
            context={"row_index": row_index, "cell_value": cell}
        )
    return int(cell)


def parse_realtime(table: RawTableResponse) -> List[RealtimeRecord]:
    """
    Parse a realtime table into one record per row.

    ASSUMPTION: the last cell of a row is the metric value and all preceding
    cells are dimension values. The metric name is read once from the last
    column header.

    Raises:
        RowShapeError: a row's cell count differs from the header count
        MetricValueError: any metric cell is not an integer; the whole batch fails
    """
    _debug_table(table)
    if table.is_empty:
        return []

    _check_row_shapes(table)
    metric_name = sanitize(table.column_headers[-1].name)
    logger.debug(f"metricName: {metric_name}")

    records = []
    for row_index, row in enumerate(table.rows):
        dimension_name = sanitize("_".join(row[:-1]))
        value = _parse_int(row[-1], row_index)
        records.append(
            RealtimeRecord(
                value=value,
                dimension_name=dimension_name,
                metric_name=metric_name
            )
        )
    return records


def parse_ranged(table: RawTableResponse) -> List[RangedRecord]:
    """
    Parse a ranged table into one mapping-shaped record per row.

    Values stay raw strings. Two headers that sanitize to the same key
    collide and the later column wins; this is logged, not repaired.

    Raises:
        RowShapeError: a row's cell count differs from the header count
    """
    _debug_table(table)
    if table.is_empty:
        return []

    _check_row_shapes(table)
    keys = [sanitize(header.name) for header in table.column_headers]

    duplicates = sorted({key for key in keys if keys.count(key) > 1})
    if duplicates:
        logger.warning(
            f"Column headers collide after sanitization, later columns win: {duplicates}"
        )

    records = []
    for row in table.rows:
        data: Dict[str, str] = {}
        for key, cell in zip(keys, row):
            data[key] = cell
        records.append(RangedRecord(data=data))
    return records


def parse_response(response: Response) -> List[Record]:
    """Parse a tagged response with the parser for its kind"""
    if isinstance(response, RealtimeResponse):
        return parse_realtime(response.table)
    if isinstance(response, RangedResponse):
        return parse_ranged(response.table)
    raise ParseError(
        "Unknown response kind",
        context={"response_type": type(response).__name__}
    )
