"""
Resolve relative date expressions used in ranged source queries
"""

import calendar
import re
from datetime import date
from typing import Optional

_MONTHS_AGO = re.compile(r"(?P<months>[0-9]+)monthsAgo")

DATE_FORMAT = "%Y-%m-%d"


def subtract_months(day: date, months: int) -> date:
    """Move ``day`` back by whole months, clamping to the last day of the target month"""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def resolve_date_expression(expression: Optional[str], today: date) -> Optional[str]:
    """
    Turn ``<N>monthsAgo`` into an absolute ``YYYY-MM-DD`` date relative to ``today``.

    Anything else (absolute dates, ``today``, ``yesterday``, ``NdaysAgo``) is
    understood by the analytics API itself and passes through unchanged.
    """
    if expression is None:
        return None
    match = _MONTHS_AGO.fullmatch(expression.strip())
    if not match:
        return expression
    months = int(match.group("months"))
    return subtract_months(today, months).strftime(DATE_FORMAT)
