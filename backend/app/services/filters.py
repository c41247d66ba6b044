"""
Query filter builders shared by the log services.
"""

from datetime import date
from typing import Any, List, Optional


def date_range_filters(column, start_date: Optional[date], end_date: Optional[date]) -> List[Any]:
    """Inclusive bounds on a date column; an unset bound is left open."""
    filters = []
    if start_date:
        filters.append(column >= start_date)
    if end_date:
        filters.append(column <= end_date)
    return filters
