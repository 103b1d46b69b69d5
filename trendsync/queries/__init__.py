"""Query package: derived reads over the local transaction collection."""

from trendsync.queries.aggregates import (
    local_day,
    recurring_total,
    total_for_date,
    total_for_period,
    totals_by_category,
)

__all__ = [
    "local_day",
    "recurring_total",
    "total_for_date",
    "total_for_period",
    "totals_by_category",
]
