"""
eiri.metrics — Headline aggregates over the country collection.

Empty-input boundaries return sentinels instead of raising:
    total_stations([])  -> 0
    average_eiri([])    -> NaN   (callers must guard before display)
    top_by_metric([])   -> None
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from eiri.models import CountryMetrics, MetricType
from eiri.sorting import SortField, rank_top_n


def total_stations(records: Iterable[CountryMetrics]) -> int:
    """Sum of stations. Missing counts are treated as 0."""
    return sum(r.stations or 0 for r in records)


def average_eiri(records: Sequence[CountryMetrics]) -> float:
    """Arithmetic mean of EIRI. Returns NaN for an empty collection."""
    if not records:
        return math.nan
    return sum(r.eiri or 0.0 for r in records) / len(records)


def top_by_metric(
    records: Iterable[CountryMetrics],
    metric: MetricType,
) -> Optional[CountryMetrics]:
    """Record with the highest value of `metric`, or None when empty.

    Ties go to the record that appears first in the input. Only the
    numeric MetricType fields are accepted; anything else (e.g. a text
    SortField such as NAME) raises ValueError.
    """
    field = SortField(MetricType(metric).value)
    top = rank_top_n(records, field, 1)
    return top[0] if top else None


@dataclass(frozen=True)
class DashboardSummary:
    total_stations: int
    average_eiri: float
    country_count: int
    top_ready: Optional[CountryMetrics]
    top_gap: Optional[CountryMetrics]

    def to_dict(self) -> dict[str, Any]:
        avg = self.average_eiri
        return {
            "total_stations": self.total_stations,
            "average_eiri": None if math.isnan(avg) else avg,
            "country_count": self.country_count,
            "top_ready": self.top_ready.to_dict() if self.top_ready else None,
            "top_gap": self.top_gap.to_dict() if self.top_gap else None,
        }


def summarize(records: Sequence[CountryMetrics]) -> DashboardSummary:
    """Compute every headline indicator shown on the dashboard."""
    return DashboardSummary(
        total_stations=total_stations(records),
        average_eiri=average_eiri(records),
        country_count=len(records),
        top_ready=top_by_metric(records, MetricType.EIRI),
        top_gap=top_by_metric(records, MetricType.GAP_VALUE),
    )
