"""
eiri.filtering — Subsetting views: gap categories and map points.

Filters are stable and non-reordering; map_points is the one view that
also orders, because larger markers must be drawn first.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from eiri.classification import classify_gap
from eiri.constants import DEFAULT_MIN_STATIONS
from eiri.models import CountryMetrics, MetricType
from eiri.sorting import SortDirection, SortField, numeric_value, sort_by


class GapCategory(str, Enum):
    ALL = "all"
    DEMAND = "demand"
    BALANCED = "balanced"
    INFRA = "infra"

    @classmethod
    def parse(cls, raw: str) -> GapCategory:
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            valid = ", ".join(c.value for c in cls)
            raise ValueError(f"Unknown gap category '{raw}'. Valid: {valid}.") from None


def filter_by_gap_category(
    records: Iterable[CountryMetrics],
    min_stations: int = DEFAULT_MIN_STATIONS,
    category: GapCategory = GapCategory.ALL,
) -> list[CountryMetrics]:
    """Records above the station threshold, narrowed to one gap category.

    The threshold is strict (stations > min_stations). Category membership
    comes from classify_gap(), so demand/balanced/infra partition the
    "all" result exactly.
    """
    base = [r for r in records if (r.stations or 0) > min_stations]
    if category is GapCategory.ALL:
        return base
    return [r for r in base if classify_gap(r.gap_value) == category.value]


@dataclass(frozen=True)
class MapPoint:
    country_code: str
    name: str
    lat: float
    lng: float
    stations: int
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "country_code": self.country_code,
            "name": self.name,
            "lat": self.lat,
            "lng": self.lng,
            "stations": self.stations,
            "value": self.value,
        }


def map_points(
    records: Iterable[CountryMetrics],
    metric: MetricType = MetricType.EIRI,
) -> list[MapPoint]:
    """Plottable points, biggest station count first.

    Records without finite coordinates are skipped here only; they still
    count in every aggregate.
    """
    field = SortField(metric.value)
    located = [r for r in records if r.has_coordinates]
    return [
        MapPoint(
            country_code=r.country_code,
            name=r.display_name,
            lat=r.lat,  # type: ignore[arg-type]
            lng=r.lng,  # type: ignore[arg-type]
            stations=r.stations or 0,
            value=numeric_value(r, field),
        )
        for r in sort_by(located, SortField.STATIONS, SortDirection.DESC)
    ]
