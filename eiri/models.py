"""
eiri.models — The CountryMetrics record and metric selectors.

A CountryMetrics is immutable once constructed. Upstream computes every
score; this module only describes the shape. Numeric fields are optional
on the record so that downstream comparisons can degrade permissively
(missing -> 0). Whether absence is an error is decided by eiri.loader.

Wire names are preserved exactly, including the upper-case "EIRI".
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class MetricType(str, Enum):
    """Metrics selectable for map colouring and headline rankings."""

    EIRI = "EIRI"
    STATIONS = "stations"
    GAP_VALUE = "gap_value"
    AVAILABILITY_NORM = "availability_norm"

    @classmethod
    def parse(cls, raw: str) -> MetricType:
        """Parse a wire key. Raises ValueError for unknown metrics."""
        try:
            return cls(raw)
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown metric '{raw}'. Valid: {valid}.") from None


class CountryMetrics(BaseModel):
    """One country's precomputed readiness metrics."""

    model_config = {"extra": "ignore", "populate_by_name": True, "frozen": True}

    country_code: str = Field(..., description="Short unique identifier, e.g. ISO alpha-2")
    country_name: Optional[str] = None

    stations: Optional[int] = Field(None, ge=0)
    median_power_kw: Optional[float] = Field(None, ge=0)
    fast_dc_share: Optional[float] = None
    unique_models: Optional[float] = None

    coverage_norm: Optional[float] = None
    capacity_norm: Optional[float] = None
    fastshare_norm: Optional[float] = None
    availability_norm: Optional[float] = None

    eiri: Optional[float] = Field(None, alias="EIRI", description="EV Infrastructure Readiness Index")
    gap_value: Optional[float] = None

    cluster: Optional[float] = None
    base: Optional[float] = None
    infra_heavy: Optional[float] = None
    availability_heavy: Optional[float] = None

    lat: Optional[float] = None
    lng: Optional[float] = None

    @field_validator("country_code")
    @classmethod
    def _strip_country_code(cls, v: str) -> str:
        v = str(v).strip()
        if not v:
            raise ValueError("country_code must be non-empty.")
        return v

    @field_validator("country_name", mode="before")
    @classmethod
    def _blank_name_is_missing(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("stations", mode="before")
    @classmethod
    def _integral_stations(cls, v: Any) -> Any:
        # CSV exports often write counts as "120.0"
        if isinstance(v, str) and v.strip():
            f = float(v)
            if f.is_integer():
                return int(f)
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v

    @property
    def display_name(self) -> str:
        return self.country_name or self.country_code

    @property
    def has_coordinates(self) -> bool:
        """True iff both lat and lng are present and finite."""
        if self.lat is None or self.lng is None:
            return False
        return math.isfinite(self.lat) and math.isfinite(self.lng)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation (EIRI upper-case, missing fields as null).

        Non-finite floats are emitted as null; JSON has no NaN.
        """
        out = self.model_dump(by_alias=True)
        for key, val in out.items():
            if isinstance(val, float) and not math.isfinite(val):
                out[key] = None
        return out
