"""
eiri.constants — Single source of truth for EIRI global constants.

Every module that needs these values MUST import from here.
No hardcoded duplicates anywhere in the codebase.
"""

from __future__ import annotations

from pathlib import Path

# ---------------------------------------------------------------------------
# Gap categorisation
# ---------------------------------------------------------------------------

GAP_BALANCE_BAND: float = 5.0
"""Half-width of the "Balanced" gap band. A gap_value in
[-GAP_BALANCE_BAND, +GAP_BALANCE_BAND] is balanced (inclusive on both
sides); above is "Demand Ahead", below is "Infra Ahead"."""

DEFAULT_MIN_STATIONS: int = 50
"""Station threshold for gap analysis. Only records with
stations STRICTLY greater than this value are considered."""

GAP_LABELS: dict[str, str] = {
    "demand": "Demand Ahead",
    "balanced": "Balanced",
    "infra": "Infra Ahead",
}

# ---------------------------------------------------------------------------
# Readiness bands (data table badges)
# ---------------------------------------------------------------------------

READINESS_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (60.0, "high"),
    (30.0, "medium"),
)
"""Descending (threshold, label) pairs. A score must be strictly above
the threshold to earn the label."""

READINESS_DEFAULT: str = "low"

VALID_READINESS_BANDS: frozenset[str] = frozenset({"high", "medium", "low"})

# ---------------------------------------------------------------------------
# Rankings
# ---------------------------------------------------------------------------

DEFAULT_TOP_N: int = 10
MAX_TOP_N: int = 100

# ---------------------------------------------------------------------------
# Record shape
# ---------------------------------------------------------------------------

NUMERIC_FIELDS: tuple[str, ...] = (
    "stations",
    "median_power_kw",
    "fast_dc_share",
    "unique_models",
    "coverage_norm",
    "capacity_norm",
    "fastshare_norm",
    "availability_norm",
    "EIRI",
    "gap_value",
    "cluster",
    "base",
    "infra_heavy",
    "availability_heavy",
    "lat",
    "lng",
)
"""Numeric record fields, wire names, in canonical order."""

STRICT_REQUIRED_FIELDS: tuple[str, ...] = ("stations", "EIRI", "gap_value")
"""Fields the loader insists on in strict mode."""

# ---------------------------------------------------------------------------
# Data location
# ---------------------------------------------------------------------------

DEFAULT_DATA_PATH: Path = Path(__file__).resolve().parent / "data" / "countries.json"
"""Bundled dataset. Overridden at runtime by EIRI_DATA_PATH."""

API_VERSION: str = "1.0.0"
