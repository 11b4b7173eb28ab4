"""
eiri.classification — Qualitative bucketing of single values.

THIS IS THE ONLY PLACE where gap and readiness thresholds are applied.
Filtering (eiri.filtering) and the API both call into here.
"""

from __future__ import annotations

from eiri.constants import (
    GAP_BALANCE_BAND,
    GAP_LABELS,
    READINESS_DEFAULT,
    READINESS_THRESHOLDS,
)


def classify_gap(gap_value: float | None) -> str:
    """Map a gap value to "demand", "balanced" or "infra".

    The balanced band is inclusive on both sides: exactly +5.0 and -5.0
    are balanced. A missing value counts as 0 and is therefore balanced.
    """
    g = 0.0 if gap_value is None else gap_value
    if g > GAP_BALANCE_BAND:
        return "demand"
    if g < -GAP_BALANCE_BAND:
        return "infra"
    return "balanced"


def gap_label(category: str) -> str:
    """Human-readable label for a gap category ("Demand Ahead", ...)."""
    return GAP_LABELS.get(category, "All")


def classify_readiness(eiri: float | None) -> str:
    """Map an EIRI score to its readiness band.

    Args:
        eiri: Score, conventionally in [0, 100]. None counts as 0.

    Returns:
        "high" above 60, "medium" above 30, otherwise "low".
    """
    score = 0.0 if eiri is None else eiri
    for threshold, label in READINESS_THRESHOLDS:
        if score > threshold:
            return label
    return READINESS_DEFAULT
