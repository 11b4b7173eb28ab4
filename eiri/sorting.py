"""
eiri.sorting — Sort engine for rankings and the data table.

Pure-computation module. Zero I/O. Zero global state.

Every sortable field is an explicit SortField member mapped to a typed
key function. There is no attribute lookup by runtime string: an
unknown key is rejected by parse_sort_field() before it reaches a sort.

Ordering rules:
    - Numeric fields compare by value; a missing or non-finite value
      compares as 0.
    - String fields compare by a collation key (accent- and
      case-insensitive first, exact string second).
    - All sorts are stable in both directions: records with equal keys
      keep their input order.
    - Inputs are never mutated; every call returns a new list.
"""

from __future__ import annotations

import math
import unicodedata
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Union

from eiri.constants import DEFAULT_TOP_N
from eiri.models import CountryMetrics

SortKey = Union[float, tuple[str, str]]


class SortField(str, Enum):
    """Sortable columns. Values are wire keys."""

    NAME = "name"  # synthetic: display name (country_name or code)
    COUNTRY_CODE = "country_code"
    COUNTRY_NAME = "country_name"
    STATIONS = "stations"
    MEDIAN_POWER_KW = "median_power_kw"
    FAST_DC_SHARE = "fast_dc_share"
    UNIQUE_MODELS = "unique_models"
    COVERAGE_NORM = "coverage_norm"
    CAPACITY_NORM = "capacity_norm"
    FASTSHARE_NORM = "fastshare_norm"
    AVAILABILITY_NORM = "availability_norm"
    EIRI = "EIRI"
    GAP_VALUE = "gap_value"
    CLUSTER = "cluster"
    BASE = "base"
    INFRA_HEAVY = "infra_heavy"
    AVAILABILITY_HEAVY = "availability_heavy"
    LAT = "lat"
    LNG = "lng"

    @property
    def is_text(self) -> bool:
        return self in _TEXT_FIELDS


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> SortDirection:
        return SortDirection.ASC if self is SortDirection.DESC else SortDirection.DESC

    @classmethod
    def parse(cls, raw: str) -> SortDirection:
        """Parse "asc"/"desc" (case-insensitive). Raises ValueError otherwise."""
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown sort direction '{raw}'. Use 'asc' or 'desc'.") from None


DEFAULT_SORT_FIELD = SortField.EIRI
DEFAULT_SORT_DIRECTION = SortDirection.DESC


# ---------------------------------------------------------------------------
# Key functions
# ---------------------------------------------------------------------------

def collation_key(text: str | None) -> tuple[str, str]:
    """Locale-independent collation key.

    Primary: NFKD-decomposed, combining marks removed, case-folded.
    Secondary: the raw string with case swapped, so distinct strings
    never tie and lowercase precedes uppercase ("aland" < "Aland"),
    as ICU collation orders them.
    """
    raw = text or ""
    decomposed = unicodedata.normalize("NFKD", raw)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), raw.swapcase())


def _num(value: float | int | None) -> float:
    # Missing and non-finite values compare as 0.
    if value is None:
        return 0.0
    f = float(value)
    return f if math.isfinite(f) else 0.0


_TEXT_FIELDS: frozenset[SortField] = frozenset({
    SortField.NAME,
    SortField.COUNTRY_CODE,
    SortField.COUNTRY_NAME,
})

_KEY_FUNCTIONS: dict[SortField, Callable[[CountryMetrics], SortKey]] = {
    SortField.NAME: lambda r: collation_key(r.display_name),
    SortField.COUNTRY_CODE: lambda r: collation_key(r.country_code),
    SortField.COUNTRY_NAME: lambda r: collation_key(r.country_name),
    SortField.STATIONS: lambda r: _num(r.stations),
    SortField.MEDIAN_POWER_KW: lambda r: _num(r.median_power_kw),
    SortField.FAST_DC_SHARE: lambda r: _num(r.fast_dc_share),
    SortField.UNIQUE_MODELS: lambda r: _num(r.unique_models),
    SortField.COVERAGE_NORM: lambda r: _num(r.coverage_norm),
    SortField.CAPACITY_NORM: lambda r: _num(r.capacity_norm),
    SortField.FASTSHARE_NORM: lambda r: _num(r.fastshare_norm),
    SortField.AVAILABILITY_NORM: lambda r: _num(r.availability_norm),
    SortField.EIRI: lambda r: _num(r.eiri),
    SortField.GAP_VALUE: lambda r: _num(r.gap_value),
    SortField.CLUSTER: lambda r: _num(r.cluster),
    SortField.BASE: lambda r: _num(r.base),
    SortField.INFRA_HEAVY: lambda r: _num(r.infra_heavy),
    SortField.AVAILABILITY_HEAVY: lambda r: _num(r.availability_heavy),
    SortField.LAT: lambda r: _num(r.lat),
    SortField.LNG: lambda r: _num(r.lng),
}


def key_function(field: SortField) -> Callable[[CountryMetrics], SortKey]:
    """Return the typed key function for a sortable field."""
    return _KEY_FUNCTIONS[field]


def numeric_value(record: CountryMetrics, field: SortField) -> float:
    """Numeric value of a field on a record, missing -> 0.

    Raises ValueError for text fields.
    """
    if field.is_text:
        raise ValueError(f"Field '{field.value}' is not numeric.")
    return _KEY_FUNCTIONS[field](record)  # type: ignore[return-value]


def parse_sort_field(raw: str) -> SortField:
    """Parse a wire key into a SortField. Raises ValueError if unknown."""
    try:
        return SortField(raw)
    except ValueError:
        valid = ", ".join(f.value for f in SortField)
        raise ValueError(f"Unknown sort field '{raw}'. Valid: {valid}.") from None


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------

def sort_by(
    records: Iterable[CountryMetrics],
    field: SortField,
    direction: SortDirection = DEFAULT_SORT_DIRECTION,
) -> list[CountryMetrics]:
    """Return a new list ordered by `field` in `direction`.

    Python's sort is stable for reverse=True as well, so ties keep their
    input order whichever way the column is sorted.
    """
    return sorted(
        records,
        key=_KEY_FUNCTIONS[field],
        reverse=direction is SortDirection.DESC,
    )


def rank_top_n(
    records: Iterable[CountryMetrics],
    field: SortField,
    n: int = DEFAULT_TOP_N,
) -> list[CountryMetrics]:
    """Top `n` records by `field`, descending. n <= 0 yields []."""
    if n <= 0:
        return []
    return sort_by(records, field, SortDirection.DESC)[:n]


# ---------------------------------------------------------------------------
# Interactive sort state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SortState:
    """Active (field, direction) of one sortable surface.

    Transitions happen only through select():
        same field      -> direction flips
        different field -> that field, descending
    """

    field: SortField = DEFAULT_SORT_FIELD
    direction: SortDirection = DEFAULT_SORT_DIRECTION

    @classmethod
    def initial(cls) -> SortState:
        return cls()

    def select(self, field: SortField) -> SortState:
        if field is self.field:
            return SortState(field, self.direction.flipped())
        return SortState(field, DEFAULT_SORT_DIRECTION)

    def apply(self, records: Iterable[CountryMetrics]) -> list[CountryMetrics]:
        return sort_by(records, self.field, self.direction)
