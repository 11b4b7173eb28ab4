"""
eiri.loader — Load and validate the static EIRI dataset.

The dashboard's data is computed upstream and shipped as a file. This
module turns that file into an immutable tuple of CountryMetrics and is
the only place where records are validated.

Accepted formats:
    .json  — a list of record objects, or {"countries": [...]}
    .csv   — header row of wire field names; empty cells are missing

Validation rules:
    - every row must parse as a CountryMetrics
    - country_code must be non-empty and unique across the file
    - strict mode (default): stations, EIRI and gap_value must be present

Raises DatasetError for malformed content, FileNotFoundError when the
file does not exist.
"""

from __future__ import annotations

import csv
import hashlib
import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from eiri.constants import STRICT_REQUIRED_FIELDS
from eiri.models import CountryMetrics

logger = logging.getLogger("eiri.loader")


class DatasetError(ValueError):
    """The dataset file exists but its content is not usable."""

    def __init__(self, message: str, *, row: int | None = None, country_code: str | None = None) -> None:
        self.row = row
        self.country_code = country_code
        super().__init__(message)


# ---------------------------------------------------------------------------
# Row parsing
# ---------------------------------------------------------------------------

def _clean_row(row: Mapping[str, Any]) -> dict[str, Any]:
    """Drop empty-string cells so that they read as missing."""
    out: dict[str, Any] = {}
    for key, val in row.items():
        if key is None:
            continue
        if isinstance(val, str) and not val.strip():
            continue
        out[key.strip()] = val
    return out


def parse_records(
    rows: Iterable[Mapping[str, Any]],
    strict: bool = True,
) -> tuple[CountryMetrics, ...]:
    """Validate raw rows into records, preserving input order."""
    records: list[CountryMetrics] = []
    seen: set[str] = set()

    for index, raw in enumerate(rows):
        if not isinstance(raw, Mapping):
            raise DatasetError(f"Row {index}: expected an object, got {type(raw).__name__}.", row=index)

        row = _clean_row(raw)

        if strict:
            missing = [f for f in STRICT_REQUIRED_FIELDS if row.get(f) is None]
            if missing:
                code = row.get("country_code")
                raise DatasetError(
                    f"Row {index} ({code or '?'}): missing required fields {missing}.",
                    row=index,
                    country_code=code,
                )

        try:
            record = CountryMetrics.model_validate(row)
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", []))
            raise DatasetError(
                f"Row {index}: invalid '{field}': {first.get('msg', 'validation failed')}.",
                row=index,
                country_code=row.get("country_code"),
            ) from exc

        if record.country_code in seen:
            raise DatasetError(
                f"Row {index}: duplicate country_code '{record.country_code}'.",
                row=index,
                country_code=record.country_code,
            )
        seen.add(record.country_code)
        records.append(record)

    return tuple(records)


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------

def _read_json_rows(path: Path) -> list[Any]:
    try:
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
    except json.JSONDecodeError as exc:
        raise DatasetError(f"{path.name}: not valid JSON ({exc.msg}, line {exc.lineno}).") from exc
    except UnicodeDecodeError as exc:
        raise DatasetError(f"{path.name}: not valid UTF-8 (byte offset {exc.start}).") from exc
    except OSError as exc:
        raise DatasetError(f"{path.name}: unreadable ({type(exc).__name__}).") from exc

    if isinstance(raw, dict):
        if "countries" not in raw:
            raise DatasetError(f"{path.name}: object form must contain a 'countries' array.")
        raw = raw["countries"]

    if not isinstance(raw, list):
        raise DatasetError(f"{path.name}: expected a list of records.")
    return raw


def _read_csv_rows(path: Path) -> list[dict[str, Any]]:
    try:
        with open(path, encoding="utf-8", newline="") as fh:
            reader = csv.DictReader(fh)
            if not reader.fieldnames or "country_code" not in reader.fieldnames:
                raise DatasetError(f"{path.name}: CSV header must include 'country_code'.")
            return list(reader)
    except UnicodeDecodeError as exc:
        raise DatasetError(f"{path.name}: not valid UTF-8 (byte offset {exc.start}).") from exc
    except csv.Error as exc:
        raise DatasetError(f"{path.name}: malformed CSV ({exc}).") from exc
    except OSError as exc:
        raise DatasetError(f"{path.name}: unreadable ({type(exc).__name__}).") from exc


def load_records(path: Path | str, strict: bool = True) -> tuple[CountryMetrics, ...]:
    """Load a dataset file. Format is chosen by extension."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Dataset not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".json":
        rows = _read_json_rows(path)
    elif suffix == ".csv":
        rows = _read_csv_rows(path)
    else:
        raise DatasetError(f"{path.name}: unsupported format '{suffix}'. Use .json or .csv.")

    records = parse_records(rows, strict=strict)
    logger.info(json.dumps({
        "event": "dataset_loaded",
        "file": path.name,
        "records": len(records),
        "strict": strict,
    }))
    return records


def dataset_fingerprint(path: Path | str) -> str:
    """SHA-256 hex digest of the dataset file, for readiness reporting."""
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        while True:
            chunk = fh.read(65536)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()
