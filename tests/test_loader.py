"""
tests/test_loader.py — Dataset loading and validation (eiri.loader).

Covers JSON (list and object form), CSV, strict/lenient modes,
duplicate and empty codes, malformed files, and the bundled dataset.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from eiri.constants import DEFAULT_DATA_PATH
from eiri.loader import DatasetError, dataset_fingerprint, load_records, parse_records
from eiri.models import CountryMetrics

ROW_A = {"country_code": "A", "country_name": "Alpha", "stations": 100, "EIRI": 80.0, "gap_value": 10.0}
ROW_B = {"country_code": "B", "stations": 20, "EIRI": 40.0, "gap_value": -2.0}


def _write_json(path: Path, payload) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# parse_records
# ---------------------------------------------------------------------------

class TestParseRecords:
    def test_order_preserved(self):
        records = parse_records([ROW_B, ROW_A])
        assert [r.country_code for r in records] == ["B", "A"]

    def test_returns_tuple_of_records(self):
        records = parse_records([ROW_A])
        assert isinstance(records, tuple)
        assert isinstance(records[0], CountryMetrics)
        assert records[0].eiri == 80.0

    def test_duplicate_code_rejected(self):
        with pytest.raises(DatasetError, match="duplicate country_code 'A'") as exc_info:
            parse_records([ROW_A, ROW_B, ROW_A])
        assert exc_info.value.row == 2
        assert exc_info.value.country_code == "A"

    def test_empty_code_rejected(self):
        with pytest.raises(DatasetError):
            parse_records([{**ROW_A, "country_code": "   "}])

    def test_strict_requires_core_fields(self):
        with pytest.raises(DatasetError, match="missing required fields"):
            parse_records([{"country_code": "X", "stations": 1}])

    def test_lenient_accepts_sparse_rows(self):
        (record,) = parse_records([{"country_code": "X"}], strict=False)
        assert record.stations is None
        assert record.eiri is None

    def test_negative_stations_rejected(self):
        with pytest.raises(DatasetError, match="stations"):
            parse_records([{**ROW_A, "stations": -1}])

    def test_non_object_row_rejected(self):
        with pytest.raises(DatasetError, match="expected an object"):
            parse_records([ROW_A, ["B", 1]])

    def test_dataset_error_is_value_error(self):
        assert issubclass(DatasetError, ValueError)


# ---------------------------------------------------------------------------
# load_records
# ---------------------------------------------------------------------------

class TestLoadRecords:
    def test_json_list(self, tmp_path: Path):
        path = _write_json(tmp_path / "d.json", [ROW_A, ROW_B])
        assert len(load_records(path)) == 2

    def test_json_object_form(self, tmp_path: Path):
        path = _write_json(tmp_path / "d.json", {"countries": [ROW_A]})
        assert load_records(path)[0].country_name == "Alpha"

    def test_json_object_without_countries(self, tmp_path: Path):
        path = _write_json(tmp_path / "d.json", {"rows": []})
        with pytest.raises(DatasetError, match="'countries'"):
            load_records(path)

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "d.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DatasetError, match="not valid JSON"):
            load_records(path)

    def test_csv(self, tmp_path: Path):
        path = tmp_path / "d.csv"
        path.write_text(
            "country_code,country_name,stations,EIRI,gap_value,lat,lng\n"
            "NL,Netherlands,18420.0,82.6,3.9,52.13,5.29\n"
            "XK,,12,19.8,-16.3,,\n",
            encoding="utf-8",
        )
        nl, xk = load_records(path)
        assert nl.stations == 18420
        assert nl.eiri == pytest.approx(82.6)
        assert nl.has_coordinates
        assert xk.country_name is None
        assert xk.display_name == "XK"
        assert not xk.has_coordinates

    def test_csv_without_code_column(self, tmp_path: Path):
        path = tmp_path / "d.csv"
        path.write_text("code,stations\nNL,1\n", encoding="utf-8")
        with pytest.raises(DatasetError, match="country_code"):
            load_records(path)

    def test_unsupported_extension(self, tmp_path: Path):
        path = tmp_path / "d.xlsx"
        path.write_bytes(b"")
        with pytest.raises(DatasetError, match="unsupported format"):
            load_records(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_records(tmp_path / "absent.json")

    def test_json_undecodable_bytes(self, tmp_path: Path):
        """A latin-1 export is a data error, not an uncaught UnicodeDecodeError."""
        path = tmp_path / "d.json"
        path.write_bytes(b'[{"country_code": "\xff"}]')
        with pytest.raises(DatasetError, match="not valid UTF-8"):
            load_records(path)

    def test_csv_undecodable_bytes(self, tmp_path: Path):
        path = tmp_path / "d.csv"
        path.write_bytes(b"country_code,stations\n\xff\xfe,1\n")
        with pytest.raises(DatasetError, match="not valid UTF-8"):
            load_records(path)

    def test_csv_oversized_field(self, tmp_path: Path):
        path = tmp_path / "d.csv"
        path.write_text("country_code,stations\n" + "X" * 200_000 + ",1\n", encoding="utf-8")
        with pytest.raises(DatasetError, match="malformed CSV"):
            load_records(path)


# ---------------------------------------------------------------------------
# Bundled dataset
# ---------------------------------------------------------------------------

class TestBundledDataset:
    def test_loads_strictly(self):
        records = load_records(DEFAULT_DATA_PATH)
        assert len(records) == 13
        assert len({r.country_code for r in records}) == 13

    def test_records_are_frozen(self):
        record = load_records(DEFAULT_DATA_PATH)[0]
        with pytest.raises(Exception):
            record.stations = 0  # type: ignore[misc]

    def test_fingerprint_is_stable(self):
        first = dataset_fingerprint(DEFAULT_DATA_PATH)
        assert len(first) == 64
        assert first == dataset_fingerprint(DEFAULT_DATA_PATH)
