"""
tests/test_summarize.py — Summary CLI exit codes and output modes.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from eiri.summarize import EXIT_INVALID_DATA, EXIT_MISSING_DATA, EXIT_OK, main


class TestSummarizeCLI:
    def test_bundled_dataset_exit_0(self, capsys: pytest.CaptureFixture[str]):
        assert main([]) == EXIT_OK
        out = capsys.readouterr().out
        assert "Total stations: 145,750" in out
        assert "Leader:         NL" in out
        assert "Top 10 by EIRI:" in out

    def test_json_output(self, capsys: pytest.CaptureFixture[str]):
        assert main(["--json", "--top", "3"]) == EXIT_OK
        data = json.loads(capsys.readouterr().out)
        assert data["total_stations"] == 145_750
        assert [row["country_code"] for row in data["ranking"]] == ["NL", "NO", "DE"]
        assert data["ranking"][0]["rank"] == 1

    def test_missing_file_exit_1(self, tmp_path: Path):
        assert main(["--data", str(tmp_path / "absent.json")]) == EXIT_MISSING_DATA

    def test_invalid_file_exit_2(self, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"country_code": "A"}]), encoding="utf-8")
        assert main(["--data", str(path)]) == EXIT_INVALID_DATA

    def test_undecodable_bytes_exit_2(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]):
        path = tmp_path / "latin1.json"
        path.write_bytes(b'[{"country_code": "\xff"}]')
        assert main(["--data", str(path)]) == EXIT_INVALID_DATA
        assert "UTF-8" in capsys.readouterr().err

    def test_lenient_accepts_sparse(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]):
        path = tmp_path / "sparse.json"
        path.write_text(json.dumps([{"country_code": "A"}]), encoding="utf-8")
        assert main(["--data", str(path), "--lenient"]) == EXIT_OK
        assert "Total stations: 0" in capsys.readouterr().out

    def test_empty_dataset(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]):
        path = tmp_path / "empty.json"
        path.write_text("[]", encoding="utf-8")
        assert main(["--data", str(path)]) == EXIT_OK
        assert "Average EIRI:   n/a" in capsys.readouterr().out
