"""
eiri.summarize — CLI printing the dashboard's headline indicators.

Usage:
    python -m eiri.summarize
    python -m eiri.summarize --data path/to/countries.csv --top 5
    python -m eiri.summarize --json

Exit codes:
    0: OK
    1: Dataset file not found
    2: Dataset invalid
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from eiri.constants import DEFAULT_DATA_PATH, DEFAULT_TOP_N
from eiri.loader import DatasetError, load_records
from eiri.metrics import summarize
from eiri.sorting import SortField, rank_top_n

EXIT_OK = 0
EXIT_MISSING_DATA = 1
EXIT_INVALID_DATA = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="summarize",
        description="Print EIRI headline indicators and the top readiness ranking.",
    )
    parser.add_argument(
        "--data",
        type=str,
        default=None,
        help="Dataset file, .json or .csv (default: bundled dataset).",
    )
    parser.add_argument(
        "--top",
        type=int,
        default=DEFAULT_TOP_N,
        help=f"Ranking length (default: {DEFAULT_TOP_N}).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output structured JSON.",
    )
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Accept records missing stations, EIRI or gap_value.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the summary. Returns exit code."""
    args = _build_parser().parse_args(argv)
    path = Path(args.data) if args.data else DEFAULT_DATA_PATH

    try:
        records = load_records(path, strict=not args.lenient)
    except FileNotFoundError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_MISSING_DATA
    except DatasetError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_INVALID_DATA

    summary = summarize(records)
    ranking = rank_top_n(records, SortField.EIRI, args.top)

    if args.json_output:
        report = summary.to_dict()
        report["ranking"] = [
            {"rank": i, "country_code": r.country_code, "EIRI": r.eiri}
            for i, r in enumerate(ranking, 1)
        ]
        print(json.dumps(report, indent=2, ensure_ascii=False))
        return EXIT_OK

    print(f"Dataset:        {path.name} ({summary.country_count} countries)")
    print(f"Total stations: {summary.total_stations:,}")
    if summary.country_count:
        print(f"Average EIRI:   {summary.average_eiri:.1f} / 100")
    else:
        print("Average EIRI:   n/a")
    if summary.top_ready is not None:
        print(f"Leader:         {summary.top_ready.country_code} (EIRI {summary.top_ready.eiri or 0.0:.1f})")
    if summary.top_gap is not None:
        print(f"Highest gap:    {summary.top_gap.country_code} ({summary.top_gap.gap_value or 0.0:+.1f})")

    if ranking:
        print(f"\nTop {len(ranking)} by EIRI:")
        for i, r in enumerate(ranking, 1):
            print(f"  {i:>2}. {r.country_code:<4} {r.display_name:<24} {r.eiri or 0.0:6.1f}")

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
