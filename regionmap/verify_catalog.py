"""
regionmap.verify_catalog — CLI for region dataset verification.

Usage:
    python -m regionmap.verify_catalog
    python -m regionmap.verify_catalog --file path/to/regions.json
    python -m regionmap.verify_catalog --json
    python -m regionmap.verify_catalog --quiet

Exit codes:
    0: Valid — all checks passed.
    1: Missing file — dataset not found.
    2: Unreadable — not UTF-8 JSON, or not a JSON array.
    3: Schema violation — a record breaks a catalog invariant, or the dataset is empty.
    4: Duplicate id — two records share an id.

Output:
    Default: human-readable summary to stdout.
    --json: structured JSON report to stdout.
    --quiet: no output, only exit code.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from regionmap.catalog import REGIONS_FILE
from regionmap.catalog_integrity import (
    EXIT_DUPLICATE_ID,
    EXIT_MISSING_FILE,
    EXIT_OK,
    EXIT_SCHEMA_VIOLATION,
    EXIT_UNREADABLE,
    validate_catalog_file,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="verify_catalog",
        description="Verify region dataset integrity: schema, enumerations, unique ids.",
    )
    parser.add_argument(
        "--file",
        type=str,
        default=None,
        help="Dataset to verify (default: REGIONS_FILE or the packaged regions.json).",
    )
    output = parser.add_mutually_exclusive_group()
    output.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output structured JSON report.",
    )
    output.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all output. Exit code only.",
    )
    return parser


EXIT_CODE_LABELS: dict[int, str] = {
    EXIT_OK: "VALID",
    EXIT_MISSING_FILE: "MISSING_FILE",
    EXIT_UNREADABLE: "UNREADABLE",
    EXIT_SCHEMA_VIOLATION: "SCHEMA_VIOLATION",
    EXIT_DUPLICATE_ID: "DUPLICATE_ID",
}


def main(argv: list[str] | None = None) -> int:
    """Run dataset verification. Returns exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    filepath = Path(args.file) if args.file else REGIONS_FILE
    report = validate_catalog_file(filepath)

    if args.quiet:
        return report.exit_code

    if args.json_output:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        return report.exit_code

    status = "VALID" if report.valid else EXIT_CODE_LABELS.get(report.exit_code, "FAILED")
    print(f"Dataset:  {filepath}")
    print(f"Status:   {status}")
    print(f"Regions:  {report.region_count}")
    print(f"Checks:   {len(report.checks)}")

    for check in report.checks:
        marker = "✓" if check["passed"] else "✗"
        detail = f": {check['detail']}" if check.get("detail") else ""
        print(f"  {marker} {check['check']}{detail}")

    if report.errors:
        print(f"\nErrors ({len(report.errors)}):")
        for err in report.errors:
            print(f"  • {err}")

    print(f"\nExit code: {report.exit_code}")
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
