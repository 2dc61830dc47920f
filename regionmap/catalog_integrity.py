"""
regionmap.catalog_integrity — Region dataset integrity validation.

Validates a region dataset file for:
    1. Presence (the file exists)
    2. Readability (UTF-8 JSON, top-level array, not empty)
    3. Record schema (every record parses under the catalog's strict rules)
    4. Id uniqueness

Design contract:
    - validate_catalog_file() is the ONLY validation entry point.
    - Uses the same record parser as the runtime loader, so a file that
      passes here loads at startup.
    - Returns a structured IntegrityReport. Never raises on validation
      failure, and unlike load_catalog() it collects every bad record
      instead of stopping at the first one.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from regionmap.catalog import CatalogLoadError, Region, parse_region, read_records


# ---------------------------------------------------------------------------
# Exit codes: used by CLI, exposed for programmatic use
# ---------------------------------------------------------------------------

EXIT_OK: int = 0
EXIT_MISSING_FILE: int = 1
EXIT_UNREADABLE: int = 2
EXIT_SCHEMA_VIOLATION: int = 3
EXIT_DUPLICATE_ID: int = 4


@dataclass
class IntegrityReport:
    """Structured report from dataset validation.

    Fields:
        valid: True only if ALL checks pass.
        source: The dataset path that was validated.
        region_count: Records that parsed successfully.
        checks: List of check results, each {check, passed, detail?}.
        errors: Flat list of human-readable error strings.
        exit_code: Numeric exit code (0 = ok, non-zero = first failure).
    """
    valid: bool = True
    source: str = ""
    region_count: int = 0
    checks: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    exit_code: int = EXIT_OK

    def fail(self, check: str, detail: str, code: int) -> None:
        """Record a failed check."""
        self.valid = False
        self.checks.append({"check": check, "passed": False, "detail": detail})
        self.errors.append(f"[{check}] {detail}")
        if self.exit_code == EXIT_OK:
            self.exit_code = code

    def ok(self, check: str, detail: str = "") -> None:
        """Record a passing check."""
        self.checks.append({"check": check, "passed": True, "detail": detail})

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "source": self.source,
            "region_count": self.region_count,
            "exit_code": self.exit_code,
            "checks": self.checks,
            "errors": self.errors,
        }


# ---------------------------------------------------------------------------
# Individual validation steps
# ---------------------------------------------------------------------------

def _check_records(records: list[Any], report: IntegrityReport) -> list[Region]:
    regions: list[Region] = []
    failures = 0
    for index, raw in enumerate(records):
        try:
            regions.append(parse_region(raw, index))
        except CatalogLoadError as exc:
            failures += 1
            report.fail("record_schema", str(exc), EXIT_SCHEMA_VIOLATION)

    report.region_count = len(regions)
    if failures == 0:
        report.ok("record_schema", f"All {len(regions)} records valid.")
    return regions


def _check_unique_ids(regions: list[Region], report: IntegrityReport) -> None:
    counts = Counter(r.id for r in regions)
    duplicates = sorted(rid for rid, n in counts.items() if n > 1)
    if duplicates:
        report.fail(
            "unique_ids",
            f"Duplicate region ids: {duplicates}",
            EXIT_DUPLICATE_ID,
        )
        return
    report.ok("unique_ids", f"{len(counts)} distinct ids.")


def _provider_summary(regions: list[Region]) -> str:
    counts = Counter(r.provider for r in regions)
    return ", ".join(f"{p}={n}" for p, n in sorted(counts.items()))


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def validate_catalog_file(filepath: Path) -> IntegrityReport:
    """Validate a region dataset file.

    Returns:
        IntegrityReport with all checks recorded.
        report.valid is True only if ALL checks pass.
    """
    report = IntegrityReport(source=str(filepath))

    if not filepath.is_file():
        report.fail(
            "file_exists",
            f"Region dataset not found: {filepath}",
            EXIT_MISSING_FILE,
        )
        return report
    report.ok("file_exists", str(filepath))

    try:
        records = read_records(filepath)
    except CatalogLoadError as exc:
        report.fail("json_readable", str(exc), EXIT_UNREADABLE)
        return report
    report.ok("json_readable", f"{len(records)} records.")

    if not records:
        report.fail("non_empty", "Dataset contains no regions.", EXIT_SCHEMA_VIOLATION)
        return report

    regions = _check_records(records, report)
    _check_unique_ids(regions, report)

    if report.valid:
        report.ok("providers", _provider_summary(regions))
    return report
