"""
Data quality checks for rows read from the inventory spreadsheet.

The sheets are edited by hand, so before any analysis we record what was
wrong with the input: blank product names, dates nobody can read,
zero/negative quantities, movements for products that are not in the
master sheet. Checks run on the normalized DataFrame built by the loader.
"""

from dataclasses import dataclass, field
from typing import Any, Callable

import pandas as pd

# Sheet row numbers: header is row 1, data starts at row 2
SHEET_ROW_OFFSET = 2


@dataclass
class DataQualityIssue:
    """A single data quality issue found in a sheet."""

    column: str
    issue_type: str  # "missing", "unparsed_date", "invalid_qty", "unknown_sku", "duplicate"
    severity: str  # "critical", "warning", "info"
    count: int
    percentage: float
    rows: list[int] = field(default_factory=list)  # sheet row numbers
    sample_values: list[Any] = field(default_factory=list)
    description: str = ""


@dataclass
class DataQualityReport:
    """Summary report of data quality for a single sheet."""

    source_name: str
    total_rows: int
    issues: list[DataQualityIssue] = field(default_factory=list)

    @property
    def critical_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "critical"]

    @property
    def warning_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def has_critical_issues(self) -> bool:
        return len(self.critical_issues) > 0

    def summary(self) -> dict:
        """Return a summary dict for display."""
        return {
            "source": self.source_name,
            "total_rows": self.total_rows,
            "critical": len(self.critical_issues),
            "warnings": len(self.warning_issues),
            "info": len([i for i in self.issues if i.severity == "info"]),
        }


def _issue(
    df: pd.DataFrame,
    mask: pd.Series,
    column: str,
    issue_type: str,
    severity: str,
    description: str,
) -> list[DataQualityIssue]:
    count = int(mask.sum())
    if count == 0:
        return []
    flagged = df[mask]
    samples = flagged[column].head(5).tolist() if column in df.columns else []
    return [
        DataQualityIssue(
            column=column,
            issue_type=issue_type,
            severity=severity,
            count=count,
            percentage=count / len(df) * 100,
            rows=[int(i) + SHEET_ROW_OFFSET for i in flagged.index[:20]],
            sample_values=samples,
            description=description.format(count=count),
        )
    ]


class DataQualityChecker:
    """
    Collects checks for one sheet and runs them together.

    Usage:
        report = (
            DataQualityChecker("Inbound")
            .check_required("product")
            .check_unparsed("date", "date_parsed")
            .check_positive("qty")
            .run(df)
        )
    """

    def __init__(self, source_name: str):
        self.source_name = source_name
        self._checks: list[Callable[[pd.DataFrame], list[DataQualityIssue]]] = []

    def add_check(
        self, check_fn: Callable[[pd.DataFrame], list[DataQualityIssue]]
    ) -> "DataQualityChecker":
        """Add a custom check function. Returns self for chaining."""
        self._checks.append(check_fn)
        return self

    def check_required(
        self, column: str, severity: str = "critical"
    ) -> "DataQualityChecker":
        """Rows where a required cell is blank."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if column not in df.columns:
                return []
            blank = df[column].isna() | (df[column].astype(str).str.strip() == "")
            return _issue(
                df, blank, column, "missing", severity, "{count:,} rows without a value"
            )

        return self.add_check(check)

    def check_unparsed(
        self, original_col: str, parsed_col: str, severity: str = "warning"
    ) -> "DataQualityChecker":
        """Rows where a date cell is present (or blank) but could not be parsed."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if parsed_col not in df.columns:
                return []
            unparsed = df[parsed_col].isna()
            return _issue(
                df,
                unparsed,
                original_col,
                "unparsed_date",
                severity,
                "{count:,} dates are empty or in an unknown format",
            )

        return self.add_check(check)

    def check_positive(
        self, column: str, severity: str = "warning"
    ) -> "DataQualityChecker":
        """Quantities must be > 0; direction comes from the sheet, not the sign."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if column not in df.columns:
                return []
            values = pd.to_numeric(df[column], errors="coerce")
            invalid = values.isna() | (values <= 0)
            return _issue(
                df, invalid, column, "invalid_qty", severity, "{count:,} quantities <= 0"
            )

        return self.add_check(check)

    def check_known_keys(
        self, column: str, valid_keys: set[str], severity: str = "warning"
    ) -> "DataQualityChecker":
        """Movements that reference a product missing from the master sheet."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if column not in df.columns:
                return []
            keys = df[column]
            unknown = keys.notna() & ~keys.isin(valid_keys)
            return _issue(
                df,
                unknown,
                column,
                "unknown_sku",
                severity,
                "{count:,} rows reference a SKU not in the product master",
            )

        return self.add_check(check)

    def check_duplicates(
        self, key_columns: list[str], severity: str = "warning"
    ) -> "DataQualityChecker":
        """Rows sharing the same key (e.g. a product listed twice)."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            present = [c for c in key_columns if c in df.columns]
            if not present:
                return []
            dupes = df.duplicated(subset=present, keep=False) & df[present].notna().all(
                axis=1
            )
            return _issue(
                df,
                dupes,
                present[0],
                "duplicate",
                severity,
                "{count:,} rows share the same " + ", ".join(present),
            )

        return self.add_check(check)

    def run(self, df: pd.DataFrame) -> DataQualityReport:
        """Run all checks and return a quality report."""
        all_issues = []
        if len(df) > 0:
            for check_fn in self._checks:
                all_issues.extend(check_fn(df))

        return DataQualityReport(
            source_name=self.source_name, total_rows=len(df), issues=all_issues
        )
