"""
Parsers for the values found in inventory spreadsheet cells.

Sheet data is typed by hand, so the same column can hold:
- Several date layouts (ISO from the web form, d/m/Y from manual entry)
- Numbers with thousands separators ("1,200")
- Product names with stray whitespace and inconsistent case
"""

from datetime import date, datetime
import math
import re

import pandas as pd


# The console writes Thai dates: Gregorian year + 543
BUDDHIST_ERA_OFFSET = 543
BUDDHIST_ERA_CUTOFF = 2400

_DMY = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")


def _shift_years(value: date, years: int) -> date:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # 29 Feb with no counterpart in the target year
        return value.replace(year=value.year + years, day=28)


class DateParser:
    """
    Parses sheet date cells into calendar days.

    To extend: Add new format patterns to DATE_FORMATS.
    """

    # Ordered by how often they show up in the sheets
    DATE_FORMATS = [
        "%Y-%m-%d",      # ISO: 2024-07-25 (web form)
        "%d/%m/%Y",      # Manual entry: 25/07/2024
        "%d/%m/%y",      # Manual short: 25/07/24
        "%d-%m-%Y",      # 25-07-2024
        "%Y/%m/%d",      # 2024/07/25
        "%m/%d/%Y",      # US export: 07/25/2024
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d %H:%M:%S",
    ]

    def __init__(self, custom_formats: list[str] | None = None):
        """
        Args:
            custom_formats: Additional date formats to try (prepended to defaults)
        """
        self.formats = (custom_formats or []) + self.DATE_FORMATS
        self._cache: dict[str, date | None] = {}

    def parse(self, value) -> date | None:
        """Parse a cell into a date, or None when it cannot be read."""
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value

        text = str(value).strip()
        if not text:
            return None

        if text in self._cache:
            return self._cache[text]

        result = self._parse_buddhist_era(text)
        if result is None:
            for fmt in self.formats:
                try:
                    result = datetime.strptime(text, fmt).date()
                    break
                except ValueError:
                    continue
        if result is not None and result.year > BUDDHIST_ERA_CUTOFF:
            result = _shift_years(result, -BUDDHIST_ERA_OFFSET)

        self._cache[text] = result
        return result

    @staticmethod
    def _parse_buddhist_era(text: str) -> date | None:
        """
        D/M/YYYY with a Buddhist Era year ("18/10/2569" -> 2026-10-18).

        Converted before strptime so that 29/02 in a BE leap year still parses.
        """
        match = _DMY.match(text)
        if not match:
            return None
        day, month, year = (int(part) for part in match.groups())
        if year <= BUDDHIST_ERA_CUTOFF:
            return None
        try:
            return date(year - BUDDHIST_ERA_OFFSET, month, day)
        except ValueError:
            return None

    def parse_series(self, series: pd.Series) -> pd.Series:
        """Parse an entire pandas Series of dates."""
        return series.apply(self.parse)


class SKUNormalizer:
    """
    Builds the join key used between the product master and the movement logs.

    The logs reference products by the name typed at the time, so the key is
    the name with whitespace collapsed and case folded:
    - "  Widget  Blue " -> "widget blue"
    - "WIDGET BLUE"     -> "widget blue"
    """

    def __init__(self, casefold: bool = True):
        self.casefold = casefold

    def normalize(self, value) -> str | None:
        """Normalize a single product reference."""
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return None

        result = " ".join(str(value).split())
        if not result:
            return None

        if self.casefold:
            result = result.casefold()

        return result

    def normalize_series(self, series: pd.Series) -> pd.Series:
        """Normalize an entire pandas Series of product references."""
        return series.apply(self.normalize)


_NUMBER_JUNK = re.compile(r"[,\s]")


def parse_quantity(value, default: float | None = 0.0) -> float | None:
    """
    Parse a numeric cell.

    "1,200" -> 1200.0, "" -> default, "abc" -> default.
    """
    if value is None:
        return default
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return default
        return float(value)

    text = _NUMBER_JUNK.sub("", str(value))
    if not text:
        return default
    try:
        return float(text)
    except ValueError:
        return default


# Shared instance: normalization is stateless
default_normalizer = SKUNormalizer()


def normalize_key(value) -> str:
    """Normalize a lookup key, returning "" for empty input."""
    return default_normalizer.normalize(value) or ""
