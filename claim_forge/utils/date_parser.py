"""Date parsing utilities for CMS edit file values."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

# Reasonable date bounds for NCCI edit dates
MIN_VALID_YEAR = 1900
MAX_VALID_YEAR = 2100


def parse_flexible_date(date_str: str | None) -> datetime | None:
    """Parse date from multiple common formats with validation.

    Supports the following formats:
    - ISO 8601: YYYY-MM-DD (e.g., 2024-01-15)
    - US format: MM/DD/YYYY (e.g., 01/15/2024)
    - US dashed: MM-DD-YYYY (e.g., 10-01-2025)
    - Compact: YYYYMMDD (e.g., 20240115), as used in PTP text files

    Validates that:
    - The date is a real calendar date (no Feb 30, etc.)
    - The year is between 1900 and 2100

    Args:
        date_str: Date string to parse, or None

    Returns:
        Parsed datetime object, or None if parsing fails or input is None

    Examples:
        >>> parse_flexible_date("2024-01-15")
        datetime.datetime(2024, 1, 15, 0, 0)
        >>> parse_flexible_date("10-01-2025")
        datetime.datetime(2025, 10, 1, 0, 0)
        >>> parse_flexible_date("*")
        None
    """
    if not date_str:
        return None

    date_str = date_str.strip()
    formats = [
        "%Y-%m-%d",  # ISO 8601
        "%m/%d/%Y",  # US format
        "%m-%d-%Y",  # US dashed
        "%Y%m%d",  # Compact
    ]

    for fmt in formats:
        try:
            parsed = datetime.strptime(date_str, fmt)
            if parsed.year < MIN_VALID_YEAR or parsed.year > MAX_VALID_YEAR:
                continue
            return parsed
        except ValueError:
            # strptime raises ValueError for invalid dates like Feb 30
            continue

    return None


def normalize_effective_date(value: Any) -> str | None:
    """Render a spreadsheet cell as an ISO date string when possible.

    Workbook cells may already be datetime objects; text cells are parsed
    with parse_flexible_date. Unparseable text is kept verbatim so no
    publisher value is lost.

    Returns:
        ISO ``YYYY-MM-DD`` string, the stripped original text, or None if blank
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = str(value).strip()
    if not text or text == "*":
        return None

    if isinstance(value, (int, float)):
        # YYYYMMDD stored as a number
        text = str(int(value))

    parsed = parse_flexible_date(text)
    return parsed.date().isoformat() if parsed else text
