"""Effective-date scoring for download link labels.

A best-effort ranking over free-text link labels, not a date parser.
Tiers are tried in priority order; the first tier that matches decides
the score, and the latest date found within that tier is returned.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date
from typing import Callable

SCORE_EFFECTIVE = 95
SCORE_ISO = 92
SCORE_QUARTER = 90
SCORE_YEAR = 70
SCORE_NONE = 10

EFFECTIVE_PATTERN = re.compile(r"Effective\s*(\d{1,2})/(\d{1,2})/(\d{4})", re.IGNORECASE)
ISO_PATTERN = re.compile(r"(?<!\d)(\d{4})-(\d{2})-(\d{2})(?!\d)")
QUARTER_PATTERNS = (
    # "Quarter 4 2025", "Quarter 4, 2025"
    (re.compile(r"Quarter\s*([1-4])\s*,?\s*(\d{4})", re.IGNORECASE), 1, 2),
    # "2025 Quarter 4"
    (re.compile(r"(\d{4})\s*Quarter\s*([1-4])", re.IGNORECASE), 2, 1),
    # "q1-2026", "Q1 2026"
    (re.compile(r"(?<![a-z0-9])q([1-4])[\s_-]*(\d{4})(?!\d)", re.IGNORECASE), 1, 2),
)
YEAR_PATTERN = re.compile(r"(?<!\d)(20\d{2})(?!\d)")


@dataclass(frozen=True)
class ScoredDate:
    score: int
    date: date | None


EffectiveDateScorer = Callable[[str, str], ScoredDate]


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def quarter_end(year: int, quarter: int) -> date:
    """Last calendar day of the given quarter."""
    month = quarter * 3
    return date(year, month, calendar.monthrange(year, month)[1])


def _effective_dates(hay: str) -> list[date]:
    found = []
    for m in EFFECTIVE_PATTERN.finditer(hay):
        d = _safe_date(int(m.group(3)), int(m.group(1)), int(m.group(2)))
        if d:
            found.append(d)
    return found


def _iso_dates(hay: str) -> list[date]:
    found = []
    for m in ISO_PATTERN.finditer(hay):
        d = _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if d:
            found.append(d)
    return found


def _quarter_dates(hay: str) -> list[date]:
    found = []
    for pattern, quarter_group, year_group in QUARTER_PATTERNS:
        for m in pattern.finditer(hay):
            found.append(quarter_end(int(m.group(year_group)), int(m.group(quarter_group))))
    return found


def _year_dates(hay: str) -> list[date]:
    return [date(int(m.group(1)), 12, 31) for m in YEAR_PATTERN.finditer(hay)]


SCORING_TIERS = (
    (SCORE_EFFECTIVE, _effective_dates),
    (SCORE_ISO, _iso_dates),
    (SCORE_QUARTER, _quarter_dates),
    (SCORE_YEAR, _year_dates),
)


def score_effective_date(href: str, text: str) -> ScoredDate:
    """Score a link by how explicitly its href and text state a date.

    Examples:
        >>> score_effective_date("/files/zip/ptp.zip", "Effective 10/01/2025")
        ScoredDate(score=95, date=datetime.date(2025, 10, 1))
        >>> score_effective_date("/files/zip/ptp.zip", "2025 Quarter 4")
        ScoredDate(score=90, date=datetime.date(2025, 12, 31))
    """
    hay = f"{href} {text}"
    for score, finder in SCORING_TIERS:
        dates = finder(hay)
        if dates:
            return ScoredDate(score=score, date=max(dates))
    return ScoredDate(score=SCORE_NONE, date=None)
