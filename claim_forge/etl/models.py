"""Data models for the NCCI snapshot build."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path


class EditKind(str, Enum):
    """NCCI edit families ingested into the rule snapshot."""

    PTP = "ptp"
    MUE = "mue"
    AOC = "aoc"


@dataclass(frozen=True)
class DownloadCandidate:
    """A scored download link found on a CMS landing page."""

    href: str
    text: str
    effective_date: date | None = None
    score: int = 0


@dataclass(frozen=True)
class PTPEditRow:
    """Procedure-to-procedure edit. Column 1 is the primary code."""

    primary_code: str
    secondary_code: str
    modifier_indicator: str | None = None
    effective_date: str | None = None
    provider_type: str | None = None


@dataclass(frozen=True)
class MUELimitRow:
    """Medically unlikely edit: maximum units of service for a code."""

    code: str
    max_units: int
    effective_date: str | None = None
    service_type: str | None = None


@dataclass(frozen=True)
class AOCEditRow:
    """Add-on code edit: add-on code payable only with the primary code."""

    addon_code: str
    primary_code: str
    effective_date: str | None = None


EditRow = PTPEditRow | MUELimitRow | AOCEditRow


@dataclass
class PreparedKind:
    """A fully fetched and parsed edit kind, ready to be swapped in."""

    kind: EditKind
    candidate: DownloadCandidate
    archive_path: Path
    rows: list[EditRow] = field(default_factory=list)
    skipped_entries: list[str] = field(default_factory=list)
