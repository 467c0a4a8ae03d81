"""Rule snapshot build: locate, fetch, extract, transform and load NCCI edits."""

from .models import (
    AOCEditRow,
    DownloadCandidate,
    EditKind,
    MUELimitRow,
    PreparedKind,
    PTPEditRow,
)
from .scoring import ScoredDate, score_effective_date

__all__ = [
    "AOCEditRow",
    "DownloadCandidate",
    "EditKind",
    "MUELimitRow",
    "PTPEditRow",
    "PreparedKind",
    "ScoredDate",
    "score_effective_date",
]
