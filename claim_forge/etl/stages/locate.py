"""Locate stage: find the latest distribution link for an edit kind.

Handles:
- Fetching the CMS landing page
- Filtering anchors by download extension and kind keywords
- Ranking candidates by effective-date score, then inferred date
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Iterable
from urllib.parse import urljoin

from ...connectors.http_client import HttpClient, HttpRequestError
from ...errors import DownloadFailed, SourceNotFound
from ...parsers.anchors import Anchor, extract_anchors
from ..models import DownloadCandidate, EditKind
from ..scoring import EffectiveDateScorer, score_effective_date

logger = logging.getLogger(__name__)

DOWNLOAD_EXTENSION = re.compile(r"\.(zip|pdf|xlsx|xlsm|csv|txt)(?:[?#]|$)", re.IGNORECASE)

KIND_KEYWORDS: dict[EditKind, re.Pattern[str]] = {
    EditKind.PTP: re.compile(r"ptp|procedure-to-procedure|edit files", re.IGNORECASE),
    EditKind.MUE: re.compile(r"mue|medically\s+unlikely", re.IGNORECASE),
    EditKind.AOC: re.compile(r"add[\s_-]*on|aoc", re.IGNORECASE),
}


def rank_candidates(
    anchors: Iterable[Anchor],
    page_url: str,
    kind: EditKind,
    scorer: EffectiveDateScorer = score_effective_date,
) -> list[DownloadCandidate]:
    """Filter anchors for a kind and order them best first.

    Sorting is stable, so document order breaks remaining ties.
    """
    keywords = KIND_KEYWORDS[EditKind(kind)]
    candidates: list[DownloadCandidate] = []

    for anchor in anchors:
        if not DOWNLOAD_EXTENSION.search(anchor.href):
            continue
        href = urljoin(page_url, anchor.href)
        if not keywords.search(f"{href} {anchor.text}"):
            continue
        scored = scorer(href, anchor.text)
        candidates.append(
            DownloadCandidate(
                href=href,
                text=anchor.text,
                effective_date=scored.date,
                score=scored.score,
            )
        )

    candidates.sort(
        key=lambda c: (c.score, c.effective_date or date.min),
        reverse=True,
    )
    return candidates


class LocateStage:
    """Locate stage for picking the distribution to download."""

    def __init__(
        self,
        client: HttpClient,
        scorer: EffectiveDateScorer = score_effective_date,
    ) -> None:
        """Initialize the locate stage.

        Args:
            client: HTTP client used to fetch landing pages
            scorer: Effective-date scoring function
        """
        self.client = client
        self.scorer = scorer

    def find_candidates(self, page_url: str, kind: EditKind) -> list[DownloadCandidate]:
        """Fetch the landing page and return ranked candidates.

        Raises:
            DownloadFailed: If the landing page cannot be fetched
        """
        try:
            html = self.client.get_text(page_url)
        except HttpRequestError as e:
            raise DownloadFailed(
                f"Could not fetch index page for {kind.value}: {e}",
                kind=kind.value,
                url=page_url,
                status_code=e.status_code,
            ) from e

        return rank_candidates(extract_anchors(html), page_url, kind, self.scorer)

    def locate(self, page_url: str, kind: EditKind) -> DownloadCandidate:
        """Return the best download candidate for a kind.

        Raises:
            SourceNotFound: If no anchor survives the keyword filter
            DownloadFailed: If the landing page cannot be fetched
        """
        candidates = self.find_candidates(page_url, kind)
        if not candidates:
            raise SourceNotFound(
                f"No download link found for {kind.value} on {page_url}",
                kind=kind.value,
            )

        best = candidates[0]
        logger.info(
            f"[{kind.value}] selected {best.href} "
            f"(score={best.score}, date={best.effective_date}, "
            f"{len(candidates)} candidates)"
        )
        return best
