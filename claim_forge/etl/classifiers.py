"""Filename classifiers for provider and service type hints.

CMS publishes practitioner, outpatient hospital and DME variants of the
edit files and only the filename tells them apart. These regex
heuristics are kept behind one small class so they can be tested and
swapped independently of the normalizer.
"""

from __future__ import annotations

import re
from typing import Pattern, Sequence

PROVIDER_TYPE_PATTERNS: tuple[tuple[str, Pattern[str]], ...] = (
    ("practitioner", re.compile(r"practitioner|physician", re.IGNORECASE)),
    ("hospital", re.compile(r"hospital|outpatient|opps|facility", re.IGNORECASE)),
)

SERVICE_TYPE_PATTERNS: tuple[tuple[str, Pattern[str]], ...] = (
    ("practitioner", re.compile(r"practitioner|physician", re.IGNORECASE)),
    ("hospital", re.compile(r"hospital|outpatient|opps|facility", re.IGNORECASE)),
    ("dme", re.compile(r"(?<![a-z])dme(?![a-z])|durable|supplier", re.IGNORECASE)),
)


class FilenameClassifier:
    """Map a source filename to a scope label, or None when unscoped."""

    def __init__(self, patterns: Sequence[tuple[str, Pattern[str]]]) -> None:
        self.patterns = tuple(patterns)

    def classify(self, *names: str | None) -> str | None:
        """Return the first label whose pattern matches any of the names.

        Names are checked in order, so pass the most specific one (the
        archive entry) before the archive filename.
        """
        for name in names:
            if not name:
                continue
            for label, pattern in self.patterns:
                if pattern.search(name):
                    return label
        return None


provider_type_classifier = FilenameClassifier(PROVIDER_TYPE_PATTERNS)
service_type_classifier = FilenameClassifier(SERVICE_TYPE_PATTERNS)
