"""Anchor extraction from CMS landing pages."""

from __future__ import annotations

import re
from dataclasses import dataclass
from html.parser import HTMLParser


@dataclass(frozen=True)
class Anchor:
    """A hyperlink found in page markup."""

    href: str
    text: str


class AnchorExtractor(HTMLParser):
    """Collect ``<a href>`` elements with their visible text.

    Text from nested inline tags (spans, strong) is joined into the
    enclosing anchor's text.
    """

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.anchors: list[Anchor] = []
        self._href: str | None = None
        self._text: list[str] = []

    def handle_starttag(self, tag, attrs):
        if tag != "a":
            return
        # An unclosed anchor is terminated by the next one
        self._finish()
        href = dict(attrs).get("href")
        if href:
            self._href = href.strip()
            self._text = []

    def handle_endtag(self, tag):
        if tag == "a":
            self._finish()

    def handle_data(self, data):
        if self._href is not None:
            self._text.append(data)

    def close(self):
        super().close()
        self._finish()

    def _finish(self) -> None:
        if self._href is None:
            return
        text = re.sub(r"\s+", " ", " ".join(self._text)).strip()
        self.anchors.append(Anchor(href=self._href, text=text))
        self._href = None
        self._text = []


def extract_anchors(html: str) -> list[Anchor]:
    """Return every anchor with an href, in document order."""
    if not html:
        return []
    parser = AnchorExtractor()
    parser.feed(html)
    parser.close()
    return parser.anchors
