"""Parsers for CMS landing pages and NCCI edit files."""

from .anchors import Anchor, extract_anchors
from .tabular import (
    TABULAR_EXTENSIONS,
    RowSet,
    decode_tabular,
    is_tabular,
    normalize_field_name,
)

__all__ = [
    "Anchor",
    "RowSet",
    "TABULAR_EXTENSIONS",
    "decode_tabular",
    "extract_anchors",
    "is_tabular",
    "normalize_field_name",
]
