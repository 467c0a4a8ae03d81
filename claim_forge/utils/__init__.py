"""Shared utility functions for the claim-forge engine."""

from .date_parser import normalize_effective_date, parse_flexible_date
from .sanitization import filename_from_url, sanitize_filename

__all__ = [
    "filename_from_url",
    "normalize_effective_date",
    "parse_flexible_date",
    "sanitize_filename",
]
