"""Exception hierarchy for snapshot builds and rule store access.

Claim-level problems (bad diagnosis codes, edit conflicts) are never raised;
they are reported as findings on the ValidationResult.
"""

from __future__ import annotations


class ClaimForgeError(Exception):
    """Base class for all engine errors."""


class IngestError(ClaimForgeError):
    """Raised when a rule snapshot build cannot complete for an edit kind."""

    def __init__(self, message: str, kind: str | None = None):
        super().__init__(message)
        self.kind = kind


class SourceNotFound(IngestError):
    """No qualifying download link was found on the index page."""


class DownloadFailed(IngestError):
    """The index page or distribution could not be fetched."""

    def __init__(
        self,
        message: str,
        kind: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, kind)
        self.url = url
        self.status_code = status_code


class EmptyRuleSet(IngestError):
    """The distribution parsed, but produced zero canonical rows."""


class DecodeFailed(ClaimForgeError):
    """A single archive entry could not be decoded. Logged and skipped."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class RuleStoreUnavailable(ClaimForgeError):
    """The rule store is closed, unreachable, or has no snapshot yet."""
