"""NCCI compliance rules engine.

Builds a local snapshot of the CMS NCCI PTP, MUE and add-on code edits
and validates candidate claims against it.
"""

from .errors import (
    ClaimForgeError,
    DecodeFailed,
    DownloadFailed,
    EmptyRuleSet,
    IngestError,
    RuleStoreUnavailable,
    SourceNotFound,
)
from .etl.models import EditKind
from .etl.pipeline import BuildResult, RuleSnapshotBuilder, build_latest
from .rules import ClaimValidationInput, ValidationResult, validate
from .store import RuleStore
from .version_gate import VersionGate

__version__ = "0.1.0"

__all__ = [
    "BuildResult",
    "ClaimForgeError",
    "ClaimValidationInput",
    "DecodeFailed",
    "DownloadFailed",
    "EditKind",
    "EmptyRuleSet",
    "IngestError",
    "RuleSnapshotBuilder",
    "RuleStore",
    "RuleStoreUnavailable",
    "SourceNotFound",
    "ValidationResult",
    "VersionGate",
    "build_latest",
    "validate",
]
