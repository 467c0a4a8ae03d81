"""Claim validation against the NCCI rule snapshot."""

from .engine import build_context, evaluate, register_default_rules, validate
from .issues import LegacyIssue, issues_as_dicts, to_issues
from .models import (
    ClaimValidationInput,
    Finding,
    FindingKind,
    RuleContext,
    Severity,
    ValidationResult,
)
from .registry import RuleRegistry, default_registry

__all__ = [
    "ClaimValidationInput",
    "Finding",
    "FindingKind",
    "LegacyIssue",
    "RuleContext",
    "RuleRegistry",
    "Severity",
    "ValidationResult",
    "build_context",
    "default_registry",
    "evaluate",
    "issues_as_dicts",
    "register_default_rules",
    "to_issues",
    "validate",
]
