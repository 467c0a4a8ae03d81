"""Flat issue view of a ValidationResult for older claim consumers.

Errors become issues at 100% risk, warnings at 50%. Passes are dropped.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from .models import Finding, FindingKind, ValidationResult

ERROR_RISK_PERCENTAGE = 100
WARNING_RISK_PERCENTAGE = 50
DEFAULT_FIX = "Review CMS/NCCI guidelines"

ISSUE_CODES = {
    FindingKind.ICD_FORMAT: "icd10_format",
    FindingKind.AOC_PRIMARY_MISSING: "bundling_conflict",
    FindingKind.MUE_EXCEEDED: "frequency_limit",
    FindingKind.PTP_BLOCKED: "bundling_conflict",
    FindingKind.PTP_NEEDS_MODIFIER: "modifier_required",
    FindingKind.PTP_UNKNOWN_INDICATOR: "bundling_warning",
    FindingKind.NEEDS_POLICY_CHECK: "policy_check",
    FindingKind.AOC: "bundling_check",
    FindingKind.MUE: "frequency_check",
    FindingKind.PTP_BYPASSED: "bundling_bypassed",
}

ISSUE_CATEGORIES = {
    FindingKind.ICD_FORMAT: "icd10",
    FindingKind.MUE_EXCEEDED: "frequency",
    FindingKind.MUE: "frequency",
}

ISSUE_FIXES = {
    FindingKind.ICD_FORMAT: "Verify ICD-10-CM code format",
    FindingKind.AOC_PRIMARY_MISSING: "Add required primary code",
    FindingKind.MUE_EXCEEDED: "Reduce units to within MUE limit",
    FindingKind.PTP_BLOCKED: "Remove conflicting code or add appropriate modifier",
    FindingKind.PTP_NEEDS_MODIFIER: "Add bypass modifier (59, XE, XP, XS, or XU)",
    FindingKind.PTP_UNKNOWN_INDICATOR: DEFAULT_FIX,
    FindingKind.NEEDS_POLICY_CHECK: "Verify payer-specific policy requirements",
}


@dataclass(frozen=True)
class LegacyIssue:
    code: str
    risk_percentage: int
    reason: str
    category: str
    fix: str


def to_issue(finding: Finding, risk_percentage: int) -> LegacyIssue:
    return LegacyIssue(
        code=ISSUE_CODES.get(finding.kind, "unknown"),
        risk_percentage=risk_percentage,
        reason=finding.message,
        # PTP, AOC and the policy advisory all fall under bundling
        category=ISSUE_CATEGORIES.get(finding.kind, "bundling"),
        fix=ISSUE_FIXES.get(finding.kind, DEFAULT_FIX),
    )


def to_issues(result: ValidationResult) -> list[LegacyIssue]:
    """Convert errors then warnings into flat issues."""
    issues = [to_issue(f, ERROR_RISK_PERCENTAGE) for f in result.errors]
    issues.extend(to_issue(f, WARNING_RISK_PERCENTAGE) for f in result.warnings)
    return issues


def issues_as_dicts(result: ValidationResult) -> list[dict[str, Any]]:
    return [asdict(issue) for issue in to_issues(result)]
