"""Diagnosis code format rules."""

from __future__ import annotations

import re

from ..models import Finding, FindingKind, RuleContext, Severity

# Letter, two alphanumerics, optional dot and 1-4 alphanumerics
ICD10_CM_PATTERN = re.compile(r"^[A-Z][0-9A-Z]{2}(\.[0-9A-Z]{1,4})?$")


def icd_format_rule(context: RuleContext) -> list[Finding]:
    """Check that every ICD-10-CM code is syntactically valid.

    Invalid codes are reported together in one error, verbatim.
    """
    invalid = [
        code for code in context.claim.icd10_codes if not ICD10_CM_PATTERN.match(code)
    ]
    if invalid:
        return [
            Finding(
                severity=Severity.ERROR,
                kind=FindingKind.ICD_FORMAT,
                message=f"Invalid ICD-10-CM format: {', '.join(invalid)}",
                data=invalid,
            )
        ]
    return [
        Finding(
            severity=Severity.PASS,
            kind=FindingKind.ICD_FORMAT,
            message="ICD-10-CM codes are syntactically valid.",
        )
    ]
