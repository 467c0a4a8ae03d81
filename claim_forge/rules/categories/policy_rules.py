"""Medical-necessity advisory rules."""

from __future__ import annotations

from ..models import Finding, FindingKind, RuleContext, Severity


def medical_necessity_advisory_rule(context: RuleContext) -> list[Finding]:
    """Flag that CPT/ICD medical necessity needs a payer-specific policy check."""
    if not (context.claim.icd10_codes and context.claim.cpt_codes):
        return []
    return [
        Finding(
            severity=Severity.WARNING,
            kind=FindingKind.NEEDS_POLICY_CHECK,
            message=(
                "CPT/ICD medical necessity requires payer-specific policy "
                "(LCD/NCD or commercial policy) validation."
            ),
            data={"payer_policies": "Not evaluated; coverage determination is out of scope."},
        )
    ]
