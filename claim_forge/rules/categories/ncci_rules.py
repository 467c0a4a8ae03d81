"""NCCI (National Correct Coding Initiative) edit rules."""

from __future__ import annotations

from collections import Counter

from ... import config
from ..models import Finding, FindingKind, RuleContext, Severity

BLOCKING_INDICATORS = frozenset({"0", "N"})
BYPASSABLE_INDICATORS = frozenset({"1", "Y"})


def ncci_addon_primary_rule(context: RuleContext) -> list[Finding]:
    """Check that each billed add-on code has one of its primaries billed."""
    billed = set(context.claim.cpt_codes)
    findings: list[Finding] = []

    for code in context.distinct_codes:
        primaries = context.aoc_primaries.get(code)
        if not primaries:
            continue
        if primaries & billed:
            findings.append(
                Finding(
                    severity=Severity.PASS,
                    kind=FindingKind.AOC,
                    message=f"Add-on code {code}: primary present.",
                )
            )
            continue

        required = sorted(primaries)
        findings.append(
            Finding(
                severity=Severity.ERROR,
                kind=FindingKind.AOC_PRIMARY_MISSING,
                message=(
                    f"Add-on code {code} requires an allowed primary code "
                    f"({', '.join(required)}) on the same claim."
                ),
                data={"addon": code, "required_primaries": required},
            )
        )
    return findings


def ncci_mue_rule(context: RuleContext) -> list[Finding]:
    """Check requested units against the Medically Unlikely Edit limit.

    Units come from the claim's explicit per-code units when given,
    else from how many times the code was billed.
    """
    occurrences = Counter(context.claim.cpt_codes)
    findings: list[Finding] = []

    for code in context.distinct_codes:
        limit = context.mue_limits.get(code)
        if limit is None:
            continue
        units = context.claim.units.get(code, occurrences[code])
        if units > limit:
            findings.append(
                Finding(
                    severity=Severity.ERROR,
                    kind=FindingKind.MUE_EXCEEDED,
                    message=(
                        f"CPT {code} units {units} exceed MUE limit {limit} "
                        f"for {context.provider_type}."
                    ),
                    data={"code": code, "units": units, "mue": limit},
                )
            )
        else:
            findings.append(
                Finding(
                    severity=Severity.PASS,
                    kind=FindingKind.MUE,
                    message=f"CPT {code} units={units} within MUE limit ({limit}).",
                )
            )
    return findings


def ncci_ptp_rule(context: RuleContext) -> list[Finding]:
    """Check every ordered pair of billed codes for a PTP edit."""
    modifiers = {m.upper() for m in context.claim.modifiers}
    bypass = list(config.BYPASS_MODIFIERS)
    codes = context.distinct_codes
    findings: list[Finding] = []

    for c1 in codes:
        for c2 in codes:
            if c1 == c2 or (c1, c2) not in context.ptp_indicators:
                continue
            indicator = (context.ptp_indicators[(c1, c2)] or "").strip()
            normalized = indicator.upper()

            if normalized in BLOCKING_INDICATORS:
                findings.append(
                    Finding(
                        severity=Severity.ERROR,
                        kind=FindingKind.PTP_BLOCKED,
                        message=(
                            f"PTP edit blocks billing {c1}+{c2} together for "
                            f"{context.provider_type} (modifier indicator {indicator})."
                        ),
                        data={"c1": c1, "c2": c2, "indicator": indicator},
                    )
                )
            elif normalized in BYPASSABLE_INDICATORS:
                if modifiers.intersection(bypass):
                    findings.append(
                        Finding(
                            severity=Severity.PASS,
                            kind=FindingKind.PTP_BYPASSED,
                            message=f"PTP edit for {c1}+{c2} bypassed by modifier.",
                        )
                    )
                else:
                    findings.append(
                        Finding(
                            severity=Severity.ERROR,
                            kind=FindingKind.PTP_NEEDS_MODIFIER,
                            message=(
                                f"PTP edit for {c1}+{c2} requires a bypass modifier "
                                f"({', '.join(bypass)})."
                            ),
                            data={"c1": c1, "c2": c2, "required_modifiers": bypass},
                        )
                    )
            else:
                findings.append(
                    Finding(
                        severity=Severity.WARNING,
                        kind=FindingKind.PTP_UNKNOWN_INDICATOR,
                        message=(
                            f'PTP {c1}+{c2} has unrecognized modifier indicator "{indicator}". '
                            "Treating as potential conflict."
                        ),
                        data={"c1": c1, "c2": c2, "indicator": indicator},
                    )
                )
    return findings
