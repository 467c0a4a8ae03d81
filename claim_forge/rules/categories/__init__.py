"""Claim validation rules organized by category."""

from __future__ import annotations

from .format_rules import icd_format_rule
from .ncci_rules import ncci_addon_primary_rule, ncci_mue_rule, ncci_ptp_rule
from .policy_rules import medical_necessity_advisory_rule

# Evaluation order
DEFAULT_RULES = (
    icd_format_rule,
    ncci_addon_primary_rule,
    ncci_mue_rule,
    ncci_ptp_rule,
    medical_necessity_advisory_rule,
)

__all__ = [
    "DEFAULT_RULES",
    "icd_format_rule",
    "medical_necessity_advisory_rule",
    "ncci_addon_primary_rule",
    "ncci_mue_rule",
    "ncci_ptp_rule",
]
