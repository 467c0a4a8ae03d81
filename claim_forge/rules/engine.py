"""Core claim validation engine."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ..store.rule_store import RuleStore
from .categories import DEFAULT_RULES
from .models import ClaimValidationInput, RuleContext, ValidationResult
from .registry import RuleRegistry, default_registry

logger = logging.getLogger(__name__)


def register_default_rules(registry: RuleRegistry) -> RuleRegistry:
    registry.extend(DEFAULT_RULES)
    return registry


register_default_rules(default_registry)


def build_context(claim: ClaimValidationInput, store: RuleStore) -> RuleContext:
    """Prefetch every rule row the claim can touch, one query per edit kind.

    Raises:
        RuleStoreUnavailable: If the store is closed or unreachable
    """
    provider_type = claim.resolved_provider_type()
    codes = list(dict.fromkeys(claim.cpt_codes))
    return RuleContext(
        claim=claim,
        provider_type=provider_type,
        aoc_primaries=store.lookup_aoc(codes),
        mue_limits=store.lookup_mue(codes, provider_type),
        ptp_indicators=store.lookup_ptp(codes, provider_type),
    )


def evaluate(context: RuleContext, registry: RuleRegistry | None = None) -> ValidationResult:
    """Run every active rule over a prefetched context."""
    if registry is None:
        registry = default_registry
    result = ValidationResult()
    for rule in registry.active_rules():
        for finding in rule(context):
            result.add(finding)
    return result


def validate(
    claim: ClaimValidationInput | Mapping[str, Any],
    store: RuleStore,
    registry: RuleRegistry | None = None,
) -> ValidationResult:
    """Validate a claim against the current NCCI rule snapshot.

    Compliance problems are reported as findings, never raised.

    Args:
        claim: Claim input (model or plain mapping)
        store: Open rule store
        registry: Rules to run (default: the standard five checks)

    Returns:
        ValidationResult with errors, warnings, passes and risk score

    Raises:
        RuleStoreUnavailable: If the store is closed or unreachable
        pydantic.ValidationError: If a mapping claim has the wrong shape
    """
    if not isinstance(claim, ClaimValidationInput):
        claim = ClaimValidationInput.model_validate(claim)

    result = evaluate(build_context(claim, store), registry)
    logger.debug(
        f"Validated {len(claim.cpt_codes)} CPT / {len(claim.icd10_codes)} ICD codes: "
        f"{len(result.errors)} errors, {len(result.warnings)} warnings, "
        f"risk={result.risk_score}"
    )
    return result
