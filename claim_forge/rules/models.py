"""Data models for claim validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, Field, field_validator

from .. import config


class Severity(str, Enum):
    """Finding severity buckets."""

    ERROR = "error"
    WARNING = "warning"
    PASS = "pass"


class FindingKind(str, Enum):
    """Finding type tags carried on the wire as ``type``."""

    ICD_FORMAT = "ICD_FORMAT"
    AOC_PRIMARY_MISSING = "AOC_PRIMARY_MISSING"
    AOC = "AOC"
    MUE_EXCEEDED = "MUE_EXCEEDED"
    MUE = "MUE"
    PTP_BLOCKED = "PTP_BLOCKED"
    PTP_NEEDS_MODIFIER = "PTP_NEEDS_MODIFIER"
    PTP_BYPASSED = "PTP_BYPASSED"
    PTP_UNKNOWN_INDICATOR = "PTP_UNKNOWN_INDICATOR"
    NEEDS_POLICY_CHECK = "NEEDS_POLICY_CHECK"


@dataclass(frozen=True)
class Finding:
    """A single rule outcome."""

    severity: Severity
    kind: FindingKind
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.kind.value, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


def _clean_codes(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set)):
        raise ValueError(f"expected a code or a list of codes, got {type(value).__name__}")
    cleaned = []
    for item in value:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            cleaned.append(text)
    return cleaned



class ClaimValidationInput(BaseModel):
    """Candidate claim submitted for NCCI validation."""

    cpt_codes: list[str] = Field(default_factory=list)
    icd10_codes: list[str] = Field(default_factory=list)
    modifiers: list[str] = Field(default_factory=list)
    place_of_service: str | None = None
    provider_type: str | None = None
    units: dict[str, int] = Field(default_factory=dict)
    note_summary: str | None = None

    @field_validator("cpt_codes", "icd10_codes", "modifiers", mode="before")
    @classmethod
    def strip_codes(cls, v: Any) -> list[str]:
        """Trim whitespace and drop blank codes."""
        return _clean_codes(v)

    @field_validator("cpt_codes", mode="after")
    @classmethod
    def upper_procedure_codes(cls, v: list[str]) -> list[str]:
        return [code.upper() for code in v]

    @field_validator("place_of_service", "provider_type", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> str | None:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @field_validator("units", mode="before")
    @classmethod
    def clean_unit_keys(cls, v: Any) -> dict[str, Any]:
        """Key units by the trimmed, uppercased procedure code."""
        if not v:
            return {}
        if not isinstance(v, Mapping):
            raise ValueError(f"units must map codes to counts, got {type(v).__name__}")
        cleaned = {}
        for code, units in v.items():
            key = str(code).strip().upper()
            if key:
                cleaned[key] = units
        return cleaned

    def resolved_provider_type(self) -> str:
        """Provider type used to scope MUE and PTP lookups.

        Explicit provider_type wins; otherwise a facility place of service
        means ``hospital`` and anything else the configured default.
        """
        if self.provider_type:
            return self.provider_type.lower()
        if self.place_of_service and self.place_of_service.zfill(2) in config.FACILITY_POS_CODES:
            return "hospital"
        return config.DEFAULT_PROVIDER_TYPE


@dataclass
class ValidationResult:
    """Findings bucketed by severity with aggregate risk."""

    errors: list[Finding] = field(default_factory=list)
    warnings: list[Finding] = field(default_factory=list)
    passes: list[Finding] = field(default_factory=list)

    def add(self, finding: Finding) -> None:
        if finding.severity is Severity.ERROR:
            self.errors.append(finding)
        elif finding.severity is Severity.WARNING:
            self.warnings.append(finding)
        else:
            self.passes.append(finding)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def risk_score(self) -> int:
        return min(100, 30 * len(self.errors) + 10 * len(self.warnings))

    def kinds(self, severity: Severity | None = None) -> list[FindingKind]:
        """Finding kinds in order, optionally for one severity."""
        buckets = {
            Severity.ERROR: self.errors,
            Severity.WARNING: self.warnings,
            Severity.PASS: self.passes,
        }
        if severity is not None:
            return [f.kind for f in buckets[Severity(severity)]]
        return [f.kind for f in (*self.errors, *self.warnings, *self.passes)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "errors": [f.to_dict() for f in self.errors],
            "warnings": [f.to_dict() for f in self.warnings],
            "passes": [f.to_dict() for f in self.passes],
            "is_valid": self.is_valid,
            "risk_score": self.risk_score,
        }


@dataclass(frozen=True)
class RuleContext:
    """Claim plus the rule rows prefetched for it.

    Lookups are batched once per claim, so rules never touch the store.
    """

    claim: ClaimValidationInput
    provider_type: str
    aoc_primaries: dict[str, set[str]] = field(default_factory=dict)
    mue_limits: dict[str, int] = field(default_factory=dict)
    ptp_indicators: dict[tuple[str, str], str | None] = field(default_factory=dict)

    @property
    def distinct_codes(self) -> list[str]:
        """Billed procedure codes, first occurrence order."""
        return list(dict.fromkeys(self.claim.cpt_codes))
