"""Transform stage: map raw edit-file rows to canonical records.

Handles:
- Header alias resolution (CMS renames columns between releases)
- Code, indicator, unit-limit and date value normalization
- Provider/service type hints from the source filename
- Dropping incomplete, repeated-header and deleted rows
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Iterable

from ...parsers.tabular import HeaderHints, RowSet, normalize_field_name
from ...utils.date_parser import normalize_effective_date, parse_flexible_date
from ..classifiers import (
    FilenameClassifier,
    provider_type_classifier,
    service_type_classifier,
)
from ..models import AOCEditRow, EditKind, EditRow, MUELimitRow, PTPEditRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSpec:
    """Ordered header aliases for one canonical field.

    With prefix=True a header that merely starts with an alias also
    matches, for long multi-line headers such as
    ``Modifier 0=not allowed 1=allowed 9=not applicable``.
    """

    aliases: tuple[str, ...]
    prefix: bool = False

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(normalize_field_name(a) for a in self.aliases)


PTP_FIELDS = {
    "primary_code": FieldSpec(("Column 1", "Column1", "Col1", "C1", "HCPCS/CPT Code 1")),
    "secondary_code": FieldSpec(("Column 2", "Column2", "Col2", "C2", "HCPCS/CPT Code 2")),
    "modifier_indicator": FieldSpec(
        ("Modifier Indicator", "ModifierIndicator", "MI", "Modifier"), prefix=True
    ),
    "effective_date": FieldSpec(("Effective Date", "EffectiveDate", "EffDt", "Eff Date")),
    "deletion_date": FieldSpec(
        ("Deletion Date", "DeletionDate", "DelDt", "Del Date"), prefix=True
    ),
}

MUE_FIELDS = {
    "code": FieldSpec(
        ("HCPCS/CPT Code", "HCPCS", "HCPCS Code", "HCPCS/CPT", "CPT", "Code")
    ),
    "max_units": FieldSpec(
        (
            "Practitioner Services MUE Values",
            "Outpatient Hospital Services MUE Values",
            "DME Supplier Services MUE Values",
            "Practitioner Services MUE",
            "Outpatient Hospital Services MUE",
            "DME Supplier Services MUE",
            "MUE Values",
            "MUE Value",
            "MUE",
        )
    ),
    "effective_date": FieldSpec(("Effective Date", "EffectiveDate", "EffDt")),
}

AOC_FIELDS = {
    "addon_code": FieldSpec(
        ("Add-On_Code", "Add-on Code", "AddOn", "Addon Code", "Add On Code", "AOC")
    ),
    "primary_code": FieldSpec(
        ("Primary_Code", "Primary Code", "Primary", "Primary Procedure Code")
    ),
    "effective_date": FieldSpec(
        ("AOC_Edit_EffDT", "AOC Edit Eff Date", "EffectiveDate", "Effective Date")
    ),
    "deletion_date": FieldSpec(
        ("AOC_Edit_DelDT", "AOC Edit Del Date", "Deletion Date", "DeletionDate"),
        prefix=True,
    ),
}

UNIT_LIMIT_PATTERN = re.compile(r"\+?\d+(?:\.0*)?")


def header_hints(kind: EditKind | str) -> HeaderHints:
    """Collect the header aliases of one edit kind for header detection."""
    fields = {
        EditKind.PTP: PTP_FIELDS,
        EditKind.MUE: MUE_FIELDS,
        EditKind.AOC: AOC_FIELDS,
    }[EditKind(kind)]
    exact = {key for spec in fields.values() for key in spec.keys}
    prefixes = {key for spec in fields.values() if spec.prefix for key in spec.keys}
    return HeaderHints(exact=frozenset(exact), prefixes=frozenset(prefixes))


@dataclass
class TransformationResult:
    """Result from normalizing the row sets of one edit kind."""

    records: list[EditRow] = field(default_factory=list)
    source_rows: int = 0
    dropped_count: int = 0
    duplicate_count: int = 0


def pick(row: dict[str, Any], spec: FieldSpec) -> Any:
    """Return the value of the first alias present with a non-blank value."""
    for key in spec.keys:
        value = row.get(key)
        if value is not None and value != "":
            return value

    if spec.prefix:
        for key in spec.keys:
            for header, value in row.items():
                if header.startswith(key + "_") and value is not None and value != "":
                    return value

    return None


def cell_text(value: Any) -> str | None:
    """Render a cell as trimmed text; integral floats lose their ``.0``."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, datetime):
        return value.date().isoformat()
    text = str(value).strip()
    return text or None


def code_text(value: Any) -> str | None:
    """Render a procedure code cell.

    Numeric cells are zero-padded to five digits so anesthesia codes
    such as ``00100`` survive a workbook that stored them as numbers.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if float(value).is_integer() and 0 <= value < 100000:
            return str(int(value)).zfill(5)
    text = cell_text(value)
    return text.upper() if text else None


def parse_unit_limit(value: Any) -> int | None:
    """Parse a non-negative integer MUE value, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value >= 0 else None

    text = str(value).strip().replace(",", "")
    if not UNIT_LIMIT_PATTERN.fullmatch(text):
        return None
    return int(text.split(".")[0])


def _is_header_echo(value: str, spec: FieldSpec) -> bool:
    return normalize_field_name(value) in spec.keys


class TransformStage:
    """Transform stage for canonical NCCI edit records."""

    def __init__(
        self,
        provider_classifier: FilenameClassifier = provider_type_classifier,
        service_classifier: FilenameClassifier = service_type_classifier,
        as_of: date | None = None,
    ) -> None:
        """Initialize the transform stage.

        Args:
            provider_classifier: Maps PTP source filenames to provider types
            service_classifier: Maps MUE source filenames to service types
            as_of: Rows deleted before this date are dropped (default: today)
        """
        self.provider_classifier = provider_classifier
        self.service_classifier = service_classifier
        self.as_of = as_of

    def transform(
        self,
        kind: EditKind,
        row_sets: Iterable[RowSet],
        archive_name: str | None = None,
    ) -> TransformationResult:
        """Normalize all row sets of one kind into canonical records.

        Args:
            kind: Edit kind the rows belong to
            row_sets: Decoded row sets in archive order
            archive_name: Downloaded archive filename, used for type hints

        Returns:
            TransformationResult with de-duplicated records in source order
        """
        mappers: dict[EditKind, Callable[..., EditRow | None]] = {
            EditKind.PTP: self._map_ptp,
            EditKind.MUE: self._map_mue,
            EditKind.AOC: self._map_aoc,
        }
        kind = EditKind(kind)
        mapper = mappers[kind]
        as_of = self.as_of or date.today()

        result = TransformationResult()
        records: list[EditRow] = []

        for row_set in row_sets:
            hint_names = (row_set.source, archive_name)
            for row in row_set.rows:
                result.source_rows += 1
                if self._is_deleted(row, kind, as_of):
                    result.dropped_count += 1
                    continue
                record = mapper(row, *hint_names)
                if record is None:
                    result.dropped_count += 1
                    continue
                records.append(record)

        unique = list(dict.fromkeys(records))
        result.duplicate_count = len(records) - len(unique)
        result.records = unique

        logger.info(
            f"[{kind.value}] normalized {len(unique)} records from {result.source_rows} rows "
            f"({result.dropped_count} dropped, {result.duplicate_count} duplicates)"
        )
        return result

    @staticmethod
    def _is_deleted(row: dict[str, Any], kind: EditKind, as_of: date) -> bool:
        fields = {EditKind.PTP: PTP_FIELDS, EditKind.AOC: AOC_FIELDS}.get(kind)
        if not fields:
            return False
        deleted = normalize_effective_date(pick(row, fields["deletion_date"]))
        parsed = parse_flexible_date(deleted) if deleted else None
        return parsed is not None and parsed.date() < as_of

    def _map_ptp(
        self, row: dict[str, Any], source: str | None, archive: str | None
    ) -> PTPEditRow | None:
        primary = code_text(pick(row, PTP_FIELDS["primary_code"]))
        secondary = code_text(pick(row, PTP_FIELDS["secondary_code"]))
        if not primary or not secondary:
            return None
        if _is_header_echo(primary, PTP_FIELDS["primary_code"]):
            return None

        return PTPEditRow(
            primary_code=primary,
            secondary_code=secondary,
            modifier_indicator=cell_text(pick(row, PTP_FIELDS["modifier_indicator"])),
            effective_date=normalize_effective_date(pick(row, PTP_FIELDS["effective_date"])),
            provider_type=self.provider_classifier.classify(source, archive),
        )

    def _map_mue(
        self, row: dict[str, Any], source: str | None, archive: str | None
    ) -> MUELimitRow | None:
        code = code_text(pick(row, MUE_FIELDS["code"]))
        limit = parse_unit_limit(pick(row, MUE_FIELDS["max_units"]))
        if not code or limit is None:
            return None

        return MUELimitRow(
            code=code,
            max_units=limit,
            effective_date=normalize_effective_date(pick(row, MUE_FIELDS["effective_date"])),
            service_type=self.service_classifier.classify(source, archive),
        )

    def _map_aoc(
        self, row: dict[str, Any], source: str | None, archive: str | None
    ) -> AOCEditRow | None:
        addon = code_text(pick(row, AOC_FIELDS["addon_code"]))
        primary = code_text(pick(row, AOC_FIELDS["primary_code"]))
        if not addon or not primary:
            return None
        if _is_header_echo(addon, AOC_FIELDS["addon_code"]):
            return None

        return AOCEditRow(
            addon_code=addon,
            primary_code=primary,
            effective_date=normalize_effective_date(pick(row, AOC_FIELDS["effective_date"])),
        )
