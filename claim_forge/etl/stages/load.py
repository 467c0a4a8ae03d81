"""Load stage: swap prepared edit kinds into the rule store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from ...errors import EmptyRuleSet
from ...store.rule_store import RuleStore
from ..models import PreparedKind

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """Result from a load operation."""

    loaded_counts: dict[str, int] = field(default_factory=dict)

    @property
    def total_loaded(self) -> int:
        return sum(self.loaded_counts.values())


class LoadStage:
    """Load stage for replacing rule tables.

    Every prepared kind is checked before the store is touched, then all
    of them are swapped in one transaction.
    """

    def __init__(self, store: RuleStore) -> None:
        self.store = store

    def load(self, prepared: Iterable[PreparedKind]) -> LoadResult:
        """Replace the tables of all prepared kinds.

        Raises:
            EmptyRuleSet: If any prepared kind has zero rows
            RuleStoreUnavailable: If the swap transaction fails
        """
        prepared = list(prepared)
        for item in prepared:
            if not item.rows:
                raise EmptyRuleSet(
                    f"No {item.kind.value} rows parsed from {item.archive_path.name}",
                    kind=item.kind.value,
                )

        counts = self.store.replace_kinds({item.kind: item.rows for item in prepared})
        logger.info(f"Loaded {sum(counts.values()):,} rows across {len(counts)} kinds")
        return LoadResult(loaded_counts=counts)
