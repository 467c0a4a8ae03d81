"""Readiness gate and rebuild trigger for the rule snapshot.

The engine never schedules itself; callers decide when to rebuild and
this gate makes concurrent triggers safe.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable

from .errors import RuleStoreUnavailable
from .etl.history import BuildHistory
from .etl.models import EditKind
from .etl.pipeline import BuildResult, RuleSnapshotBuilder
from .store.rule_store import RuleStore

logger = logging.getLogger(__name__)


class VersionGate:
    """Tracks whether a usable snapshot exists and serializes rebuilds."""

    def __init__(
        self,
        store: RuleStore,
        builder_factory: Callable[[RuleStore], RuleSnapshotBuilder] | None = None,
        history: BuildHistory | None = None,
    ) -> None:
        """Initialize the gate.

        Args:
            store: Rule store to check and rebuild
            builder_factory: Creates a builder for a rebuild (default: RuleSnapshotBuilder)
            history: Build history (default: shares the store's database)
        """
        self.store = store
        self.builder_factory = builder_factory or RuleSnapshotBuilder
        self.history = history or BuildHistory(store.db_path)
        self._lock = threading.Lock()

    def is_ready(self) -> bool:
        """True when the snapshot holds at least one PTP row."""
        try:
            return self.store.count_rows(EditKind.PTP) > 0
        except RuleStoreUnavailable as e:
            logger.warning(f"Rule store not ready: {e}")
            return False

    def require_ready(self) -> None:
        """Raise RuleStoreUnavailable unless a snapshot has been built."""
        if not self.is_ready():
            raise RuleStoreUnavailable(
                f"No NCCI rule snapshot in {self.store.db_path}; run a build first"
            )

    def rebuild(
        self,
        force: bool = False,
        kinds: Iterable[str | EditKind] | str | None = None,
        max_age_hours: float | None = None,
    ) -> BuildResult | None:
        """Rebuild the snapshot; one rebuild runs at a time.

        Args:
            force: Rebuild even when a current snapshot already exists
            kinds: Kinds to rebuild (default: all)
            max_age_hours: Also rebuild a ready snapshot whose last
                successful build is older than this

        Returns:
            BuildResult, or None when not forced and the snapshot is current
        """
        with self._lock:
            if not force and self.is_ready():
                if max_age_hours is None:
                    logger.info("Rule snapshot already built; skipping rebuild")
                    return None
                if not self.history.should_rebuild(max_age_hours):
                    logger.info(
                        f"Rule snapshot built within the last {max_age_hours}h; skipping rebuild"
                    )
                    return None
                logger.info(f"Rule snapshot older than {max_age_hours}h; rebuilding")

            builder = self.builder_factory(self.store)
            try:
                return builder.build(kinds)
            finally:
                builder.close()

    def ensure_ready(self, max_age_hours: float | None = None) -> BuildResult | None:
        """Build the snapshot if none exists yet, or if it has gone stale."""
        return self.rebuild(force=False, max_age_hours=max_age_hours)

    def last_build(self) -> dict[str, Any] | None:
        """Latest build history entry, if any."""
        return self.history.get_last_build()
