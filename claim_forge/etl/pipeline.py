"""Rule snapshot build orchestrator.

Coordinates locating, fetching, extracting and normalizing each NCCI
edit kind, then swaps every prepared kind into the rule store at once.
Nothing is replaced unless every requested kind was prepared.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from .. import config
from ..connectors.http_client import HttpClient
from ..errors import EmptyRuleSet
from ..store.rule_store import RuleStore
from .history import BuildHistory, BuildStatus
from .models import EditKind, PreparedKind
from .scoring import EffectiveDateScorer, score_effective_date
from .stages.extract import ExtractStage
from .stages.fetch import FetchStage
from .stages.load import LoadStage
from .stages.locate import LocateStage
from .stages.transform import TransformStage, header_hints

logger = logging.getLogger(__name__)

ALL_KINDS: tuple[EditKind, ...] = (EditKind.PTP, EditKind.MUE, EditKind.AOC)


@dataclass
class KindBuildResult:
    """Per-kind outcome of a successful build."""

    kind: EditKind
    source_url: str
    local_path: str
    row_count: int
    skipped_entries: list[str] = field(default_factory=list)


@dataclass
class BuildResult:
    """Result from a rule snapshot build."""

    build_id: str
    started_at: str
    completed_at: str | None = None
    status: BuildStatus = BuildStatus.RUNNING
    kinds: dict[str, KindBuildResult] = field(default_factory=dict)
    error_message: str | None = None

    @property
    def row_counts(self) -> dict[str, int]:
        return {k: r.row_count for k, r in self.kinds.items()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "build_id": self.build_id,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "status": self.status.value,
            "error_message": self.error_message,
            "kinds": {
                k: {
                    "source_url": r.source_url,
                    "local_path": r.local_path,
                    "row_count": r.row_count,
                    "skipped_entries": list(r.skipped_entries),
                }
                for k, r in self.kinds.items()
            },
        }


def parse_kinds(kinds: Iterable[str | EditKind] | str | None) -> tuple[EditKind, ...]:
    """Parse kind values (or a comma-separated string) into EditKinds.

    Raises:
        ValueError: On an unknown kind value
    """
    if kinds is None:
        return ALL_KINDS
    if isinstance(kinds, str):
        kinds = [k for k in kinds.split(",") if k.strip()]
    parsed = [EditKind(str(getattr(k, "value", k)).strip().lower()) for k in kinds]
    return tuple(dict.fromkeys(parsed))


class RuleSnapshotBuilder:
    """Builds the NCCI rule snapshot from the CMS landing pages.

    Example:
        with RuleSnapshotBuilder(RuleStore()) as builder:
            result = builder.build()
            print(result.row_counts)
    """

    def __init__(
        self,
        store: RuleStore,
        client: HttpClient | None = None,
        download_dir: str | Path | None = None,
        source_pages: Mapping[str, str] | None = None,
        scorer: EffectiveDateScorer = score_effective_date,
        transform: TransformStage | None = None,
        history: BuildHistory | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            store: Rule store receiving the snapshot
            client: HTTP client (default: a new HttpClient owned by the builder)
            download_dir: Where distributions are saved (default: NCCI_DOWNLOAD_DIR)
            source_pages: Landing page URL per kind value (default: CMS pages)
            scorer: Effective-date scoring function for candidate ranking
            transform: Normalizer (default: TransformStage())
            history: Build history (default: shares the store's database)
        """
        self.store = store
        self._owns_client = client is None
        self.client = client or HttpClient()
        self.source_pages = dict(source_pages or config.CMS_PAGES)
        self.history = history or BuildHistory(store.db_path)

        self._locate_stage = LocateStage(self.client, scorer)
        self._fetch_stage = FetchStage(self.client, download_dir or config.DOWNLOAD_DIR)
        self._extract_stage = ExtractStage()
        self._transform_stage = transform or TransformStage()
        self._load_stage = LoadStage(store)

    def __enter__(self) -> RuleSnapshotBuilder:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def prepare(self, kind: EditKind) -> PreparedKind:
        """Locate, download and parse one kind without touching the store.

        Raises:
            SourceNotFound: No qualifying download link on the landing page
            DownloadFailed: The page or distribution could not be fetched
            EmptyRuleSet: The distribution yielded zero canonical rows
        """
        kind = EditKind(kind)
        page_url = self.source_pages[kind.value]
        logger.info(f"[{kind.value}] locating latest distribution on {page_url}")

        candidate = self._locate_stage.locate(page_url, kind)
        archive_path = self._fetch_stage.fetch(candidate, kind)
        extraction = self._extract_stage.extract(archive_path, header_hints(kind))
        transformed = self._transform_stage.transform(
            kind, extraction.row_sets, archive_name=archive_path.name
        )

        if not transformed.records:
            raise EmptyRuleSet(
                f"{archive_path.name} produced no {kind.value} rows "
                f"({extraction.total_rows} raw rows, "
                f"{len(extraction.skipped_entries)} skipped entries)",
                kind=kind.value,
            )

        return PreparedKind(
            kind=kind,
            candidate=candidate,
            archive_path=archive_path,
            rows=transformed.records,
            skipped_entries=extraction.skipped_entries,
        )

    def build(self, kinds: Iterable[str | EditKind] | str | None = None) -> BuildResult:
        """Rebuild the snapshot for the given kinds (default: all).

        Every kind is prepared before any table is replaced; the swap is
        a single transaction. Failures are recorded in build history and
        re-raised, leaving the previous snapshot untouched.

        Returns:
            BuildResult for the completed build
        """
        selected = parse_kinds(kinds)
        build_id = self.history.start_build(k.value for k in selected)
        result = BuildResult(
            build_id=build_id,
            started_at=datetime.now(timezone.utc).isoformat(),
        )

        try:
            prepared = [self.prepare(kind) for kind in selected]
            loaded = self._load_stage.load(prepared)
        except Exception as e:
            result.status = BuildStatus.FAILED
            result.error_message = str(e)
            result.completed_at = datetime.now(timezone.utc).isoformat()
            self.history.fail_build(build_id, f"{type(e).__name__}: {e}")
            raise

        for item in prepared:
            result.kinds[item.kind.value] = KindBuildResult(
                kind=item.kind,
                source_url=item.candidate.href,
                local_path=str(item.archive_path),
                row_count=loaded.loaded_counts[item.kind.value],
                skipped_entries=list(item.skipped_entries),
            )

        result.status = BuildStatus.SUCCESS
        result.completed_at = datetime.now(timezone.utc).isoformat()
        self.history.complete_build(
            build_id,
            row_counts=result.row_counts,
            sources={k: r.source_url for k, r in result.kinds.items()},
        )
        return result


def build_latest(
    db_path: str | Path | None = None,
    kinds: Iterable[str | EditKind] | str | None = None,
    **builder_kwargs: Any,
) -> BuildResult:
    """Build the snapshot into the database at db_path using default sources."""
    with RuleStore(db_path) as store, RuleSnapshotBuilder(store, **builder_kwargs) as builder:
        return builder.build(kinds)
