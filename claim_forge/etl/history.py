"""Rule snapshot build history.

One row per build attempt, kept in the same SQLite database as the
snapshot so `status` and `history` can report what was loaded, from
where, and when.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

from ..config import DB_PATH
from ..errors import RuleStoreUnavailable

logger = logging.getLogger(__name__)


class BuildStatus(str, Enum):
    """Build attempt status values."""

    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class BuildHistory:
    """Tracks rule snapshot build attempts."""

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Initialize the build history.

        Args:
            db_path: Path to the SQLite database shared with the RuleStore
        """
        self.db_path = str(db_path or DB_PATH)
        self._ensure_tables()

    def _get_conn(self) -> sqlite3.Connection:
        """Get a database connection."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=30)
        except sqlite3.Error as e:
            raise RuleStoreUnavailable(f"Cannot open build history {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        """Ensure the build history table exists."""
        conn = self._get_conn()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS rule_build_history (
                    id TEXT PRIMARY KEY,
                    kinds TEXT NOT NULL,
                    started_at TEXT NOT NULL,
                    completed_at TEXT,
                    status TEXT DEFAULT 'running',
                    row_counts TEXT,
                    sources TEXT,
                    error_message TEXT
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_rule_build_started
                ON rule_build_history(started_at)
            """)
            conn.commit()
        finally:
            conn.close()

    def start_build(self, kinds: Iterable[str]) -> str:
        """Record the start of a build.

        Args:
            kinds: Edit kind values the build covers

        Returns:
            Build ID
        """
        build_id = str(uuid.uuid4())
        started_at = datetime.now(timezone.utc).isoformat()
        kinds = [str(getattr(k, "value", k)) for k in kinds]

        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO rule_build_history (id, kinds, started_at, status)
                VALUES (?, ?, ?, ?)
                """,
                (build_id, ",".join(kinds), started_at, BuildStatus.RUNNING.value),
            )
            conn.commit()
            logger.info(f"Started rule build {build_id} for {', '.join(kinds)}")
            return build_id
        finally:
            conn.close()

    def complete_build(
        self,
        build_id: str,
        row_counts: dict[str, int],
        sources: dict[str, str],
    ) -> None:
        """Mark a build successful.

        Args:
            build_id: The build ID
            row_counts: Loaded rows per kind
            sources: Source URL per kind
        """
        completed_at = datetime.now(timezone.utc).isoformat()

        conn = self._get_conn()
        try:
            conn.execute(
                """
                UPDATE rule_build_history
                SET status = ?, completed_at = ?, row_counts = ?, sources = ?
                WHERE id = ?
                """,
                (
                    BuildStatus.SUCCESS.value,
                    completed_at,
                    json.dumps(row_counts),
                    json.dumps(sources),
                    build_id,
                ),
            )
            conn.commit()
            logger.info(f"Completed rule build {build_id}: {row_counts}")
        finally:
            conn.close()

    def fail_build(self, build_id: str, error_message: str) -> None:
        """Mark a build failed.

        Args:
            build_id: The build ID
            error_message: The error message
        """
        completed_at = datetime.now(timezone.utc).isoformat()

        conn = self._get_conn()
        try:
            conn.execute(
                """
                UPDATE rule_build_history
                SET status = ?, completed_at = ?, error_message = ?
                WHERE id = ?
                """,
                (BuildStatus.FAILED.value, completed_at, error_message, build_id),
            )
            conn.commit()
            logger.error(f"Rule build {build_id} failed: {error_message}")
        finally:
            conn.close()

    @staticmethod
    def _decode(row: sqlite3.Row) -> dict[str, Any]:
        entry = dict(row)
        entry["kinds"] = [k for k in (entry.get("kinds") or "").split(",") if k]
        for key in ("row_counts", "sources"):
            entry[key] = json.loads(entry[key]) if entry.get(key) else {}
        return entry

    def get_last_build(self, status: BuildStatus | None = None) -> dict[str, Any] | None:
        """Get the most recent build, optionally filtered by status.

        Returns:
            Build history dict or None
        """
        query = "SELECT * FROM rule_build_history"
        params: list[Any] = []
        if status:
            query += " WHERE status = ?"
            params.append(BuildStatus(status).value)
        query += " ORDER BY started_at DESC LIMIT 1"

        conn = self._get_conn()
        try:
            row = conn.execute(query, params).fetchone()
            return self._decode(row) if row else None
        finally:
            conn.close()

    def get_history(self, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        """Get build history, newest first.

        Args:
            limit: Maximum results
            offset: Pagination offset

        Returns:
            List of build history dicts
        """
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM rule_build_history ORDER BY started_at DESC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
            return [self._decode(row) for row in rows]
        finally:
            conn.close()

    def should_rebuild(self, min_interval_hours: float = 24) -> bool:
        """Check whether the last successful build is older than the interval.

        Args:
            min_interval_hours: Minimum hours between builds

        Returns:
            True if a build should run
        """
        last = self.get_last_build(BuildStatus.SUCCESS)
        if not last or not last.get("completed_at"):
            return True

        try:
            completed = datetime.fromisoformat(last["completed_at"].replace("Z", "+00:00"))
            return datetime.now(timezone.utc) - completed > timedelta(hours=min_interval_hours)
        except (ValueError, TypeError):
            return True
