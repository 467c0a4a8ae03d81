"""SQLite-backed NCCI rule snapshot.

Each edit kind lives in one table that is replaced wholesale on every
rebuild. Replacement builds a shadow table and renames it into place
inside a single transaction, and the database runs in WAL mode, so a
concurrent reader sees either the complete old snapshot or the complete
new one.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from ..config import DB_PATH
from ..errors import RuleStoreUnavailable
from ..etl.models import AOCEditRow, EditKind, EditRow, MUELimitRow, PTPEditRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableSpec:
    """Physical layout of one edit kind's table."""

    name: str
    columns: tuple[str, ...]
    ddl: str
    indexes: tuple[tuple[str, str], ...]

    @property
    def shadow(self) -> str:
        return f"{self.name}__next"


TABLES: dict[EditKind, TableSpec] = {
    EditKind.PTP: TableSpec(
        name="ptp_edits",
        columns=("column1", "column2", "modifier_indicator", "effective_date", "provider_type"),
        ddl="""
            column1 TEXT NOT NULL,
            column2 TEXT NOT NULL,
            modifier_indicator TEXT,
            effective_date TEXT,
            provider_type TEXT
        """,
        indexes=(("idx_ptp_edits_pair", "column1, column2"),),
    ),
    EditKind.MUE: TableSpec(
        name="mue",
        columns=("hcpcs_cpt", "mue_value", "effective_date", "service_type"),
        ddl="""
            hcpcs_cpt TEXT NOT NULL,
            mue_value INTEGER NOT NULL,
            effective_date TEXT,
            service_type TEXT
        """,
        indexes=(("idx_mue_code", "hcpcs_cpt"),),
    ),
    EditKind.AOC: TableSpec(
        name="aoc",
        columns=("addon_code", "primary_code", "effective_date"),
        ddl="""
            addon_code TEXT NOT NULL,
            primary_code TEXT NOT NULL,
            effective_date TEXT
        """,
        indexes=(("idx_aoc_addon", "addon_code"),),
    ),
}

# Lower rank is more restrictive
INDICATOR_RANK = {"0": 0, "N": 0, "1": 1, "Y": 1}


def indicator_rank(indicator: str | None) -> int:
    return INDICATOR_RANK.get((indicator or "").strip().upper(), 2)


def _row_values(kind: EditKind, row: EditRow) -> tuple[Any, ...]:
    if kind is EditKind.PTP and isinstance(row, PTPEditRow):
        return (
            row.primary_code,
            row.secondary_code,
            row.modifier_indicator,
            row.effective_date,
            row.provider_type,
        )
    if kind is EditKind.MUE and isinstance(row, MUELimitRow):
        return (row.code, row.max_units, row.effective_date, row.service_type)
    if kind is EditKind.AOC and isinstance(row, AOCEditRow):
        return (row.addon_code, row.primary_code, row.effective_date)
    raise TypeError(f"{type(row).__name__} is not a {kind.value} row")


def _placeholders(values: Sequence[Any]) -> str:
    return ", ".join("?" for _ in values)


class RuleStore:
    """Persisted rule snapshot with atomic per-kind replacement.

    Every operation opens its own short-lived connection, so one store
    instance can be shared by concurrent validator calls.
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Initialize the store and make sure the schema exists.

        Args:
            db_path: Path to the SQLite database file (default: NCCI_DB_PATH)

        Raises:
            ValueError: For ":memory:", which would give every connection
                its own empty database
            RuleStoreUnavailable: If the database cannot be opened
        """
        self.db_path = str(db_path or DB_PATH)
        if self.db_path == ":memory:":
            raise ValueError('RuleStore needs a database file, not ":memory:"')
        self._closed = False
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def __enter__(self) -> RuleStore:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Mark the store closed; later operations raise RuleStoreUnavailable."""
        self._closed = True

    def _get_conn(self) -> sqlite3.Connection:
        """Get a database connection in autocommit mode."""
        if self._closed:
            raise RuleStoreUnavailable(f"Rule store {self.db_path} is closed")
        try:
            conn = sqlite3.connect(self.db_path, timeout=30, isolation_level=None)
        except sqlite3.Error as e:
            raise RuleStoreUnavailable(f"Cannot open rule store {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        """Ensure rule tables exist and WAL journaling is on."""
        conn = self._get_conn()
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            for spec in TABLES.values():
                conn.execute(f"CREATE TABLE IF NOT EXISTS {spec.name} ({spec.ddl})")
                for index_name, index_cols in spec.indexes:
                    conn.execute(
                        f"CREATE INDEX IF NOT EXISTS {index_name} ON {spec.name}({index_cols})"
                    )
        except sqlite3.Error as e:
            raise RuleStoreUnavailable(f"Cannot initialize rule store {self.db_path}: {e}") from e
        finally:
            conn.close()

    def replace_kinds(self, rows_by_kind: Mapping[EditKind, Iterable[EditRow]]) -> dict[str, int]:
        """Atomically replace the tables of every given kind.

        All kinds are swapped in one transaction: either every table holds
        its new rows afterwards or none changed.

        Args:
            rows_by_kind: Canonical rows per edit kind

        Returns:
            Inserted row count per kind value

        Raises:
            RuleStoreUnavailable: If the transaction fails (it is rolled back)
        """
        counts: dict[str, int] = {}
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                for kind, rows in rows_by_kind.items():
                    kind = EditKind(kind)
                    counts[kind.value] = self._swap_table(conn, kind, rows)
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
        except sqlite3.Error as e:
            raise RuleStoreUnavailable(f"Snapshot swap failed on {self.db_path}: {e}") from e
        finally:
            conn.close()

        for kind_value, count in counts.items():
            logger.info(f"Replaced {TABLES[EditKind(kind_value)].name} with {count:,} rows")
        return counts

    def replace_kind(self, kind: EditKind, rows: Iterable[EditRow]) -> int:
        """Atomically replace a single kind's table."""
        return self.replace_kinds({kind: rows})[EditKind(kind).value]

    @staticmethod
    def _swap_table(conn: sqlite3.Connection, kind: EditKind, rows: Iterable[EditRow]) -> int:
        spec = TABLES[kind]
        conn.execute(f"DROP TABLE IF EXISTS {spec.shadow}")
        conn.execute(f"CREATE TABLE {spec.shadow} ({spec.ddl})")

        values = [_row_values(kind, row) for row in rows]
        conn.executemany(
            f"INSERT INTO {spec.shadow} ({', '.join(spec.columns)}) "
            f"VALUES ({_placeholders(spec.columns)})",
            values,
        )

        conn.execute(f"DROP TABLE IF EXISTS {spec.name}")
        conn.execute(f"ALTER TABLE {spec.shadow} RENAME TO {spec.name}")
        for index_name, index_cols in spec.indexes:
            conn.execute(f"CREATE INDEX IF NOT EXISTS {index_name} ON {spec.name}({index_cols})")
        return len(values)

    def _query(self, sql: str, params: Sequence[Any]) -> list[sqlite3.Row]:
        conn = self._get_conn()
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise RuleStoreUnavailable(f"Rule store query failed on {self.db_path}: {e}") from e
        finally:
            conn.close()

    def count_rows(self, kind: EditKind) -> int:
        """Return the number of rows in a kind's table."""
        spec = TABLES[EditKind(kind)]
        rows = self._query(f"SELECT COUNT(*) AS n FROM {spec.name}", ())
        return int(rows[0]["n"])

    def counts(self) -> dict[str, int]:
        """Return row counts for every kind."""
        return {kind.value: self.count_rows(kind) for kind in TABLES}

    def lookup_aoc(self, codes: Iterable[str]) -> dict[str, set[str]]:
        """Map each billed add-on code to the union of its primary codes."""
        codes = sorted(set(codes))
        if not codes:
            return {}
        rows = self._query(
            f"SELECT addon_code, primary_code FROM aoc WHERE addon_code IN ({_placeholders(codes)})",
            codes,
        )
        primaries: dict[str, set[str]] = {}
        for row in rows:
            primaries.setdefault(row["addon_code"], set()).add(row["primary_code"])
        return primaries

    def lookup_mue(self, codes: Iterable[str], service_type: str | None) -> dict[str, int]:
        """Return the applicable MUE limit for each billed code.

        Rows scoped to the service type win over unscoped rows; within
        the winning scope the tightest limit applies.
        """
        codes = sorted(set(codes))
        if not codes:
            return {}
        rows = self._query(
            f"""
            SELECT hcpcs_cpt, mue_value, service_type FROM mue
            WHERE hcpcs_cpt IN ({_placeholders(codes)})
              AND (service_type = ? OR service_type IS NULL)
            """,
            [*codes, service_type],
        )

        best: dict[str, tuple[int, int]] = {}
        for row in rows:
            scope_rank = 0 if row["service_type"] is not None else 1
            candidate = (scope_rank, int(row["mue_value"]))
            current = best.get(row["hcpcs_cpt"])
            if current is None or candidate < current:
                best[row["hcpcs_cpt"]] = candidate
        return {code: limit for code, (_, limit) in best.items()}

    def lookup_ptp(
        self, codes: Iterable[str], provider_type: str | None
    ) -> dict[tuple[str, str], str | None]:
        """Return the applicable modifier indicator per (primary, secondary) pair.

        Only pairs where both codes were billed are returned. Rows scoped
        to the provider type win over unscoped rows; within the winning
        scope the most restrictive indicator applies. A pair present with
        a blank indicator maps to None.
        """
        codes = sorted(set(codes))
        if len(codes) < 2:
            return {}
        marks = _placeholders(codes)
        rows = self._query(
            f"""
            SELECT column1, column2, modifier_indicator, provider_type FROM ptp_edits
            WHERE column1 IN ({marks}) AND column2 IN ({marks})
              AND (provider_type = ? OR provider_type IS NULL)
            """,
            [*codes, *codes, provider_type],
        )

        best: dict[tuple[str, str], tuple[int, int, str | None]] = {}
        for row in rows:
            pair = (row["column1"], row["column2"])
            if pair[0] == pair[1]:
                continue
            indicator = row["modifier_indicator"]
            scope_rank = 0 if row["provider_type"] is not None else 1
            candidate = (scope_rank, indicator_rank(indicator), indicator)
            current = best.get(pair)
            if current is None or candidate[:2] < current[:2]:
                best[pair] = candidate
        return {pair: indicator for pair, (_, _, indicator) in best.items()}
