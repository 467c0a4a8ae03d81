"""Tests for the SQLite rule snapshot."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from claim_forge.errors import RuleStoreUnavailable
from claim_forge.etl.models import AOCEditRow, EditKind, MUELimitRow, PTPEditRow
from claim_forge.store.rule_store import RuleStore


def _dump(db_path: Path, table: str) -> list[tuple]:
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute(f"SELECT * FROM {table} ORDER BY rowid").fetchall()
    finally:
        conn.close()


class TestRuleStoreSchema:
    """Tests for schema setup and lifecycle."""

    def test_tables_created_empty(self, store: RuleStore):
        """Test that a new store has three empty tables."""
        assert store.counts() == {"ptp": 0, "mue": 0, "aoc": 0}

    def test_wal_mode(self, store: RuleStore, db_path: Path):
        """Test that the database runs in WAL journal mode."""
        conn = sqlite3.connect(db_path)
        try:
            assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
        finally:
            conn.close()

    def test_creates_parent_directory(self, tmp_path: Path):
        """Test that missing parent directories are created."""
        path = tmp_path / "nested" / "dir" / "rules.db"
        RuleStore(path).close()
        assert path.exists()

    def test_closed_store_unavailable(self, db_path: Path):
        """Test that operations on a closed store raise RuleStoreUnavailable."""
        store = RuleStore(db_path)
        store.close()
        assert store.closed
        with pytest.raises(RuleStoreUnavailable):
            store.count_rows(EditKind.PTP)
        with pytest.raises(RuleStoreUnavailable):
            store.lookup_ptp(["A", "B"], "practitioner")

    def test_unreachable_path(self, tmp_path: Path):
        """Test that a file that is not a database raises RuleStoreUnavailable."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(RuleStoreUnavailable):
            RuleStore(blocker)

    def test_in_memory_database_rejected(self):
        """Test that an in-memory path is refused up front."""
        with pytest.raises(ValueError, match="memory"):
            RuleStore(":memory:")


class TestReplaceKinds:
    """Tests for the atomic shadow-table swap."""

    def test_replaces_wholesale(self, store: RuleStore, db_path: Path):
        """Test that old rows never survive a replace."""
        store.replace_kind(EditKind.PTP, [PTPEditRow("A", "B", "0"), PTPEditRow("C", "D", "1")])
        store.replace_kind(EditKind.PTP, [PTPEditRow("E", "F", "1")])
        assert _dump(db_path, "ptp_edits") == [("E", "F", "1", None, None)]

    def test_other_kinds_untouched(self, seeded_store: RuleStore):
        """Test that replacing one kind leaves the others alone."""
        seeded_store.replace_kind(EditKind.AOC, [AOCEditRow("X", "Y")])
        assert seeded_store.counts() == {"ptp": 5, "mue": 5, "aoc": 1}

    def test_multi_kind_counts(self, store: RuleStore):
        """Test the returned per-kind counts."""
        counts = store.replace_kinds(
            {
                EditKind.MUE: [MUELimitRow("A", 1), MUELimitRow("B", 2)],
                EditKind.AOC: [AOCEditRow("X", "Y")],
            }
        )
        assert counts == {"mue": 2, "aoc": 1}

    def test_failed_swap_rolls_back_every_kind(self, seeded_store: RuleStore):
        """Test that a failure mid-transaction leaves all tables as they were."""
        with pytest.raises(TypeError):
            seeded_store.replace_kinds(
                {
                    EditKind.PTP: [PTPEditRow("Z", "Y", "0")],
                    EditKind.MUE: [AOCEditRow("not", "a mue row")],
                }
            )
        assert seeded_store.counts() == {"ptp": 5, "mue": 5, "aoc": 3}
        assert seeded_store.lookup_ptp(["Z", "Y"], "practitioner") == {}

    def test_idempotent_contents(self, store: RuleStore, db_path: Path):
        """Test that replacing with identical rows yields identical table contents."""
        rows = [PTPEditRow("A", "B", "1", "2025-01-01", "practitioner"), PTPEditRow("C", "D", "0")]
        store.replace_kind(EditKind.PTP, rows)
        first = _dump(db_path, "ptp_edits")
        store.replace_kind(EditKind.PTP, rows)
        assert _dump(db_path, "ptp_edits") == first

    def test_indexes_recreated(self, store: RuleStore, db_path: Path):
        """Test that lookup indexes exist after a swap."""
        store.replace_kind(EditKind.PTP, [PTPEditRow("A", "B", "1")])
        conn = sqlite3.connect(db_path)
        try:
            names = {
                row[0]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'")
            }
        finally:
            conn.close()
        assert {"idx_ptp_edits_pair", "idx_mue_code", "idx_aoc_addon"} <= names


class TestLookups:
    """Tests for batched rule lookups."""

    def test_aoc_primaries(self, seeded_store: RuleStore):
        """Test add-on to primary mapping for billed codes only."""
        assert seeded_store.lookup_aoc(["11045", "99213"]) == {"11045": {"11042", "11043"}}
        assert seeded_store.lookup_aoc([]) == {}

    def test_mue_tightest_limit(self, seeded_store: RuleStore):
        """Test that the minimum of unscoped limits applies."""
        assert seeded_store.lookup_mue(["J1100"], "practitioner") == {"J1100": 8}

    def test_mue_scoped_row_preferred(self, seeded_store: RuleStore):
        """Test that a scoped limit beats an unscoped one, even when looser rows exist."""
        assert seeded_store.lookup_mue(["97110"], "practitioner") == {"97110": 4}
        assert seeded_store.lookup_mue(["97110"], "hospital") == {"97110": 6}

    def test_ptp_directional(self, seeded_store: RuleStore):
        """Test that PTP rows are returned under their stored direction."""
        found = seeded_store.lookup_ptp(["99214", "99213"], "practitioner")
        assert found == {("99213", "99214"): "1"}

    def test_ptp_scope_preference(self, seeded_store: RuleStore):
        """Test provider scoping for PTP rows."""
        assert seeded_store.lookup_ptp(["36415", "99211"], "hospital") == {("36415", "99211"): "0"}
        assert seeded_store.lookup_ptp(["36415", "99211"], "practitioner") == {
            ("36415", "99211"): "1"
        }

    def test_ptp_most_restrictive_indicator(self, store: RuleStore):
        """Test that conflicting unscoped rows resolve to the most restrictive indicator."""
        store.replace_kind(
            EditKind.PTP,
            [PTPEditRow("A", "B", "9"), PTPEditRow("A", "B", "1"), PTPEditRow("A", "B", "0")],
        )
        assert store.lookup_ptp(["A", "B"], "practitioner") == {("A", "B"): "0"}

    def test_ptp_blank_indicator(self, store: RuleStore):
        """Test that a pair with no indicator is still reported."""
        store.replace_kind(EditKind.PTP, [PTPEditRow("A", "B", None)])
        assert store.lookup_ptp(["A", "B"], "practitioner") == {("A", "B"): None}

    def test_ptp_single_code(self, seeded_store: RuleStore):
        """Test that fewer than two codes skip the query."""
        assert seeded_store.lookup_ptp(["99213"], "practitioner") == {}
