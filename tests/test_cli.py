"""Tests for the command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from claim_forge import cli
from claim_forge import version_gate
from claim_forge.etl.history import BuildHistory
from claim_forge.etl.pipeline import RuleSnapshotBuilder
from claim_forge.store.rule_store import RuleStore
from helpers import MUE_PAGE, SOURCE_PAGES, ncci_site


@pytest.fixture
def fake_site(monkeypatch, make_client, tmp_path: Path):
    """Point CLI builds at the fake CMS site."""
    routes = ncci_site()

    def factory(store: RuleStore) -> RuleSnapshotBuilder:
        return RuleSnapshotBuilder(
            store,
            client=make_client(routes),
            download_dir=tmp_path / "downloads",
            source_pages=SOURCE_PAGES,
        )

    monkeypatch.setattr(version_gate, "RuleSnapshotBuilder", factory)
    return routes


def _write_claim(tmp_path: Path, claim: dict) -> str:
    path = tmp_path / "claim.json"
    path.write_text(json.dumps(claim), encoding="utf-8")
    return str(path)


class TestBuildCommand:
    """Tests for `claim-forge build`."""

    def test_build_all(self, fake_site, db_path: Path, capsys):
        """Test a successful build prints per-kind counts."""
        assert cli.main(["--db", str(db_path), "build"]) == cli.EXIT_OK
        out = capsys.readouterr().out
        assert "success" in out
        assert "ptp: 2 rows" in out
        assert "aoc: 2 rows" in out

    def test_build_failure(self, fake_site, db_path: Path, capsys):
        """Test a failed build exits non-zero with the error on stderr."""
        fake_site[MUE_PAGE] = 404
        assert cli.main(["--db", str(db_path), "build", "--kinds", "mue"]) == cli.EXIT_FAILED
        assert "Build failed" in capsys.readouterr().err

    def test_max_age_skips_current_snapshot(self, fake_site, db_path: Path, capsys):
        """Test that --max-age leaves a freshly built snapshot in place."""
        cli.main(["--db", str(db_path), "build"])
        capsys.readouterr()

        assert cli.main(["--db", str(db_path), "build", "--max-age", "24"]) == cli.EXIT_OK
        assert "Snapshot is current" in capsys.readouterr().out
        assert len(BuildHistory(db_path).get_history()) == 1

    def test_max_age_builds_empty_snapshot(self, fake_site, db_path: Path, capsys):
        """Test that --max-age still builds when nothing exists yet."""
        assert cli.main(["--db", str(db_path), "build", "--max-age", "24"]) == cli.EXIT_OK
        assert "ptp: 2 rows" in capsys.readouterr().out

    def test_invalid_kinds(self, db_path: Path, capsys):
        """Test an unknown kind is rejected before any download."""
        assert cli.main(["--db", str(db_path), "build", "--kinds", "lcd"]) == cli.EXIT_FAILED
        assert "Invalid --kinds" in capsys.readouterr().err


class TestStatusCommand:
    """Tests for `claim-forge status`."""

    def test_not_ready(self, db_path: Path, capsys):
        """Test status on an empty database."""
        assert cli.main(["--db", str(db_path), "status"]) == cli.EXIT_UNAVAILABLE
        assert "Ready: no" in capsys.readouterr().out

    def test_ready_after_build(self, fake_site, db_path: Path, capsys):
        """Test status lists table counts and the last build."""
        cli.main(["--db", str(db_path), "build"])
        capsys.readouterr()

        assert cli.main(["--db", str(db_path), "status"]) == cli.EXIT_OK
        out = capsys.readouterr().out
        assert "Ready: yes" in out
        assert "ptp_edits: 2 rows" in out
        assert "Last build:" in out


class TestValidateCommand:
    """Tests for `claim-forge validate`."""

    def test_requires_snapshot(self, db_path: Path, tmp_path: Path, capsys):
        """Test that validating before any build is an availability error."""
        claim = _write_claim(tmp_path, {"cpt_codes": ["99213"]})
        assert cli.main(["--db", str(db_path), "validate", claim]) == cli.EXIT_UNAVAILABLE
        assert "run a build first" in capsys.readouterr().err

    def test_valid_claim(self, seeded_store: RuleStore, tmp_path: Path, capsys):
        """Test a clean claim prints the result and exits zero."""
        claim = _write_claim(tmp_path, {"cpt_codes": ["99213"], "icd10_codes": ["M54.5"]})
        assert cli.main(["--db", seeded_store.db_path, "validate", claim]) == cli.EXIT_OK
        output = json.loads(capsys.readouterr().out)
        assert output["is_valid"] is True
        assert output["risk_score"] == 10

    def test_invalid_claim_issues(self, seeded_store: RuleStore, tmp_path: Path, capsys):
        """Test the flat issue output for a conflicting claim."""
        claim = _write_claim(tmp_path, {"cpt_codes": ["11042", "97597"]})
        code = cli.main(["--db", seeded_store.db_path, "validate", claim, "--issues"])
        assert code == cli.EXIT_FAILED
        issues = json.loads(capsys.readouterr().out)
        assert [i["code"] for i in issues] == ["bundling_conflict"]

    def test_unreadable_claim(self, seeded_store: RuleStore, tmp_path: Path, capsys):
        """Test a missing or malformed claim file."""
        missing = str(tmp_path / "nope.json")
        assert cli.main(["--db", seeded_store.db_path, "validate", missing]) == cli.EXIT_FAILED

        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        assert cli.main(["--db", seeded_store.db_path, "validate", str(bad)]) == cli.EXIT_FAILED
        assert "Cannot read claim file" in capsys.readouterr().err

    @pytest.mark.parametrize(
        "claim", [{"units": {"99213": "many"}}, {"cpt_codes": 5}, {"units": [1, 2]}]
    )
    def test_malformed_claim(self, seeded_store: RuleStore, tmp_path: Path, capsys, claim):
        """Test a claim with the wrong shape."""
        path = _write_claim(tmp_path, claim)
        assert cli.main(["--db", seeded_store.db_path, "validate", path]) == cli.EXIT_FAILED
        assert "Malformed claim" in capsys.readouterr().err


class TestHistoryCommand:
    """Tests for `claim-forge history`."""

    def test_empty(self, db_path: Path, capsys):
        """Test history with no builds."""
        assert cli.main(["--db", str(db_path), "history"]) == cli.EXIT_OK
        assert "No builds recorded" in capsys.readouterr().out

    def test_lists_builds(self, fake_site, db_path: Path, capsys):
        """Test that success and failure entries are listed."""
        cli.main(["--db", str(db_path), "build", "--kinds", "ptp"])
        fake_site[MUE_PAGE] = 404
        cli.main(["--db", str(db_path), "build", "--kinds", "mue"])
        capsys.readouterr()

        assert cli.main(["--db", str(db_path), "history", "--limit", "5"]) == cli.EXIT_OK
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 2
        assert "failed" in lines[0] and "DownloadFailed" in lines[0]
        assert "success" in lines[1] and "ptp=2" in lines[1]


class TestParser:
    """Tests for argument parsing."""

    def test_subcommand_required(self):
        """Test that a subcommand is mandatory."""
        with pytest.raises(SystemExit):
            cli.main([])

    def test_verbose_after_subcommand(self):
        """Test that -v works on either side of the build subcommand."""
        parser = cli.build_parser()
        assert parser.parse_args(["build", "-v"]).verbose is True
        assert parser.parse_args(["-v", "build"]).verbose is True
        assert parser.parse_args(["build"]).verbose is False
