"""Pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from claim_forge.connectors.http_client import HttpClient
from claim_forge.etl.models import AOCEditRow, EditKind, MUELimitRow, PTPEditRow
from claim_forge.store.rule_store import RuleStore
from helpers import make_transport


@pytest.fixture
def make_client() -> Callable[..., HttpClient]:
    """Factory for HttpClients backed by a MockTransport with no backoff delay."""
    clients: list[HttpClient] = []

    def _make(routes: dict, calls: list[str] | None = None, max_retries: int = 2) -> HttpClient:
        client = HttpClient(
            max_retries=max_retries,
            retry_delay=0,
            transport=make_transport(routes, calls),
        )
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "ncci_rules.db"


@pytest.fixture
def store(db_path: Path) -> RuleStore:
    """Empty rule store in a temporary database."""
    with RuleStore(db_path) as rule_store:
        yield rule_store


@pytest.fixture
def seeded_store(store: RuleStore) -> RuleStore:
    """Rule store with a small snapshot covering every edit kind."""
    store.replace_kinds(
        {
            EditKind.PTP: [
                PTPEditRow("99213", "99214", "1"),
                PTPEditRow("11042", "97597", "0"),
                PTPEditRow("20610", "76942", "9"),
                PTPEditRow("36415", "99211", "0", provider_type="hospital"),
                PTPEditRow("36415", "99211", "1"),
            ],
            EditKind.MUE: [
                MUELimitRow("99213", 1),
                MUELimitRow("97110", 4, service_type="practitioner"),
                MUELimitRow("97110", 6),
                MUELimitRow("J1100", 10),
                MUELimitRow("J1100", 8),
            ],
            EditKind.AOC: [
                AOCEditRow("11045", "11042"),
                AOCEditRow("11045", "11043"),
                AOCEditRow("99292", "99291"),
            ],
        }
    )
    return store
