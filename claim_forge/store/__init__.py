"""Persisted NCCI rule snapshot."""

from .rule_store import TABLES, RuleStore

__all__ = ["RuleStore", "TABLES"]
