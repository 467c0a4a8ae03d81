"""Rule registry for the ordered validation checks."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from .models import Finding, RuleContext

RuleCallable = Callable[[RuleContext], list[Finding]]


class RuleRegistry:
    """Ordered set of rules; evaluation follows registration order."""

    def __init__(self) -> None:
        self._rules: list[RuleCallable] = []

    def register(self, rule: RuleCallable) -> RuleCallable:
        if rule not in self._rules:
            self._rules.append(rule)
        return rule

    def extend(self, rules: Iterable[RuleCallable]) -> None:
        for rule in rules:
            self.register(rule)

    def active_rules(self) -> tuple[RuleCallable, ...]:
        return tuple(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


default_registry = RuleRegistry()
