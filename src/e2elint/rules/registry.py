"""Rule registry: catalog, enable/disable, and severity overrides."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from e2elint.config import VALID_SEVERITIES
from e2elint.errors import ConfigurationError, DuplicateRuleId
from e2elint.rules.cleanup import CleanupDecoratorRequired
from e2elint.rules.data import UniqueTestDataRequired
from e2elint.rules.imports import RelativeImportForbidden
from e2elint.rules.locators import LocatorEncapsulationRequired
from e2elint.rules.steps import StepWrappingRequired
from e2elint.rules.structure import (
    AuthenticatedContextRequired,
    DescribeBlockRequired,
    FixtureInjectionRequired,
    FocusedTestForbidden,
)
from e2elint.rules.sync import MissingAwaitOnAsyncCall, ProhibitedWaitCall
from e2elint.rules.tagging import TagRequired, TicketOrFeaturePrefixRequired
from e2elint.syntax.nodes import ALL_KINDS

if TYPE_CHECKING:
    from e2elint.config import AnalyzerConfig
    from e2elint.rules.base import Rule


@dataclass(frozen=True)
class ActiveRule:
    """A rule selected for a run, with its effective severity."""

    rule: Rule
    severity: str
    order: int  # registration order

    @property
    def rule_id(self) -> str:
        return self.rule.rule_id


@dataclass(frozen=True)
class RuleInfo:
    """Rule metadata for listing."""

    rule_id: str
    title: str
    description: str
    severity: str
    confidence: str
    kinds: tuple[str, ...]


class RuleRegistry:
    """Catalog of rules keyed by id, in registration order."""

    def __init__(self) -> None:
        self._rules: dict[str, Rule] = {}

    def register(self, rule: Rule) -> None:
        """Add *rule*.  Raises :class:`DuplicateRuleId` if its id is taken."""
        if not rule.rule_id:
            msg = f"{type(rule).__name__} has no rule_id"
            raise ValueError(msg)
        if rule.rule_id in self._rules:
            raise DuplicateRuleId(rule.rule_id)
        if rule.severity not in VALID_SEVERITIES:
            msg = f"Rule '{rule.rule_id}': invalid default severity '{rule.severity}'"
            raise ValueError(msg)
        unknown_kinds = set(rule.kinds) - ALL_KINDS
        if unknown_kinds:
            msg = f"Rule '{rule.rule_id}': unknown node kinds {sorted(unknown_kinds)}"
            raise ValueError(msg)
        self._rules[rule.rule_id] = rule

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def get(self, rule_id: str) -> Rule | None:
        return self._rules.get(rule_id)

    def snapshot(self) -> tuple[Rule, ...]:
        """Immutable view of all registered rules in registration order."""
        return tuple(self._rules.values())

    def order(self) -> dict[str, int]:
        """Map rule id -> registration index."""
        return {rule_id: index for index, rule_id in enumerate(self._rules)}

    def resolve(self, config: AnalyzerConfig) -> list[ActiveRule]:
        """Return the active rules for *config*, in registration order.

        Raises :class:`ConfigurationError` for unknown rule ids in the
        disabled set or the severity overrides.
        """
        referenced = set(config.disabled_rule_ids) | set(config.severity_overrides)
        unknown = sorted(rule_id for rule_id in referenced if rule_id not in self._rules)
        if unknown:
            msg = f"Unknown rule ids: {', '.join(unknown)}"
            raise ConfigurationError(msg)

        active: list[ActiveRule] = []
        for index, (rule_id, rule) in enumerate(self._rules.items()):
            if rule_id in config.disabled_rule_ids:
                continue
            severity = config.severity_overrides.get(rule_id, rule.severity)
            if severity not in VALID_SEVERITIES:
                msg = f"Rule '{rule_id}': invalid severity override '{severity}'"
                raise ConfigurationError(msg)
            active.append(ActiveRule(rule=rule, severity=severity, order=index))
        return active

    def rule_info(self, config: AnalyzerConfig | None = None) -> list[RuleInfo]:
        """Return metadata for every registered rule (effective severity if *config*)."""
        overrides = config.severity_overrides if config is not None else {}
        return [
            RuleInfo(
                rule_id=rule.rule_id,
                title=rule.title,
                description=rule.description,
                severity=overrides.get(rule.rule_id, rule.severity),
                confidence=rule.confidence,
                kinds=tuple(sorted(rule.kinds)),
            )
            for rule in self._rules.values()
        ]


def default_rules() -> list[Rule]:
    """Return the full convention catalog in its canonical order."""
    return [
        FixtureInjectionRequired(),
        DescribeBlockRequired(),
        AuthenticatedContextRequired(),
        StepWrappingRequired(),
        TagRequired(),
        UniqueTestDataRequired(),
        RelativeImportForbidden(),
        ProhibitedWaitCall(),
        LocatorEncapsulationRequired(),
        MissingAwaitOnAsyncCall(),
        TicketOrFeaturePrefixRequired(),
        CleanupDecoratorRequired(),
        FocusedTestForbidden(),
    ]


def default_registry() -> RuleRegistry:
    """Build a registry holding :func:`default_rules`."""
    registry = RuleRegistry()
    for rule in default_rules():
        registry.register(rule)
    return registry
