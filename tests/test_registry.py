"""Tests for e2elint.rules.registry — registration, resolution, metadata."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from e2elint.config import AnalyzerConfig
from e2elint.errors import ConfigurationError, DuplicateRuleId
from e2elint.rules.base import ERROR, WARNING, Rule
from e2elint.rules.registry import RuleRegistry, default_registry, default_rules
from e2elint.syntax.nodes import NodeKind

if TYPE_CHECKING:
    from e2elint.rules.base import Finding, RuleContext
    from e2elint.syntax.nodes import Node


class _NoopRule(Rule):
    rule_id = "noop"
    title = "No-op"
    kinds = frozenset({NodeKind.CALL})

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        return []


class _OtherRule(_NoopRule):
    rule_id = "other"
    severity = WARNING


class TestRegister:
    def test_register_and_contains(self) -> None:
        registry = RuleRegistry()
        registry.register(_NoopRule())
        assert "noop" in registry
        assert len(registry) == 1
        assert registry.get("noop") is not None

    def test_duplicate_id_rejected(self) -> None:
        registry = RuleRegistry()
        registry.register(_NoopRule())
        with pytest.raises(DuplicateRuleId) as excinfo:
            registry.register(_NoopRule())
        assert excinfo.value.rule_id == "noop"

    def test_unknown_kind_rejected(self) -> None:
        class _BadKind(_NoopRule):
            rule_id = "bad-kind"
            kinds = frozenset({"jsx_element"})

        with pytest.raises(ValueError, match="unknown node kinds"):
            RuleRegistry().register(_BadKind())

    def test_empty_id_rejected(self) -> None:
        class _Anonymous(_NoopRule):
            rule_id = ""

        with pytest.raises(ValueError, match="no rule_id"):
            RuleRegistry().register(_Anonymous())

    def test_snapshot_is_registration_order(self) -> None:
        registry = RuleRegistry()
        registry.register(_OtherRule())
        registry.register(_NoopRule())
        assert [rule.rule_id for rule in registry.snapshot()] == ["other", "noop"]
        assert registry.order() == {"other": 0, "noop": 1}


class TestResolve:
    def _registry(self) -> RuleRegistry:
        registry = RuleRegistry()
        registry.register(_NoopRule())
        registry.register(_OtherRule())
        return registry

    def test_default_severities(self) -> None:
        active = self._registry().resolve(AnalyzerConfig())
        assert [(a.rule_id, a.severity, a.order) for a in active] == [
            ("noop", ERROR, 0),
            ("other", WARNING, 1),
        ]

    def test_disabled_rules_filtered(self) -> None:
        config = AnalyzerConfig(disabled_rule_ids=frozenset({"noop"}))
        active = self._registry().resolve(config)
        assert [a.rule_id for a in active] == ["other"]
        assert active[0].order == 1

    def test_severity_override(self) -> None:
        config = AnalyzerConfig(severity_overrides={"other": "error"})
        active = self._registry().resolve(config)
        assert active[1].severity == ERROR

    def test_unknown_disabled_id(self) -> None:
        config = AnalyzerConfig(disabled_rule_ids=frozenset({"nope"}))
        with pytest.raises(ConfigurationError, match="nope"):
            self._registry().resolve(config)

    def test_unknown_override_id(self) -> None:
        config = AnalyzerConfig(severity_overrides={"nope": "warning"})
        with pytest.raises(ConfigurationError, match="Unknown rule ids"):
            self._registry().resolve(config)

    def test_resolution_is_stable(self) -> None:
        registry = default_registry()
        first = [a.rule_id for a in registry.resolve(AnalyzerConfig())]
        second = [a.rule_id for a in registry.resolve(AnalyzerConfig())]
        assert first == second


class TestDefaultCatalog:
    def test_ids_unique(self) -> None:
        ids = [rule.rule_id for rule in default_rules()]
        assert len(ids) == len(set(ids))

    def test_required_rules_present(self) -> None:
        registry = default_registry()
        for rule_id in (
            "fixture-injection-required",
            "describe-block-required",
            "authenticated-context-required",
            "step-wrapping-required",
            "tag-required",
            "unique-test-data-required",
            "relative-import-forbidden",
            "prohibited-wait-call",
            "locator-encapsulation-required",
            "missing-await-on-async-call",
            "ticket-or-feature-prefix-required",
        ):
            assert rule_id in registry

    def test_rule_info(self) -> None:
        config = AnalyzerConfig(severity_overrides={"tag-required": "warning"})
        infos = {info.rule_id: info for info in default_registry().rule_info(config)}
        assert infos["tag-required"].severity == WARNING
        assert infos["describe-block-required"].severity == ERROR
        assert infos["unique-test-data-required"].confidence == "heuristic"
        assert infos["relative-import-forbidden"].description
