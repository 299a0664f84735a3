"""Tests for prohibited-wait-call and missing-await-on-async-call."""

from __future__ import annotations

from typing import TYPE_CHECKING

from e2elint.config import AnalyzerConfig
from e2elint.rules.sync import MissingAwaitOnAsyncCall, ProhibitedWaitCall
from e2elint.syntax.nodes import NodeKind

if TYPE_CHECKING:
    from collections.abc import Callable

    from e2elint.rules.base import Finding
    from e2elint.syntax.nodes import Node, SourceUnit

    RunRule = Callable[..., list[Finding]]


def _in_test(body: str) -> str:
    return f"test('PROJ-1 sync', async ({{ page }}) => {{\n{body}}});\n"


class TestProhibitedWaitCall:
    def test_fixed_delay_reported(self, run_rule: RunRule) -> None:
        findings = run_rule(ProhibitedWaitCall(), _in_test("  await page.waitForTimeout(1000);\n"))
        assert len(findings) == 1
        assert findings[0].span.start_line == 2
        assert findings[0].message == "Prohibited wait 'page.waitForTimeout'."

    def test_removed_call_clean(self, run_rule: RunRule) -> None:
        source = _in_test("  await expect(page.getByText('Saved')).toBeVisible();\n")
        assert run_rule(ProhibitedWaitCall(), source) == []

    def test_load_state_with_explicit_state(self, run_rule: RunRule) -> None:
        ok = _in_test("  await page.waitForLoadState('domcontentloaded');\n")
        bad = _in_test("  await page.waitForLoadState();\n")
        assert run_rule(ProhibitedWaitCall(), ok) == []
        assert len(run_rule(ProhibitedWaitCall(), bad)) == 1

    def test_wait_for_selector_with_state(self, run_rule: RunRule) -> None:
        ok = _in_test("  await page.waitForSelector('#done', { state: 'visible' });\n")
        bad = _in_test("  await page.waitForSelector('#done');\n")
        assert run_rule(ProhibitedWaitCall(), ok) == []
        assert len(run_rule(ProhibitedWaitCall(), bad)) == 1

    def test_wait_for_selector_needs_visibility_state(self, run_rule: RunRule) -> None:
        attached = _in_test("  await page.waitForSelector('#done', { state: 'attached' });\n")
        hidden = _in_test("  await page.waitForSelector('#spinner', { state: 'hidden' });\n")
        assert len(run_rule(ProhibitedWaitCall(), attached)) == 1
        assert run_rule(ProhibitedWaitCall(), hidden) == []

    def test_full_path_entry_keeps_exemption(self, run_rule: RunRule) -> None:
        config = AnalyzerConfig(wait_deny_list=frozenset({"page.waitForLoadState"}))
        ok = _in_test("  await page.waitForLoadState('networkidle');\n")
        bad = _in_test("  await page.waitForLoadState();\n")
        assert run_rule(ProhibitedWaitCall(), ok, config=config) == []
        findings = run_rule(ProhibitedWaitCall(), bad, config=config)
        assert len(findings) == 1
        assert findings[0].suggestion is not None
        assert "explicitly" in findings[0].suggestion

    def test_custom_deny_list(self, run_rule: RunRule) -> None:
        config = AnalyzerConfig(wait_deny_list=frozenset({"page.waitForNavigation"}))
        source = _in_test(
            "  await page.waitForNavigation();\n  await page.waitForTimeout(10);\n"
        )
        findings = run_rule(ProhibitedWaitCall(), source, config=config)
        assert [f.span.start_line for f in findings] == [2]


class TestMissingAwaitOnAsyncCall:
    def test_unawaited_action(self, run_rule: RunRule) -> None:
        findings = run_rule(MissingAwaitOnAsyncCall(), _in_test("  page.click('#save');\n"))
        assert len(findings) == 1
        assert findings[0].span.start_line == 2
        assert findings[0].suggestion == "await page.click('#save')"

    def test_awaited_action_ok(self, run_rule: RunRule) -> None:
        source = _in_test("  await page.click('#save');\n")
        assert run_rule(MissingAwaitOnAsyncCall(), source) == []

    def test_unawaited_web_assertion(self, run_rule: RunRule) -> None:
        source = _in_test("  expect(page.getByText('Saved')).toBeVisible();\n")
        assert len(run_rule(MissingAwaitOnAsyncCall(), source)) == 1

    def test_sync_assertion_ok(self, run_rule: RunRule) -> None:
        source = _in_test("  expect(total).toBe(3);\n")
        assert run_rule(MissingAwaitOnAsyncCall(), source) == []

    def test_unawaited_step(self, run_rule: RunRule) -> None:
        source = _in_test("  test.step('open', async () => {});\n")
        assert len(run_rule(MissingAwaitOnAsyncCall(), source)) == 1

    def test_local_async_function(self, run_rule: RunRule) -> None:
        source = "async function seed() {}\n" + _in_test("  seed();\n")
        findings = run_rule(MissingAwaitOnAsyncCall(), source)
        assert [f.span.start_line for f in findings] == [3]

    def test_promise_chain_consumed(self, run_rule: RunRule) -> None:
        source = _in_test("  page.click('#save').catch(() => {});\n")
        assert run_rule(MissingAwaitOnAsyncCall(), source) == []

    def test_registrations_ignored(self, run_rule: RunRule) -> None:
        source = "test.describe('Cart', () => {\n  test('a', async () => {});\n});\n"
        assert run_rule(MissingAwaitOnAsyncCall(), source) == []

    def test_type_info_overrides_heuristic(self, run_rule: RunRule) -> None:
        class _AllSync:
            def returns_deferred(self, unit: SourceUnit, call: Node) -> bool | None:
                assert call.kind == NodeKind.CALL
                return False

        from e2elint.engine.evaluator import evaluate
        from e2elint.rules.registry import RuleRegistry
        from e2elint.syntax.adapter import parse_source

        config = AnalyzerConfig()
        registry = RuleRegistry()
        registry.register(MissingAwaitOnAsyncCall())
        unit = parse_source(_in_test("  page.click('#save');\n"), "a.spec.ts")
        findings = evaluate(
            unit, registry.resolve(config), config=config, type_info=_AllSync()
        )
        assert findings == []
