"""Shared test fixtures for e2elint."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from e2elint.config import AnalyzerConfig
from e2elint.engine.evaluator import evaluate
from e2elint.rules.registry import RuleRegistry, default_registry
from e2elint.syntax.adapter import clear_cache, parse_source

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from e2elint.rules.base import Finding, Rule


CLEAN_SPEC = """\
import { test, expect } from '@fixtures/base';

test.describe('Checkout', () => {
  test.use({ storageState: 'auth/user.json' });

  test('CHK-101 user can pay with a saved card', { tag: ['@smoke'] }, async ({ checkoutPage }) => {
    const orderName = `Order ${Date.now()}`;
    await test.step('open checkout', async () => {
      await checkoutPage.open(orderName);
    });
    await test.step('pay', async () => {
      await checkoutPage.payButton.click();
    });
    await expect(checkoutPage.confirmation).toBeVisible();
  });
});
"""


@pytest.fixture(autouse=True)
def _clear_lang_cache() -> None:
    """Clear language cache before each test to avoid cross-test pollution."""
    clear_cache()


@pytest.fixture()
def clean_spec() -> str:
    """A file that satisfies every convention."""
    return CLEAN_SPEC


@pytest.fixture()
def run_rule() -> Callable[..., list[Finding]]:
    """Evaluate a single rule against a source string."""

    def _run(
        rule: Rule,
        source: str,
        *,
        config: AnalyzerConfig | None = None,
        path: str = "tests/example.spec.ts",
    ) -> list[Finding]:
        config = config or AnalyzerConfig()
        registry = RuleRegistry()
        registry.register(rule)
        unit = parse_source(source, path)
        return evaluate(unit, registry.resolve(config), config=config)

    return _run


@pytest.fixture()
def lint_source() -> Callable[..., list[Finding]]:
    """Evaluate the full default catalog against a source string."""

    def _lint(
        source: str,
        *,
        config: AnalyzerConfig | None = None,
        path: str = "tests/example.spec.ts",
    ) -> list[Finding]:
        config = config or AnalyzerConfig()
        unit = parse_source(source, path)
        return evaluate(unit, default_registry().resolve(config), config=config)

    return _lint


@pytest.fixture()
def spec_project(tmp_path: Path) -> Path:
    """Create a small test project with one clean and one violating file."""
    project = tmp_path / "proj"
    (project / "tests").mkdir(parents=True)
    (project / "tests" / "checkout.spec.ts").write_text(CLEAN_SPEC)
    (project / "tests" / "login.spec.ts").write_text(
        "import { test } from '../fixtures/base';\n"
        "\n"
        "test('LOGIN-1 user can log in', { tag: ['@smoke'] }, async ({ page }) => {\n"
        "  await test.step('wait', async () => {\n"
        "    await page.waitForTimeout(500);\n"
        "  });\n"
        "});\n"
    )
    return project
