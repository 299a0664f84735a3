"""Tests for locator-encapsulation-required and the selector heuristic."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from e2elint.rules.conventions import looks_like_selector
from e2elint.rules.locators import LocatorEncapsulationRequired

if TYPE_CHECKING:
    from collections.abc import Callable

    from e2elint.rules.base import Finding

    RunRule = Callable[..., list[Finding]]


def _in_test(body: str) -> str:
    return f"test('PROJ-1 locators', async ({{ page }}) => {{\n{body}}});\n"


class TestLooksLikeSelector:
    @pytest.mark.parametrize(
        "value",
        [
            "#submit",
            ".btn-primary",
            "[data-test=save]",
            "//div[@id='x']",
            "css=.row",
            "div > span",
            "button:nth-child(2)",
            "input[name=email]",
            ".row > td",
            ".item:hover",
            ".list .entry",
        ],
    )
    def test_selectors(self, value: str) -> None:
        assert looks_like_selector(value) is True

    @pytest.mark.parametrize(
        "value",
        [
            "Save",
            "user@example.com",
            "/projects",
            ".5",
            "a.b",
            "",
            "h1",
            ".env",
            ".json",
            ".env.local",
        ],
    )
    def test_not_selectors(self, value: str) -> None:
        assert looks_like_selector(value) is False


class TestInTestBody:
    def test_locator_in_test(self, run_rule: RunRule) -> None:
        findings = run_rule(
            LocatorEncapsulationRequired(), _in_test("  await page.locator('#submit').click();\n")
        )
        assert len(findings) == 1
        assert findings[0].message == "Locator 'page.locator' is used directly in a test body."

    def test_chain_reported_once(self, run_rule: RunRule) -> None:
        source = _in_test("  await page.getByRole('row').locator('td').click();\n")
        findings = run_rule(LocatorEncapsulationRequired(), source)
        assert len(findings) == 1
        assert "page.getByRole().locator" in findings[0].message

    def test_raw_selector_string(self, run_rule: RunRule) -> None:
        findings = run_rule(
            LocatorEncapsulationRequired(), _in_test("  await page.click('#submit');\n")
        )
        assert len(findings) == 1
        assert findings[0].message.startswith("Raw selector '#submit'")

    def test_file_name_literal_ok(self, run_rule: RunRule) -> None:
        source = _in_test("  const envFile = '.env';\n  await loadEnv(envFile);\n")
        assert run_rule(LocatorEncapsulationRequired(), source) == []

    def test_page_object_usage_ok(self, run_rule: RunRule) -> None:
        source = (
            "test('PROJ-1 locators', async ({ cartPage }) => {\n"
            "  await cartPage.checkoutButton.click();\n"
            "});\n"
        )
        assert run_rule(LocatorEncapsulationRequired(), source) == []


class TestInPageObjects:
    SOURCE = (
        "class CartPage {\n"
        "  readonly submit = this.page.getByRole('button', { name: 'Save' });\n"
        "  constructor(page) {\n"
        "    this.page = page;\n"
        "    this.total = page.locator('.total');\n"
        "  }\n"
        "  async checkout() {\n"
        "    await this.page.locator('.checkout').click();\n"
        "  }\n"
        "  get title() {\n"
        "    return this.page.locator('h1');\n"
        "  }\n"
        "}\n"
    )

    def test_inline_method_locator_reported(self, run_rule: RunRule) -> None:
        findings = run_rule(LocatorEncapsulationRequired(), self.SOURCE, path="pages/cart.page.ts")
        assert len(findings) == 1
        assert findings[0].span.start_line == 8
        assert "CartPage.checkout()" in findings[0].message

    def test_module_level_ok(self, run_rule: RunRule) -> None:
        source = "export const SAVE = '#save';\n"
        assert run_rule(LocatorEncapsulationRequired(), source) == []
