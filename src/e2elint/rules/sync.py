"""Synchronization rules: denied wait primitives and un-awaited async calls."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from e2elint.rules import conventions as conv
from e2elint.rules.base import ERROR, Rule
from e2elint.syntax.nodes import NodeKind

if TYPE_CHECKING:
    from collections.abc import Callable

    from e2elint.rules.base import Finding, RuleContext
    from e2elint.syntax.nodes import Node

logger = logging.getLogger(__name__)


def _has_explicit_state(call: Node) -> bool:
    """``waitForLoadState('domcontentloaded')`` names the state it waits for."""
    return bool(call.arguments)


_VISIBILITY_STATES: frozenset[str] = frozenset({"visible", "hidden"})


def _has_visibility_state(call: Node) -> bool:
    """``waitForSelector(sel, { state: 'visible' })`` waits for a visibility state."""
    options = conv.options_argument(call)
    prop = conv.object_property(options, "state") if options is not None else None
    value = conv.property_value(prop) if prop is not None else None
    return (
        value is not None
        and value.kind == NodeKind.STRING
        and value.get("value") in _VISIBILITY_STATES
    )


# Methods that are allowed when called in their explicit form, whether the
# deny-list entry names the method or the full callee path.
_EXEMPTIONS: dict[str, Callable[[Node], bool]] = {
    "waitForLoadState": _has_explicit_state,
    "waitForSelector": _has_visibility_state,
}

_SUGGESTIONS: dict[str, str] = {
    "waitForTimeout": "Wait for a condition instead: await expect(locator).toBeVisible().",
    "waitForLoadState": "Pass the state explicitly, e.g. waitForLoadState('domcontentloaded').",
    "waitForSelector": "Use a locator assertion, or pass { state: 'visible' }.",
}


class ProhibitedWaitCall(Rule):
    """Fixed delays and implicit waits are forbidden (``wait_deny_list``).

    An entry matches either the method name (``waitForTimeout``) or the full
    callee path (``page.waitForTimeout``).  ``waitForLoadState`` is allowed
    with an explicit state and ``waitForSelector`` with a ``state`` option of
    ``visible`` or ``hidden``.
    """

    rule_id = "prohibited-wait-call"
    title = "Avoid fixed and implicit waits"
    severity = ERROR
    kinds = frozenset({NodeKind.CALL})

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        deny_list = ctx.config.wait_deny_list
        name = str(node.get("name", ""))
        full = str(node.get("callee", ""))
        if name not in deny_list and full not in deny_list:
            return []

        exemption = _EXEMPTIONS.get(name)
        if exemption is not None and exemption(node):
            return []
        return [
            ctx.finding(
                node,
                f"Prohibited wait '{full}'.",
                _SUGGESTIONS.get(name, "Wait for an observable condition instead."),
            )
        ]


# Page/locator/context methods that return promises.
ASYNC_METHODS: frozenset[str] = (
    conv.UI_ACTIONS
    | frozenset(
        {
            "waitFor",
            "waitForURL",
            "waitForResponse",
            "waitForRequest",
            "waitForEvent",
            "waitForFunction",
            "waitForLoadState",
            "waitForSelector",
            "waitForTimeout",
            "evaluate",
            "evaluateHandle",
            "screenshot",
            "close",
            "newPage",
            "newContext",
            "route",
            "unroute",
            "setViewportSize",
            "addCookies",
            "clearCookies",
            "storageState",
            "textContent",
            "innerText",
            "inputValue",
            "isVisible",
            "isChecked",
            "scrollIntoViewIfNeeded",
        }
    )
)

# Web-first assertions on expect(...) that retry and return promises.
ASYNC_ASSERTIONS: frozenset[str] = frozenset(
    {
        "toBeAttached",
        "toBeChecked",
        "toBeDisabled",
        "toBeEditable",
        "toBeEmpty",
        "toBeEnabled",
        "toBeFocused",
        "toBeHidden",
        "toBeInViewport",
        "toBeVisible",
        "toContainText",
        "toHaveAccessibleName",
        "toHaveAttribute",
        "toHaveClass",
        "toHaveCount",
        "toHaveCSS",
        "toHaveId",
        "toHaveJSProperty",
        "toHaveScreenshot",
        "toHaveText",
        "toHaveTitle",
        "toHaveURL",
        "toHaveValue",
        "toHaveValues",
        "toPass",
        "toBeOK",
    }
)

# Promise combinators whose result is consumed by the chained call itself.
_CONSUMING_METHODS: frozenset[str] = frozenset({"then", "catch", "finally"})


def _returns_deferred(call: Node, ctx: RuleContext) -> bool:
    if ctx.type_info is not None:
        try:
            answer = ctx.type_info.returns_deferred(ctx.unit, call)
        except Exception:  # noqa: BLE001
            logger.debug("Type info lookup failed for %s; using heuristic", ctx.path, exc_info=True)
            answer = None
        if answer is not None:
            return answer

    name = str(call.get("name", ""))
    path = str(call.get("callee", ""))
    if conv.is_step_call(call):
        return True
    if path.startswith(("expect().", "expect.soft().", "expect.poll().")):
        return name in ASYNC_ASSERTIONS
    if conv.is_action_call(call):
        return True
    if call.get("receiver") is not None and name in ASYNC_METHODS:
        return True
    return name in ctx.unit.async_functions


class MissingAwaitOnAsyncCall(Rule):
    """Promise-returning calls used as statements must be awaited.

    Heuristic: a call is treated as deferred when it is ``test.step``, a
    web-first ``expect(...)`` assertion, a known page/locator/request method
    on some receiver, or a function/method declared ``async`` in the same
    file.  An optional type-information provider overrides the guess when it
    has an answer.  False positives: synchronous helpers sharing a
    well-known method name.  False negatives: async helpers imported from
    other files when no provider is configured.
    """

    rule_id = "missing-await-on-async-call"
    title = "Await asynchronous calls"
    severity = ERROR
    kinds = frozenset({NodeKind.EXPRESSION_STATEMENT})
    confidence = "heuristic"

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        if len(node.children) != 1 or node.children[0].kind != NodeKind.CALL:
            return []
        call = node.children[0]
        if call.get("name") in _CONSUMING_METHODS:
            return []
        if conv.is_group_call(call) or conv.is_test_registration(call):
            return []
        if not _returns_deferred(call, ctx):
            return []
        return [
            ctx.finding(
                node,
                f"Result of '{call.get('callee')}' is a promise that is never awaited.",
                f"await {call.text.splitlines()[0] if call.text else call.get('callee')}",
            )
        ]
