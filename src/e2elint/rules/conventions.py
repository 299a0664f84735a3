"""Shared recognizers for test-runner idioms (registration, grouping, steps, actions)."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from e2elint.syntax.nodes import NodeKind

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    from e2elint.syntax.nodes import Node

# Test registration callees.  A call only counts when it also carries a
# callback; ``test.skip(condition)`` is an annotation, not a registration.
TEST_CALLEES: frozenset[str] = frozenset(
    {
        "test",
        "test.only",
        "test.skip",
        "test.fixme",
        "test.fail",
        "test.slow",
        "it",
        "it.only",
        "it.skip",
    }
)

GROUP_CALLEES: frozenset[str] = frozenset(
    {
        "test.describe",
        "test.describe.only",
        "test.describe.skip",
        "test.describe.fixme",
        "test.describe.serial",
        "test.describe.serial.only",
        "test.describe.parallel",
        "test.describe.parallel.only",
        "describe",
        "describe.only",
        "describe.skip",
    }
)

STEP_CALLEES: frozenset[str] = frozenset({"test.step"})

USE_CALLEES: frozenset[str] = frozenset({"test.use"})

# UI and API interactions that must be wrapped in a step.
UI_ACTIONS: frozenset[str] = frozenset(
    {
        "click",
        "dblclick",
        "fill",
        "type",
        "pressSequentially",
        "press",
        "check",
        "uncheck",
        "setChecked",
        "selectOption",
        "selectText",
        "hover",
        "tap",
        "focus",
        "blur",
        "clear",
        "dragTo",
        "dragAndDrop",
        "setInputFiles",
        "goto",
        "reload",
        "goBack",
        "goForward",
    }
)

API_RECEIVERS: frozenset[str] = frozenset({"request", "apiContext", "api"})
API_ACTIONS: frozenset[str] = frozenset(
    {"get", "post", "put", "patch", "delete", "head", "fetch"}
)

LOCATOR_FACTORIES: frozenset[str] = frozenset(
    {
        "locator",
        "getByRole",
        "getByText",
        "getByTestId",
        "getByLabel",
        "getByPlaceholder",
        "getByAltText",
        "getByTitle",
        "frameLocator",
        "$",
        "$$",
    }
)

PAGE_OBJECT_SUFFIXES: tuple[str, ...] = (
    "Page",
    "Component",
    "Modal",
    "Dialog",
    "Panel",
    "Form",
    "Widget",
    "Section",
)

_SELECTOR_RE = re.compile(
    r"""^(?:
        (?:css|xpath|text|id|data-testid|internal:[\w-]+)=     # engine-prefixed
      | //                                                    # xpath
      | \#[A-Za-z_][\w-]*                                     # id
      | \.[A-Za-z_]\w*-[\w-]*(?:[\s>.:\[#]|$)                 # hyphenated class
      | \.[A-Za-z_][\w-]*(?:\s*>|\s+[.#\[a-z]|:|\[|\#)        # class with qualifier
      | \[[\w-]+(?:[~|^$*]?=[^\]]*)?\]                        # attribute
      | [a-z][\w-]*(?:\#|\[|:nth|\s*>)                        # tag with qualifier
    )""",
    re.VERBOSE,
)


def callee(node: Node) -> str:
    return str(node.get("callee", "")) if node.kind == NodeKind.CALL else ""


def callback(call: Node) -> Node | None:
    """Return the last function argument of *call*, if any."""
    for arg in reversed(call.arguments):
        if arg.kind == NodeKind.FUNCTION:
            return arg
    return None


def is_test_registration(node: Node) -> bool:
    return callee(node) in TEST_CALLEES and callback(node) is not None


def is_group_call(node: Node) -> bool:
    return callee(node) in GROUP_CALLEES and callback(node) is not None


def is_step_call(node: Node) -> bool:
    return callee(node) in STEP_CALLEES and callback(node) is not None


def is_use_call(node: Node) -> bool:
    return callee(node) in USE_CALLEES


def is_action_call(node: Node) -> bool:
    """Return True for a UI or API interaction on some receiver."""
    if node.kind != NodeKind.CALL or node.get("receiver") is None:
        return False
    name = node.get("name")
    if name in UI_ACTIONS:
        return True
    receiver = str(node.get("receiver")).removeprefix("this.")
    return name in API_ACTIONS and (
        receiver in API_RECEIVERS or str(node.get("callee", "")).startswith("this.request.")
    )


def is_locator_call(node: Node) -> bool:
    return (
        node.kind == NodeKind.CALL
        and node.get("receiver") is not None
        and node.get("name") in LOCATOR_FACTORIES
    )


def looks_like_selector(value: str) -> bool:
    """Heuristic: does this string literal look like a CSS/XPath/engine selector?"""
    return bool(value) and _SELECTOR_RE.match(value.strip()) is not None


def is_page_object_name(name: str | None) -> bool:
    return bool(name) and any(
        name.endswith(suffix) and name != suffix for suffix in PAGE_OBJECT_SUFFIXES
    )


def title_argument(call: Node) -> Node | None:
    args = call.arguments
    if args and args[0].kind in (NodeKind.STRING, NodeKind.TEMPLATE):
        return args[0]
    return None


def options_argument(call: Node) -> Node | None:
    for arg in call.arguments:
        if arg.kind == NodeKind.OBJECT:
            return arg
    return None


def object_property(obj: Node, key: str) -> Node | None:
    for child in obj.children:
        if child.kind == NodeKind.PROPERTY and child.get("key") == key:
            return child
    return None


def property_value(prop: Node) -> Node | None:
    return prop.children[0] if prop.children else None


# ---------------------------------------------------------------------------
# Ancestry queries
# ---------------------------------------------------------------------------


def enclosing_call_body(
    ancestors: Sequence[Node], predicate: Callable[[Node], bool]
) -> tuple[Node, Node] | None:
    """Find the nearest ancestor call matching *predicate* whose callback encloses us.

    Returns ``(call, callback)`` or ``None``.  Being inside the call's title
    or options argument does not count.
    """
    for index in range(len(ancestors) - 1, -1, -1):
        node = ancestors[index]
        if node.kind != NodeKind.CALL or not predicate(node):
            continue
        body = callback(node)
        if body is not None and index + 1 < len(ancestors) and ancestors[index + 1] is body:
            return node, body
    return None


def enclosing_test(ancestors: Sequence[Node]) -> tuple[Node, Node] | None:
    return enclosing_call_body(ancestors, is_test_registration)


def enclosing_step(ancestors: Sequence[Node]) -> tuple[Node, Node] | None:
    return enclosing_call_body(ancestors, is_step_call)


def enclosing_group(ancestors: Sequence[Node]) -> tuple[Node, Node] | None:
    return enclosing_call_body(ancestors, is_group_call)


def in_test_body(ancestors: Sequence[Node]) -> bool:
    return enclosing_test(ancestors) is not None


def enclosing_member(ancestors: Sequence[Node]) -> tuple[Node, Node] | None:
    """Return ``(class, member)`` for the nearest enclosing class member, if any."""
    for index in range(len(ancestors) - 1, 0, -1):
        node = ancestors[index]
        if node.kind in (NodeKind.METHOD, NodeKind.CLASS_FIELD):
            owner = ancestors[index - 1]
            if owner.kind == NodeKind.CLASS:
                return owner, node
    return None


def iter_calls_pruned(root: Node, *, prune: Callable[[Node], bool]) -> Iterator[Node]:
    """Yield call nodes under *root*, not descending into calls matching *prune*.

    The pruned calls themselves are not yielded either.
    """
    stack = list(reversed(root.children))
    while stack:
        node = stack.pop()
        if node.kind == NodeKind.CALL:
            if prune(node):
                continue
            yield node
        stack.extend(reversed(node.children))


def body_statements(function: Node) -> list[Node]:
    """Top-level statements of a function body (empty for expression bodies)."""
    for child in function.children:
        if child.kind == NodeKind.BLOCK:
            return list(child.children)
    return []
