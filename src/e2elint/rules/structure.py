"""Test structure rules: grouping, fixture injection, authenticated context, focus."""

from __future__ import annotations

from typing import TYPE_CHECKING

from e2elint.rules import conventions as conv
from e2elint.rules.base import ERROR, WARNING, Rule
from e2elint.syntax.nodes import NodeKind

if TYPE_CHECKING:
    from collections.abc import Iterator

    from e2elint.rules.base import Finding, RuleContext
    from e2elint.syntax.nodes import Node


def _title(call: Node) -> str:
    title = conv.title_argument(call)
    return str(title.get("value")) if title is not None else "<dynamic title>"


class DescribeBlockRequired(Rule):
    """Every test must be registered inside a ``test.describe`` block."""

    rule_id = "describe-block-required"
    title = "Group tests in describe blocks"
    severity = ERROR
    kinds = frozenset({NodeKind.PROGRAM})

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        return [
            ctx.finding(
                test,
                f"Test '{_title(test)}' is registered outside a test.describe block.",
                "Wrap the test in test.describe('<feature>', () => { ... }).",
            )
            for test in _ungrouped_tests(node)
        ]


def _ungrouped_tests(root: Node) -> Iterator[Node]:
    stack: list[Node] = list(reversed(root.children))
    while stack:
        node = stack.pop()
        if conv.is_group_call(node):
            # Everything under a group callback is grouped; nothing to report there.
            continue
        if conv.is_test_registration(node):
            yield node
        stack.extend(reversed(node.children))


class FixtureInjectionRequired(Rule):
    """Page objects must be received as fixtures, not constructed inside tests.

    Heuristic: a ``new X(...)`` whose class name ends in a page-object suffix
    (``Page``, ``Component``, ``Modal``, ...) inside a test callback is
    reported.  False negatives: page objects with other naming, or built by
    factory functions.  False positives: value objects that happen to use one
    of the suffixes.  The finding points at the construction site.
    """

    rule_id = "fixture-injection-required"
    title = "Inject page objects through fixtures"
    severity = ERROR
    kinds = frozenset({NodeKind.CALL})
    confidence = "heuristic"

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        if not conv.is_test_registration(node):
            return []
        body = conv.callback(node)
        if body is None:
            return []
        received = set(body.get("params", ()))
        findings: list[Finding] = []
        for created in body.find_all(NodeKind.NEW):
            class_name = str(created.get("constructor", ""))
            if not conv.is_page_object_name(class_name):
                continue
            fixture = class_name[0].lower() + class_name[1:]
            hint = (
                f"Use the '{fixture}' fixture already passed to the test."
                if fixture in received
                else f"Declare a '{fixture}' fixture and receive it as a test parameter."
            )
            findings.append(
                ctx.finding(
                    created,
                    f"Test '{_title(node)}' constructs {class_name} directly "
                    "instead of receiving it as a fixture.",
                    hint,
                )
            )
        return findings


class AuthenticatedContextRequired(Rule):
    """Groups whose tests use an authenticated fixture must configure the context.

    Heuristic: the group (or an enclosing group, or the file) must call
    ``test.use(...)`` with an options object carrying one of
    ``auth_context_keys`` (``storageState``, ``httpCredentials``).  Authenticated
    fixtures are recognized by name (``auth_fixture_names``).  False
    negatives: auth obtained through custom fixtures with other names.  False
    positives: fixtures that authenticate themselves without ``test.use``.
    """

    rule_id = "authenticated-context-required"
    title = "Configure the authenticated context with test.use"
    severity = WARNING
    kinds = frozenset({NodeKind.CALL})
    confidence = "heuristic"

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        if not conv.is_group_call(node):
            return []
        body = conv.callback(node)
        keys = ctx.config.auth_context_keys
        if body is None or _declares_use(conv.body_statements(body), keys):
            return []
        for ancestor in ctx.ancestors:
            if ancestor.kind == NodeKind.PROGRAM and _declares_use(ancestor.children, keys):
                return []
            if conv.is_group_call(ancestor):
                outer = conv.callback(ancestor)
                if outer is not None and _declares_use(conv.body_statements(outer), keys):
                    return []

        auth_names = ctx.config.auth_fixture_names
        for test in _direct_tests(body):
            callback = conv.callback(test)
            params = set(callback.get("params", ())) if callback is not None else set()
            used = sorted(params & auth_names)
            if used:
                return [
                    ctx.finding(
                        node,
                        f"Group '{_title(node)}' uses authenticated fixture '{used[0]}' "
                        "but never calls test.use() to configure the context.",
                        "Add test.use({ storageState: ... }) at the top of the group.",
                    )
                ]
        return []


def _declares_use(statements: list[Node], context_keys: frozenset[str]) -> bool:
    for statement in statements:
        if statement.kind != NodeKind.EXPRESSION_STATEMENT:
            continue
        for child in statement.children:
            if not conv.is_use_call(child):
                continue
            options = conv.options_argument(child)
            if options is not None and any(
                conv.object_property(options, key) is not None for key in context_keys
            ):
                return True
    return False


def _direct_tests(group_body: Node) -> Iterator[Node]:
    """Tests registered in *group_body*, not descending into nested groups."""
    stack: list[Node] = list(reversed(group_body.children))
    while stack:
        node = stack.pop()
        if conv.is_group_call(node):
            continue
        if conv.is_test_registration(node):
            yield node
            continue
        stack.extend(reversed(node.children))


_FOCUS_ROOTS: frozenset[str] = frozenset({"test", "it", "describe"})


class FocusedTestForbidden(Rule):
    """Reports focused tests and groups (``test.only``, ``describe.only``)."""

    rule_id = "focused-test-forbidden"
    title = "Do not commit focused tests"
    severity = ERROR
    kinds = frozenset({NodeKind.CALL})

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        segments = conv.callee(node).split(".")
        if len(segments) < 2 or segments[-1] != "only" or segments[0] not in _FOCUS_ROOTS:
            return []
        return [
            ctx.finding(
                node,
                f"Focused test '{conv.callee(node)}' restricts the run to this block.",
                "Remove '.only' before committing.",
            )
        ]
