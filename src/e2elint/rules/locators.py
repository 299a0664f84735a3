"""Locator encapsulation rule: selectors live in page-object fields."""

from __future__ import annotations

from typing import TYPE_CHECKING

from e2elint.rules import conventions as conv
from e2elint.rules.base import ERROR, Rule
from e2elint.syntax.nodes import NodeKind

if TYPE_CHECKING:
    from collections.abc import Sequence

    from e2elint.rules.base import Finding, RuleContext
    from e2elint.syntax.nodes import Node


class LocatorEncapsulationRequired(Rule):
    """Locators are declared once, as page-object class fields.

    Reported: a locator factory call (``locator``, ``getByRole``, ...) or a
    raw selector string literal that appears directly in a test body, or
    inline in a page-object method body.  Field initializers, constructor
    assignments to ``this.<field>`` and getter accessors count as
    declarations.

    Heuristic: raw selectors are recognized by shape (``#id``, ``[attr]``,
    ``//xpath``, ``css=``, hyphenated or qualified ``.class``...).  A bare
    single-word ``.class`` is not treated as a selector, so dotfile names
    like ``'.env'`` pass.  False positives: parameterized locators that
    cannot be fields; strings that merely look like selectors.  False
    negatives: selectors assembled at runtime, bare ``.word`` and compound
    ``.a.b`` class selectors.
    """

    rule_id = "locator-encapsulation-required"
    title = "Encapsulate locators in page objects"
    severity = ERROR
    kinds = frozenset({NodeKind.CALL, NodeKind.STRING})
    confidence = "heuristic"

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        if node.kind == NodeKind.CALL:
            if not conv.is_locator_call(node) or _is_chained_into_locator(ctx.ancestors):
                return []
            what = f"Locator '{node.get('callee')}'"
        else:
            if not conv.looks_like_selector(str(node.get("value", ""))):
                return []
            parent = ctx.parent
            if parent is not None and conv.is_locator_call(parent):
                # Already reported through the enclosing locator call.
                return []
            what = f"Raw selector '{node.get('value')}'"

        if conv.in_test_body(ctx.ancestors):
            return [
                ctx.finding(
                    node,
                    f"{what} is used directly in a test body.",
                    "Declare the locator on a page object and use it through a fixture.",
                )
            ]

        member = conv.enclosing_member(ctx.ancestors)
        if member is None:
            return []
        owner, declared_in = member
        if declared_in.kind == NodeKind.CLASS_FIELD or _is_declaration_site(
            declared_in, ctx.ancestors
        ):
            return []
        return [
            ctx.finding(
                node,
                f"{what} is built inline in {owner.get('name') or 'class'}."
                f"{declared_in.get('name')}().",
                "Declare it as a class field (readonly x = this.page.getByRole(...)).",
            )
        ]


def _is_declaration_site(method: Node, ancestors: Sequence[Node]) -> bool:
    """Constructor ``this.x = ...`` assignments and getters declare locators."""
    if method.get("accessor") == "get":
        return True
    if method.get("name") != "constructor":
        return False
    index = next(i for i, node in enumerate(ancestors) if node is method)
    return any(
        node.kind == NodeKind.ASSIGNMENT and str(node.get("target")).startswith("this.")
        for node in ancestors[index + 1 :]
    )


def _is_chained_into_locator(ancestors: Sequence[Node]) -> bool:
    """``page.getByRole('row').locator('td')``: only the outer call is reported."""
    if len(ancestors) < 2:
        return False
    member, outer = ancestors[-1], ancestors[-2]
    return member.kind == NodeKind.MEMBER and conv.is_locator_call(outer)
