"""Tagging and naming rules for test registrations."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from e2elint.rules import conventions as conv
from e2elint.rules.base import ERROR, WARNING, Rule
from e2elint.syntax.nodes import NodeKind

if TYPE_CHECKING:
    from e2elint.rules.base import Finding, RuleContext
    from e2elint.syntax.nodes import Node

TICKET_RE = re.compile(r"^\[?[A-Z][A-Z0-9]+-\d+\b")


class TagRequired(Rule):
    """Every test declares a non-empty ``tag`` list in its options argument.

    When ``tag_allowlist_pattern`` is configured, each literal tag must fully
    match it.  Tags built from variables are not checked against the pattern.
    """

    rule_id = "tag-required"
    title = "Tag every test"
    severity = ERROR
    kinds = frozenset({NodeKind.CALL})

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        if not conv.is_test_registration(node):
            return []
        title = conv.title_argument(node)
        label = str(title.get("value")) if title is not None else "<dynamic title>"

        options = conv.options_argument(node)
        prop = conv.object_property(options, "tag") if options is not None else None
        if prop is None:
            return [
                ctx.finding(
                    node,
                    f"Test '{label}' has no tag list.",
                    "Pass { tag: ['@smoke'] } as the second argument.",
                )
            ]

        value = conv.property_value(prop)
        if prop.get("shorthand") or value is None:
            # ``{ tag }`` or an expression we cannot see through.
            return []
        if value.kind == NodeKind.ARRAY:
            tags = list(value.children)
        elif value.kind in (NodeKind.STRING, NodeKind.TEMPLATE):
            tags = [value]
        else:
            return []

        if not tags:
            return [
                ctx.finding(
                    prop,
                    f"Test '{label}' has an empty tag list.",
                    "Add at least one tag such as '@smoke' or '@regression'.",
                )
            ]

        pattern = ctx.config.tag_regex
        if pattern is None:
            return []
        findings: list[Finding] = []
        for tag in tags:
            if tag.kind != NodeKind.STRING:
                continue
            text = str(tag.get("value"))
            if pattern.fullmatch(text) is None:
                findings.append(
                    ctx.finding(
                        tag,
                        f"Tag '{text}' on test '{label}' does not match "
                        f"the allowed pattern '{pattern.pattern}'.",
                    )
                )
        return findings


class TicketOrFeaturePrefixRequired(Rule):
    """Test titles start with a ticket id (``PROJ-123``) or a known feature keyword."""

    rule_id = "ticket-or-feature-prefix-required"
    title = "Prefix test titles with a ticket or feature"
    severity = WARNING
    kinds = frozenset({NodeKind.CALL})

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        if not conv.is_test_registration(node):
            return []
        title = conv.title_argument(node)
        if title is None:
            return []
        text = str(title.get("value", "")).strip()
        if title.kind == NodeKind.TEMPLATE and text.startswith("${"):
            # Title begins with an interpolation; nothing to check statically.
            return []
        if TICKET_RE.match(text) or _starts_with_keyword(text, ctx.config.feature_keywords):
            return []
        return [
            ctx.finding(
                title,
                f"Test title '{text}' does not start with a ticket id or feature keyword.",
                "Prefix the title, e.g. 'PROJ-123 user can log in'.",
            )
        ]


def _starts_with_keyword(text: str, keywords: frozenset[str]) -> bool:
    for keyword in keywords:
        if not text.startswith(keyword):
            continue
        rest = text[len(keyword) :]
        if not rest or not (rest[0].isalnum() or rest[0] == "_"):
            return True
    return False
