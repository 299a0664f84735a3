"""Data isolation rule: entity names and titles must be unique per run."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from e2elint.rules import conventions as conv
from e2elint.rules.base import WARNING, Rule
from e2elint.syntax.nodes import NodeKind

if TYPE_CHECKING:
    from e2elint.rules.base import Finding, RuleContext
    from e2elint.syntax.nodes import Node

# Variable / property names that hold entity names or titles.
NAME_HINT_RE = re.compile(r"(?:^|[a-z_])(?:name|Name|NAME|title|Title|TITLE)$")

# Calls whose result makes a value unique per run.
_UNIQUE_PRODUCERS: frozenset[str] = frozenset(
    {
        "now",
        "getTime",
        "toISOString",
        "randomUUID",
        "uuid",
        "uuidv4",
        "v4",
        "nanoid",
        "random",
        "uniqueId",
        "uniqueName",
        "timestamp",
    }
)
_UNIQUE_RECEIVERS: frozenset[str] = frozenset({"faker", "crypto", "chance"})


class UniqueTestDataRequired(Rule):
    """Name/title literals used as test data must embed a per-run unique part.

    Heuristic: string and template literals inside a test body that are
    assigned to a variable or property whose name ends in ``name``/``title``
    must contain an interpolation, or be concatenated with a time/uuid
    producing call.  False negatives: data built in helpers or fixtures, or
    held in variables with other names.  False positives: names that really
    are fixed (e.g. an expected heading); disable or suppress per project.
    """

    rule_id = "unique-test-data-required"
    title = "Use unique test data"
    severity = WARNING
    kinds = frozenset({NodeKind.STRING, NodeKind.TEMPLATE})
    confidence = "heuristic"

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        if not str(node.get("value", "")).strip():
            return []
        if node.kind == NodeKind.TEMPLATE and node.get("interpolations", 0) > 0:
            return []

        # Climb through concatenations to the binding.
        chain_top = node
        index = len(ctx.ancestors) - 1
        while index >= 0 and ctx.ancestors[index].kind == NodeKind.BINARY:
            chain_top = ctx.ancestors[index]
            index -= 1
        if index < 0:
            return []
        binding = ctx.ancestors[index]
        name = _binding_name(binding)
        if name is None or not NAME_HINT_RE.search(name):
            return []
        if not conv.in_test_body(ctx.ancestors[: index + 1]):
            return []

        if chain_top is not node:
            if _has_unique_producer(chain_top):
                return []
            if _first_literal(chain_top) is not node:
                # Report a concatenation chain once, at its first literal.
                return []

        return [
            ctx.finding(
                node,
                f"Test data '{name}' is a fixed literal; parallel runs will collide.",
                "Append a unique part, e.g. `Order ${Date.now()}` or a uuid.",
            )
        ]


def _binding_name(node: Node) -> str | None:
    if node.kind == NodeKind.VARIABLE:
        return str(node.get("name"))
    if node.kind == NodeKind.PROPERTY:
        return str(node.get("key"))
    if node.kind == NodeKind.ASSIGNMENT:
        return str(node.get("target")).rsplit(".", 1)[-1]
    return None


def _has_unique_producer(expr: Node) -> bool:
    for node in expr.walk():
        if node.kind == NodeKind.TEMPLATE and node.get("interpolations", 0) > 0:
            return True
        if node.kind != NodeKind.CALL:
            continue
        receiver = node.get("receiver")
        if node.get("name") in _UNIQUE_PRODUCERS or receiver in _UNIQUE_RECEIVERS:
            return True
    return False


def _first_literal(expr: Node) -> Node | None:
    for child in expr.walk():
        if child.kind in (NodeKind.STRING, NodeKind.TEMPLATE):
            return child
    return None
