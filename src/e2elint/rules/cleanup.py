"""Cleanup registration rule for entity-creating helper methods."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from e2elint.rules.base import WARNING, Rule
from e2elint.syntax.nodes import NodeKind

if TYPE_CHECKING:
    from e2elint.rules.base import Finding, RuleContext
    from e2elint.syntax.nodes import Node

# create, createUser, addProject... but not "creator" or "address".
CREATION_METHOD_RE = re.compile(r"^(?:create|add|register|seed|provision)(?:[A-Z0-9_]|$)")


class CleanupDecoratorRequired(Rule):
    """Methods that create server-side entities carry a cleanup decorator.

    Decorators are treated as metadata on the method node; inheritance and
    mixins are not modelled.  Heuristic: creation methods are recognized by
    verb prefix.  False positives: ``add*`` methods that only touch the UI
    (e.g. adding a row to an unsaved form).
    """

    rule_id = "cleanup-decorator-required"
    title = "Register created entities for cleanup"
    severity = WARNING
    kinds = frozenset({NodeKind.METHOD})
    confidence = "heuristic"

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        name = str(node.get("name", ""))
        if not CREATION_METHOD_RE.match(name):
            return []
        decorators = set(node.get("decorators", ()))
        allowed = ctx.config.cleanup_decorators
        # ``@Cleanup.track`` style decorators match on their last segment.
        if decorators & allowed or {d.rsplit(".", 1)[-1] for d in decorators} & allowed:
            return []
        return [
            ctx.finding(
                node,
                f"Creation method '{name}' is not registered for automatic cleanup.",
                f"Decorate it with @{sorted(allowed)[0]}() so created data is removed."
                if allowed
                else None,
            )
        ]
