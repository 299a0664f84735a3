"""Step annotation rule: actions wrapped in test.step, bounded step size."""

from __future__ import annotations

from typing import TYPE_CHECKING

from e2elint.rules import conventions as conv
from e2elint.rules.base import ERROR, Rule
from e2elint.syntax.nodes import NodeKind

if TYPE_CHECKING:
    from e2elint.rules.base import Finding, RuleContext
    from e2elint.syntax.nodes import Node


class StepWrappingRequired(Rule):
    """UI/API actions in a test must sit inside ``test.step`` blocks of bounded size.

    Two checks share this rule id: an action call in a test body with no
    enclosing step (reported at the action), and a step owning more than
    ``max_actions_per_step`` actions (reported at the step call; actions in
    nested steps count toward the nested step only).

    Heuristic: actions are recognized by method name (``click``, ``fill``,
    ``goto``, ...) on any receiver, and API calls by receiver name
    (``request``).  Actions performed inside page-object methods are not
    visible here (false negatives); a custom method sharing an action name
    counts as an action (false positive).
    """

    rule_id = "step-wrapping-required"
    title = "Wrap actions in test.step"
    severity = ERROR
    kinds = frozenset({NodeKind.CALL})
    confidence = "heuristic"

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        if conv.is_step_call(node):
            return self._check_step_size(node, ctx)
        if not conv.is_action_call(node):
            return []
        if not conv.in_test_body(ctx.ancestors) or conv.enclosing_step(ctx.ancestors) is not None:
            return []
        return [
            ctx.finding(
                node,
                f"Action '{node.get('callee')}' is not wrapped in test.step().",
                "Group related actions in await test.step('<what the user does>', async () => ...).",
            )
        ]

    def _check_step_size(self, step: Node, ctx: RuleContext) -> list[Finding]:
        if not conv.in_test_body(ctx.ancestors):
            return []
        body = conv.callback(step)
        if body is None:
            return []
        limit = ctx.config.max_actions_per_step
        count = sum(
            1 for call in conv.iter_calls_pruned(body, prune=conv.is_step_call)
            if conv.is_action_call(call)
        )
        if count <= limit:
            return []
        title = conv.title_argument(step)
        label = str(title.get("value")) if title is not None else "<dynamic title>"
        return [
            ctx.finding(
                step,
                f"Step '{label}' performs {count} actions (maximum {limit}).",
                "Split the step into smaller steps that each describe one user intent.",
            )
        ]
