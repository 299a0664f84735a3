"""Evaluator: one depth-first traversal per file, dispatching nodes to rules."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING

from e2elint.errors import EvaluationCancelled, RuleExecutionError
from e2elint.rules.base import META_ERROR, Finding, RuleContext

if TYPE_CHECKING:
    import threading
    from collections.abc import Sequence

    from e2elint.config import AnalyzerConfig
    from e2elint.rules.base import TypeInfoProvider
    from e2elint.rules.registry import ActiveRule
    from e2elint.syntax.nodes import Node, SourceUnit

logger = logging.getLogger(__name__)


def build_dispatch(active_rules: Sequence[ActiveRule]) -> dict[str, list[ActiveRule]]:
    """Map node kind -> active rules interested in it, preserving rule order."""
    dispatch: dict[str, list[ActiveRule]] = defaultdict(list)
    for active in active_rules:
        for kind in sorted(active.rule.kinds):
            dispatch[kind].append(active)
    return dict(dispatch)


def _meta_error(error: RuleExecutionError, path: str) -> Finding:
    return Finding(
        rule_id=error.rule_id,
        severity=META_ERROR,
        path=path,
        span=error.span,
        message=f"Rule execution failed: {type(error.cause).__name__}: {error.cause}",
        suggestion=None,
    )


def _run_rule(
    active: ActiveRule,
    node: Node,
    unit: SourceUnit,
    config: AnalyzerConfig,
    ancestors: tuple[Node, ...],
    type_info: TypeInfoProvider | None,
) -> list[Finding]:
    ctx = RuleContext(
        unit=unit,
        config=config,
        ancestors=ancestors,
        rule_id=active.rule_id,
        severity=active.severity,
        type_info=type_info,
    )
    try:
        produced = active.rule.match(node, ctx)
        for finding in produced:
            if finding.rule_id != active.rule_id:
                msg = f"finding attributed to foreign rule id '{finding.rule_id}'"
                raise ValueError(msg)
    except Exception as exc:  # noqa: BLE001
        error = RuleExecutionError(active.rule_id, node.span, exc)
        logger.warning("%s: %s", unit.path, error)
        return [_meta_error(error, unit.path)]
    return list(produced)


def evaluate(
    unit: SourceUnit,
    active_rules: Sequence[ActiveRule],
    *,
    config: AnalyzerConfig,
    cancel: threading.Event | None = None,
    type_info: TypeInfoProvider | None = None,
) -> list[Finding]:
    """Evaluate *active_rules* against *unit* and return findings in document order.

    A rule that raises is reported as a single ``meta-error`` finding for
    that node and traversal continues.  When *cancel* is set between node
    visits, :class:`EvaluationCancelled` is raised with the findings so far.
    """
    if unit.root is None:
        return []

    dispatch = build_dispatch(active_rules)
    findings: list[Finding] = []

    # (node, ancestors) pairs; children pushed in reverse for document order.
    stack: list[tuple[Node, tuple[Node, ...]]] = [(unit.root, ())]
    visited = 0
    while stack:
        if cancel is not None and cancel.is_set():
            raise EvaluationCancelled(unit.path, findings)

        node, ancestors = stack.pop()
        visited += 1
        for active in dispatch.get(node.kind, ()):
            findings.extend(_run_rule(active, node, unit, config, ancestors, type_info))

        if node.children:
            child_ancestors = (*ancestors, node)
            stack.extend((child, child_ancestors) for child in reversed(node.children))

    logger.debug("%s: %d nodes visited, %d findings", unit.path, visited, len(findings))
    return findings
