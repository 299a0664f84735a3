"""Import hygiene rule: path aliases instead of relative imports."""

from __future__ import annotations

from typing import TYPE_CHECKING

from e2elint.rules.base import ERROR, Rule
from e2elint.syntax.nodes import NodeKind

if TYPE_CHECKING:
    from e2elint.rules.base import Finding, RuleContext
    from e2elint.syntax.nodes import Node


def is_relative_specifier(specifier: str, alias_prefixes: frozenset[str]) -> bool:
    """Return True for ``./x``/``../x`` specifiers not covered by a configured alias prefix."""
    if any(specifier.startswith(prefix) for prefix in alias_prefixes):
        return False
    return specifier in (".", "..") or specifier.startswith(("./", "../"))


class RelativeImportForbidden(Rule):
    """Imports use path aliases (``@pages/...``) rather than relative paths."""

    rule_id = "relative-import-forbidden"
    title = "Use path aliases instead of relative imports"
    severity = ERROR
    kinds = frozenset({NodeKind.IMPORT})

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        specifier = str(node.get("specifier", ""))
        if not is_relative_specifier(specifier, ctx.config.path_alias_prefixes):
            return []
        return [
            ctx.finding(
                node,
                f"Relative import '{specifier}'.",
                "Import through a configured path alias (e.g. '@utils/helpers').",
            )
        ]
