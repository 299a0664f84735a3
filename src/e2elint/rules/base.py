"""Base rule class, rule context, and the finding model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Protocol

if TYPE_CHECKING:
    from e2elint.config import AnalyzerConfig
    from e2elint.syntax.nodes import Node, SourceUnit, Span

ERROR = "error"
WARNING = "warning"
META_ERROR = "meta-error"

SEVERITIES: tuple[str, ...] = (ERROR, WARNING, META_ERROR)


@dataclass(frozen=True)
class Finding:
    """A single rule violation (or meta-error) tied to a file and span."""

    rule_id: str
    severity: str  # "error" | "warning" | "meta-error"
    path: str
    span: Span
    message: str
    suggestion: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "rule_id": self.rule_id,
            "severity": self.severity,
            "line": self.span.start_line,
            "column": self.span.start_column,
            "end_line": self.span.end_line,
            "end_column": self.span.end_column,
            "message": self.message,
            "suggestion": self.suggestion,
        }


class TypeInfoProvider(Protocol):
    """Optional external type information consulted by heuristic rules.

    ``returns_deferred`` answers whether a call evaluates to a promise;
    ``None`` means "unknown", in which case the rule falls back to its
    syntactic heuristic.
    """

    def returns_deferred(self, unit: SourceUnit, call: Node) -> bool | None: ...


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may look at besides the node itself.

    ``ancestors`` runs from the program root down to the visited node's
    parent.
    """

    unit: SourceUnit
    config: AnalyzerConfig
    ancestors: tuple[Node, ...]
    rule_id: str
    severity: str
    type_info: TypeInfoProvider | None = None

    @property
    def path(self) -> str:
        return self.unit.path

    @property
    def parent(self) -> Node | None:
        return self.ancestors[-1] if self.ancestors else None

    def finding(self, node: Node, message: str, suggestion: str | None = None) -> Finding:
        """Build a finding located at *node* with this rule's effective severity."""
        return Finding(
            rule_id=self.rule_id,
            severity=self.severity,
            path=self.unit.path,
            span=node.span,
            message=message,
            suggestion=suggestion,
        )


class Rule:
    """Base class for stateless convention checks.

    Subclasses set the class attributes and implement :meth:`match`.  A rule
    instance must not keep state between calls; the same instance is used
    concurrently for many files.
    """

    rule_id: ClassVar[str] = ""
    title: ClassVar[str] = ""
    severity: ClassVar[str] = ERROR
    kinds: ClassVar[frozenset[str]] = frozenset()
    # "exact" or "heuristic"; heuristic rules document their known
    # false-positive and false-negative classes in the class docstring.
    confidence: ClassVar[str] = "exact"

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        raise NotImplementedError

    @property
    def description(self) -> str:
        doc = (type(self).__doc__ or "").strip()
        return doc.splitlines()[0] if doc else self.title

    def __repr__(self) -> str:
        return f"{type(self).__name__}(rule_id={self.rule_id!r})"
