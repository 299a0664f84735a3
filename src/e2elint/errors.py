"""Exception taxonomy shared by the adapter, registry, evaluator, and orchestrator."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from e2elint.rules.base import Finding
    from e2elint.syntax.nodes import Span


class AnalyzerError(Exception):
    """Base class for every error raised by e2elint."""


class ParseError(AnalyzerError):
    """Raised when a source file cannot be turned into a well-formed tree.

    The file is skipped; the run continues with the remaining files.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.line = line
        self.column = column

    def __str__(self) -> str:
        loc = self.path
        if self.line is not None:
            loc += f":{self.line}"
            if self.column is not None:
                loc += f":{self.column}"
        return f"{loc}: {self.message}"


class RuleExecutionError(AnalyzerError):
    """A rule's match function raised while visiting a node."""

    def __init__(self, rule_id: str, span: Span, cause: BaseException) -> None:
        self.rule_id = rule_id
        self.span = span
        self.cause = cause
        super().__init__(
            f"Rule '{rule_id}' failed at line {span.start_line}: "
            f"{type(cause).__name__}: {cause}"
        )


class ConfigurationError(AnalyzerError):
    """Raised for invalid configuration; aborts the run before analysis."""


class DuplicateRuleId(AnalyzerError):
    """Raised when a rule id is registered twice."""

    def __init__(self, rule_id: str) -> None:
        self.rule_id = rule_id
        super().__init__(f"Rule id '{rule_id}' is already registered")


class EvaluationCancelled(AnalyzerError):
    """Raised by the evaluator when the run-level cancel signal is observed.

    Carries the findings produced before the signal was seen.
    """

    def __init__(self, path: str, findings: list[Finding]) -> None:
        self.path = path
        self.findings = findings
        super().__init__(f"Evaluation of {path} cancelled")
