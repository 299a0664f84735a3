"""Violation reporter: merge, deduplicate, order, and summarize findings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from e2elint.rules.base import ERROR, META_ERROR, SEVERITIES

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from e2elint.rules.base import Finding

PASS = "pass"
FAIL = "fail"
INCOMPLETE = "incomplete"


@dataclass(frozen=True)
class SkippedFile:
    """Run diagnostic: a file that could not be analyzed."""

    path: str
    reason: str
    line: int | None = None
    column: int | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "path": self.path,
            "reason": self.reason,
            "line": self.line,
            "column": self.column,
        }


@dataclass(frozen=True)
class Report:
    """Final, ordered result of a run."""

    findings: tuple[Finding, ...] = ()
    skipped: tuple[SkippedFile, ...] = ()
    counts: dict[str, int] = field(default_factory=dict)
    verdict: str = PASS
    files_analyzed: int = 0
    rules_evaluated: int = 0

    @property
    def passed(self) -> bool:
        return self.verdict == PASS

    @property
    def incomplete(self) -> bool:
        return self.verdict == INCOMPLETE

    @property
    def violations(self) -> tuple[Finding, ...]:
        """Style violations (the compliance signal)."""
        return tuple(f for f in self.findings if f.severity != META_ERROR)

    @property
    def rule_failures(self) -> tuple[Finding, ...]:
        """Analyzer malfunctions surfaced as meta-error findings."""
        return tuple(f for f in self.findings if f.severity == META_ERROR)

    def by_file(self) -> dict[str, list[Finding]]:
        grouped: dict[str, list[Finding]] = {}
        for finding in self.violations:
            grouped.setdefault(finding.path, []).append(finding)
        return grouped

    def to_dict(self) -> dict[str, object]:
        """Machine-readable form; deterministic for identical input."""
        return {
            "verdict": self.verdict,
            "summary": {
                "files_analyzed": self.files_analyzed,
                "files_skipped": len(self.skipped),
                "rules_evaluated": self.rules_evaluated,
                "counts": {severity: self.counts.get(severity, 0) for severity in SEVERITIES},
            },
            "files": {
                path: [finding.to_dict() for finding in findings]
                for path, findings in self.by_file().items()
            },
            "diagnostics": {
                "skipped_files": [skip.to_dict() for skip in self.skipped],
                "rule_failures": [
                    {"path": finding.path, **finding.to_dict()} for finding in self.rule_failures
                ],
            },
        }


def finding_sort_key(finding: Finding) -> tuple[object, ...]:
    """Total order: path, start line, rule id, then the remaining fields."""
    span = finding.span
    return (
        finding.path,
        span.start_line,
        finding.rule_id,
        span.start_column,
        span.end_line,
        span.end_column,
        finding.severity,
        finding.message,
        finding.suggestion or "",
    )


def deduplicate(findings: Iterable[Finding], rule_order: Mapping[str, int]) -> list[Finding]:
    """Collapse findings identical except for rule id.

    Two rules registered under different ids with the same behavior produce
    the same (location, message); the finding from the earliest-registered
    rule is kept.  Meta-errors keep their rule id in the key: every crashing
    rule stays visible.
    """
    kept: dict[tuple[object, ...], Finding] = {}
    unknown_order = len(rule_order)
    for finding in findings:
        key = (
            finding.path,
            finding.span.sort_key(),
            finding.severity,
            finding.message,
            finding.suggestion,
            finding.rule_id if finding.severity == META_ERROR else None,
        )
        current = kept.get(key)
        if current is None:
            kept[key] = finding
            continue
        rank = (rule_order.get(finding.rule_id, unknown_order), finding.rule_id)
        current_rank = (rule_order.get(current.rule_id, unknown_order), current.rule_id)
        if rank < current_rank:
            kept[key] = finding
    return list(kept.values())


def derive_verdict(counts: Mapping[str, int], *, incomplete: bool = False) -> str:
    if incomplete:
        return INCOMPLETE
    if counts.get(ERROR, 0) or counts.get(META_ERROR, 0):
        return FAIL
    return PASS


def aggregate(
    per_file_findings: Iterable[Iterable[Finding]],
    *,
    rule_order: Mapping[str, int],
    skipped: Iterable[SkippedFile] = (),
    files_analyzed: int = 0,
    rules_evaluated: int = 0,
    incomplete: bool = False,
) -> Report:
    """Merge per-file findings into an ordered :class:`Report`."""
    merged = [finding for findings in per_file_findings for finding in findings]
    ordered = sorted(deduplicate(merged, rule_order), key=finding_sort_key)

    counts = {severity: 0 for severity in SEVERITIES}
    for finding in ordered:
        counts[finding.severity] = counts.get(finding.severity, 0) + 1

    return Report(
        findings=tuple(ordered),
        skipped=tuple(sorted(skipped, key=lambda s: s.path)),
        counts=counts,
        verdict=derive_verdict(counts, incomplete=incomplete),
        files_analyzed=files_analyzed,
        rules_evaluated=rules_evaluated,
    )
