"""Report formatters: human text, stable JSON, and one-line porcelain."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from e2elint.rules.base import ERROR, META_ERROR, WARNING

if TYPE_CHECKING:
    from e2elint.engine.reporter import Report

_MARKS = {ERROR: "✗", WARNING: "!", META_ERROR: "?"}


def format_rich(report: Report) -> str:
    """Format a Report as human-readable text.

    Example output with findings::

        Files: 12 analyzed, 1 skipped
        Rules: 13 evaluated

        tests/checkout.spec.ts
          3:1  ✗ error  describe-block-required
            Test 'pays' is registered outside a test.describe block.
            hint: Wrap the test in test.describe('<feature>', () => { ... }).

        skipped tests/broken.spec.ts:4:7: syntax error (file skipped)

        fail: 1 error(s), 0 warning(s), 0 rule failure(s)

    Example output without findings::

        Files: 12 analyzed, 0 skipped
        Rules: 13 evaluated

        ✓ pass: no violations found
    """
    lines: list[str] = []

    lines.append(f"Files: {report.files_analyzed} analyzed, {len(report.skipped)} skipped")
    lines.append(f"Rules: {report.rules_evaluated} evaluated")
    lines.append("")

    current_path: str | None = None
    for finding in report.findings:
        if finding.path != current_path:
            if current_path is not None:
                lines.append("")
            lines.append(finding.path)
            current_path = finding.path
        mark = _MARKS.get(finding.severity, "-")
        lines.append(
            f"  {finding.span.start_line}:{finding.span.start_column}  "
            f"{mark} {finding.severity}  {finding.rule_id}"
        )
        lines.append(f"    {finding.message}")
        if finding.suggestion:
            lines.append(f"    hint: {finding.suggestion}")
    if report.findings:
        lines.append("")

    for skip in report.skipped:
        loc = skip.path
        if skip.line is not None:
            loc += f":{skip.line}"
            if skip.column is not None:
                loc += f":{skip.column}"
        lines.append(f"skipped {loc}: {skip.reason}")
    if report.skipped:
        lines.append("")

    errors = report.counts.get(ERROR, 0)
    warnings = report.counts.get(WARNING, 0)
    failures = report.counts.get(META_ERROR, 0)
    if report.findings:
        lines.append(
            f"{report.verdict}: {errors} error(s), {warnings} warning(s), "
            f"{failures} rule failure(s)"
        )
    elif report.incomplete:
        lines.append("incomplete: run was cancelled before all files were analyzed")
    else:
        lines.append("✓ pass: no violations found")

    return "\n".join(lines)


def format_json(report: Report) -> str:
    """Format a Report as JSON with sorted keys (byte-stable for identical input)."""
    return json.dumps(report.to_dict(), ensure_ascii=False, indent=2, sort_keys=True)


def format_porcelain(report: Report) -> str:
    """Format a Report as one line per finding, then one line per skipped file.

    Finding format: ``path:line:column:severity:rule_id:message``
    Skip format: ``path:line:column:skipped::reason`` (line and column may be empty)

    Returns empty string when there are no findings and no skipped files.
    """
    lines: list[str] = []
    for f in report.findings:
        lines.append(
            f"{f.path}:{f.span.start_line}:{f.span.start_column}:{f.severity}:{f.rule_id}:{f.message}"
        )
    for skip in report.skipped:
        line = "" if skip.line is None else skip.line
        column = "" if skip.column is None else skip.column
        lines.append(f"{skip.path}:{line}:{column}:skipped::{skip.reason}")

    return "\n".join(lines)


FORMATTERS = {
    "rich": format_rich,
    "json": format_json,
    "porcelain": format_porcelain,
}
