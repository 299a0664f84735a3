"""Run orchestrator: file discovery, bounded parallel evaluation, aggregation."""

from __future__ import annotations

import fnmatch
import glob
import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from e2elint.engine.evaluator import evaluate
from e2elint.engine.reporter import SkippedFile, aggregate
from e2elint.errors import ConfigurationError, EvaluationCancelled, ParseError
from e2elint.rules.registry import default_registry
from e2elint.syntax.adapter import load_source

if TYPE_CHECKING:
    import threading
    from collections.abc import Iterable, Sequence

    from e2elint.config import AnalyzerConfig
    from e2elint.engine.reporter import Report
    from e2elint.rules.base import Finding, TypeInfoProvider
    from e2elint.rules.registry import ActiveRule, RuleRegistry

logger = logging.getLogger(__name__)

_GLOB_CHARS = frozenset("*?[")


@dataclass
class _FileOutcome:
    path: str
    findings: list[Finding] = field(default_factory=list)
    skipped: SkippedFile | None = None
    cancelled: bool = False


# ---------------------------------------------------------------------------
# File discovery
# ---------------------------------------------------------------------------


def _display_path(file_path: Path) -> str:
    """Path relative to the working directory when possible, POSIX separators."""
    try:
        return file_path.resolve().relative_to(Path.cwd().resolve()).as_posix()
    except ValueError:
        return file_path.as_posix()


def _matches(rel_path: str, patterns: Iterable[str]) -> bool:
    name = rel_path.rsplit("/", 1)[-1]
    return any(
        fnmatch.fnmatch(rel_path, pattern) or fnmatch.fnmatch(name, pattern)
        for pattern in patterns
    )


def _selected(rel_path: str, config: AnalyzerConfig) -> bool:
    return _matches(rel_path, config.include) and not _matches(rel_path, config.exclude)


def _walk_directory(directory: Path, config: AnalyzerConfig) -> list[Path]:
    files: list[Path] = []
    for file_path in sorted(directory.rglob("*")):
        if not file_path.is_file():
            continue
        rel_path = file_path.relative_to(directory).as_posix()
        if _selected(rel_path, config):
            files.append(file_path)
    return files


def expand_paths(paths: Sequence[str | Path], config: AnalyzerConfig) -> list[Path]:
    """Expand files, directories and glob patterns into a sorted file list.

    Explicit files are always kept (an unsupported one becomes a skip
    diagnostic); directory and glob results are filtered through
    ``config.include`` / ``config.exclude``.  A non-glob path that does not
    exist raises :class:`ConfigurationError`.
    """
    seen: dict[Path, Path] = {}

    def _add(file_path: Path) -> None:
        seen.setdefault(file_path.resolve(), file_path)

    for raw in paths:
        text = str(raw)
        if _GLOB_CHARS & set(text):
            for match in sorted(glob.glob(text, recursive=True)):
                candidate = Path(match)
                if candidate.is_dir():
                    for file_path in _walk_directory(candidate, config):
                        _add(file_path)
                elif candidate.is_file() and _selected(candidate.as_posix(), config):
                    _add(candidate)
            continue

        candidate = Path(text)
        if candidate.is_dir():
            for file_path in _walk_directory(candidate, config):
                _add(file_path)
        elif candidate.exists():
            _add(candidate)
        else:
            msg = f"path does not exist: {text}"
            raise ConfigurationError(msg)

    return sorted(seen.values(), key=_display_path)


# ---------------------------------------------------------------------------
# Per-file work
# ---------------------------------------------------------------------------


def _analyze_file(
    file_path: Path,
    active_rules: Sequence[ActiveRule],
    config: AnalyzerConfig,
    cancel: threading.Event | None,
    type_info: TypeInfoProvider | None,
) -> _FileOutcome:
    path = _display_path(file_path)
    try:
        unit = load_source(file_path, display_path=path)
    except ParseError as exc:
        logger.info("Skipping %s", exc)
        return _FileOutcome(
            path=path,
            skipped=SkippedFile(path=path, reason=exc.message, line=exc.line, column=exc.column),
        )

    try:
        findings = evaluate(unit, active_rules, config=config, cancel=cancel, type_info=type_info)
    except EvaluationCancelled as exc:
        return _FileOutcome(path=path, findings=list(exc.findings), cancelled=True)
    return _FileOutcome(path=path, findings=findings)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def default_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


def run(
    paths: Sequence[str | Path],
    config: AnalyzerConfig,
    *,
    registry: RuleRegistry | None = None,
    cancel: threading.Event | None = None,
    type_info: TypeInfoProvider | None = None,
) -> Report:
    """Analyze *paths* with the rules of *registry* and return the report.

    Raises :class:`ConfigurationError` before any file is read when the
    configuration names unknown rules, a given path does not exist, or no
    file matches.  Per-file parse
    failures become skip diagnostics; a set *cancel* event marks the
    report incomplete and keeps the findings produced so far.
    """
    registry = registry if registry is not None else default_registry()
    active_rules = registry.resolve(config)

    files = expand_paths(paths, config)
    if not files:
        msg = "no files matched"
        raise ConfigurationError(msg)

    workers = config.max_workers or default_workers()
    logger.info(
        "Analyzing %d file(s) with %d rule(s) on %d worker(s)",
        len(files),
        len(active_rules),
        workers,
    )

    per_file: list[list[Finding]] = []
    skipped: list[SkippedFile] = []
    analyzed = 0
    incomplete = False

    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        future_map = {
            executor.submit(_analyze_file, file_path, active_rules, config, cancel, type_info): (
                file_path
            )
            for file_path in files
        }
        for future in as_completed(future_map):
            if future.cancelled():
                incomplete = True
                continue
            file_path = future_map[future]
            try:
                outcome = future.result()
            except Exception as exc:
                path = _display_path(file_path)
                logger.warning("Failed to analyze %s: %s", path, exc)
                skipped.append(SkippedFile(path=path, reason=f"internal error: {exc}"))
                continue
            if outcome.skipped is not None:
                skipped.append(outcome.skipped)
                continue
            analyzed += 1
            per_file.append(outcome.findings)
            if outcome.cancelled:
                incomplete = True
                for pending in future_map:
                    pending.cancel()

    if cancel is not None and cancel.is_set():
        incomplete = True

    report = aggregate(
        per_file,
        rule_order=registry.order(),
        skipped=skipped,
        files_analyzed=analyzed,
        rules_evaluated=len(active_rules),
        incomplete=incomplete,
    )
    logger.info(
        "Run finished: verdict=%s, %d finding(s), %d skipped",
        report.verdict,
        len(report.findings),
        len(report.skipped),
    )
    return report
