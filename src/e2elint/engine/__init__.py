"""Engine domain: evaluator, reporter, and run orchestrator."""

from e2elint.engine.evaluator import build_dispatch, evaluate
from e2elint.engine.orchestrator import expand_paths, run
from e2elint.engine.reporter import (
    FAIL,
    INCOMPLETE,
    PASS,
    Report,
    SkippedFile,
    aggregate,
    deduplicate,
    derive_verdict,
    finding_sort_key,
)

__all__ = [
    "FAIL",
    "INCOMPLETE",
    "PASS",
    "Report",
    "SkippedFile",
    "aggregate",
    "build_dispatch",
    "deduplicate",
    "derive_verdict",
    "evaluate",
    "expand_paths",
    "finding_sort_key",
    "run",
]
