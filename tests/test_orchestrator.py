"""Tests for e2elint.engine.orchestrator — discovery, parallel runs, skips."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from e2elint.config import AnalyzerConfig
from e2elint.engine.orchestrator import expand_paths, run
from e2elint.engine.reporter import FAIL, INCOMPLETE, PASS
from e2elint.errors import ConfigurationError
from e2elint.formatters import format_json
from e2elint.rules.base import Rule
from e2elint.rules.registry import default_registry
from e2elint.syntax.nodes import NodeKind

if TYPE_CHECKING:
    from pathlib import Path

    from e2elint.rules.base import Finding, RuleContext
    from e2elint.syntax.nodes import Node


class _CrashOnImport(Rule):
    rule_id = "crash-on-import"
    title = "Raises on every import"
    kinds = frozenset({NodeKind.IMPORT})

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        msg = "boom"
        raise RuntimeError(msg)


class _CancelOnWait(Rule):
    rule_id = "cancel-on-wait"
    title = "Sets the cancel event at the first fixed wait"
    kinds = frozenset({NodeKind.CALL})

    def __init__(self, cancel: threading.Event) -> None:
        self._cancel = cancel

    def match(self, node: Node, ctx: RuleContext) -> list[Finding]:
        if node.get("callee") != "page.waitForTimeout":
            return []
        self._cancel.set()
        return [ctx.finding(node, "cancel requested")]


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


class TestExpandPaths:
    def test_directory_uses_include_exclude(self, spec_project: Path) -> None:
        (spec_project / "tests" / "types.d.ts").write_text("declare const x: number;\n")
        (spec_project / "tests" / "notes.md").write_text("# notes\n")
        modules = spec_project / "node_modules" / "pkg"
        modules.mkdir(parents=True)
        (modules / "index.ts").write_text("export {};\n")

        files = expand_paths([spec_project], AnalyzerConfig())
        assert sorted(p.name for p in files) == ["checkout.spec.ts", "login.spec.ts"]

    def test_glob_pattern(self, spec_project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(spec_project)
        files = expand_paths(["tests/login*.ts"], AnalyzerConfig())
        assert [p.as_posix() for p in files] == ["tests/login.spec.ts"]

    def test_duplicates_collapsed(self, spec_project: Path) -> None:
        spec = spec_project / "tests" / "login.spec.ts"
        files = expand_paths([spec, spec_project / "tests"], AnalyzerConfig())
        assert len(files) == 2

    def test_explicit_file_kept(self, tmp_path: Path) -> None:
        other = tmp_path / "notes.txt"
        other.write_text("hello\n")
        assert expand_paths([other], AnalyzerConfig()) == [other]

    def test_missing_path_is_configuration_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="path does not exist"):
            expand_paths([tmp_path / "missing.spec.ts"], AnalyzerConfig())

    def test_unmatched_glob_is_not_an_error(self, tmp_path: Path) -> None:
        assert expand_paths([str(tmp_path / "*.spec.ts")], AnalyzerConfig()) == []


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


class TestRun:
    def test_project_run(self, spec_project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(spec_project)
        report = run(["tests"], AnalyzerConfig())
        assert report.verdict == FAIL
        assert report.files_analyzed == 2
        assert report.rules_evaluated == 13
        assert [(f.path, f.span.start_line, f.rule_id) for f in report.findings] == [
            ("tests/login.spec.ts", 1, "relative-import-forbidden"),
            ("tests/login.spec.ts", 3, "describe-block-required"),
            ("tests/login.spec.ts", 5, "prohibited-wait-call"),
        ]

    def test_clean_file_passes(self, spec_project: Path) -> None:
        report = run([spec_project / "tests" / "checkout.spec.ts"], AnalyzerConfig())
        assert report.findings == ()
        assert report.verdict == PASS

    def test_disabled_rules(self, spec_project: Path) -> None:
        config = AnalyzerConfig(
            disabled_rule_ids=frozenset(
                {"relative-import-forbidden", "describe-block-required", "prohibited-wait-call"}
            )
        )
        report = run([spec_project], config)
        assert report.verdict == PASS
        assert report.rules_evaluated == 10

    def test_no_files_matched(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="no files matched"):
            run([tmp_path], AnalyzerConfig())

    def test_unknown_rule_aborts_before_analysis(self, spec_project: Path) -> None:
        config = AnalyzerConfig(disabled_rule_ids=frozenset({"no-such-rule"}))
        with pytest.raises(ConfigurationError, match="no-such-rule"):
            run([spec_project], config)


class TestDeterminism:
    def test_repeated_runs_byte_identical(
        self, spec_project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(spec_project)
        first = format_json(run(["tests"], AnalyzerConfig()))
        second = format_json(run(["tests"], AnalyzerConfig()))
        assert first == second

    def test_worker_count_does_not_change_result(self, spec_project: Path) -> None:
        for index in range(6):
            (spec_project / "tests" / f"extra{index}.spec.ts").write_text(
                f"test('extra {index}', async ({{ page }}) => {{\n"
                "  await page.waitForTimeout(5);\n"
                "});\n"
            )
        serial = run([spec_project], AnalyzerConfig(max_workers=1))
        parallel = run([spec_project], AnalyzerConfig(max_workers=8))
        assert serial.to_dict() == parallel.to_dict()


class TestSkips:
    def test_broken_file_skipped_once(self, spec_project: Path) -> None:
        broken = spec_project / "tests" / "broken.spec.ts"
        broken.write_text("test('broken', () => {\n  const = ;\n")

        report = run([spec_project], AnalyzerConfig())
        assert len(report.skipped) == 1
        assert report.skipped[0].path.endswith("broken.spec.ts")
        assert report.skipped[0].line is not None
        assert report.files_analyzed == 2
        assert {f.rule_id for f in report.findings} == {
            "relative-import-forbidden",
            "describe-block-required",
            "prohibited-wait-call",
        }

        again = run([spec_project], AnalyzerConfig())
        assert again.skipped == report.skipped

    def test_only_broken_files(self, tmp_path: Path) -> None:
        (tmp_path / "a.spec.ts").write_text("test(\n")
        report = run([tmp_path], AnalyzerConfig())
        assert report.files_analyzed == 0
        assert len(report.skipped) == 1
        assert report.verdict == PASS

    def test_unsupported_explicit_file(self, tmp_path: Path) -> None:
        other = tmp_path / "notes.txt"
        other.write_text("hello\n")
        report = run([other], AnalyzerConfig())
        assert "no parser available" in report.skipped[0].reason


class TestFileIsolation:
    def test_crashing_rule_does_not_hide_other_files(
        self, spec_project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(spec_project)
        (spec_project / "tests" / "cart.spec.ts").write_text(
            "import { test } from '@fixtures/base';\n"
            "import { items } from '../data/items';\n"
        )
        registry = default_registry()
        registry.register(_CrashOnImport())

        report = run(["tests"], AnalyzerConfig(max_workers=4), registry=registry)
        assert report.files_analyzed == 3
        assert [(f.path, f.span.start_line) for f in report.rule_failures] == [
            ("tests/cart.spec.ts", 1),
            ("tests/cart.spec.ts", 2),
            ("tests/checkout.spec.ts", 1),
            ("tests/login.spec.ts", 1),
        ]
        assert all(f.rule_id == "crash-on-import" for f in report.rule_failures)
        assert [(f.path, f.span.start_line, f.rule_id) for f in report.violations] == [
            ("tests/cart.spec.ts", 2, "relative-import-forbidden"),
            ("tests/login.spec.ts", 1, "relative-import-forbidden"),
            ("tests/login.spec.ts", 3, "describe-block-required"),
            ("tests/login.spec.ts", 5, "prohibited-wait-call"),
        ]
        assert report.verdict == FAIL


class TestCancellation:
    def test_preset_cancel_marks_incomplete(self, spec_project: Path) -> None:
        cancel = threading.Event()
        cancel.set()
        report = run([spec_project], AnalyzerConfig(max_workers=1), cancel=cancel)
        assert report.verdict == INCOMPLETE
        assert report.findings == ()

    def test_cancel_mid_run_keeps_partial_findings(
        self, spec_project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(spec_project)
        cancel = threading.Event()
        registry = default_registry()
        registry.register(_CancelOnWait(cancel))

        report = run(["tests"], AnalyzerConfig(max_workers=1), registry=registry, cancel=cancel)
        assert report.verdict == INCOMPLETE
        found = [(f.path, f.span.start_line, f.rule_id) for f in report.findings]
        assert ("tests/login.spec.ts", 1, "relative-import-forbidden") in found
        assert ("tests/login.spec.ts", 5, "prohibited-wait-call") in found
        assert ("tests/login.spec.ts", 5, "cancel-on-wait") in found
