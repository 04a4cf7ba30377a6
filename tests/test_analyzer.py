"""Tests for the main analyzer."""

import json
from pathlib import Path

import pytest

from variadic_linter.analyzer import collect_files, lint_paths, lint_source
from variadic_linter.models import COERCED, FORWARDED, LintResult


@pytest.fixture
def fixtures_path():
    return Path(__file__).parent / "fixtures" / "sample_r"


def summarize(findings):
    return [
        (Path(f.file_path).name, f.line_number, f.severity, f.rule) for f in findings
    ]


class TestLintPaths:
    def given_sample_directory(self, fixtures_path):
        self.paths = [fixtures_path]

    def given_single_file(self, fixtures_path, name):
        self.paths = [fixtures_path / name]

    def given_missing_path(self, fixtures_path):
        self.paths = [fixtures_path / "does_not_exist.R"]

    async def when_paths_are_linted(self):
        self.result = await lint_paths(self.paths)

    def then_result_is_valid(self):
        assert isinstance(self.result, LintResult)
        assert self.result.analyzed_at is not None
        assert self.result.paths == [str(p) for p in self.paths]

    def then_findings_are(self, *expected):
        assert summarize(self.result.findings) == list(expected)

    def then_exit_code_is(self, code):
        assert self.result.exit_code == code

    @pytest.mark.asyncio
    async def test_lints_directory(self, fixtures_path):
        """Every R file in the directory is analysed and findings are sorted."""
        self.given_sample_directory(fixtures_path)
        await self.when_paths_are_linted()
        self.then_result_is_valid()
        self.then_findings_are(
            ("calls.R", 1, "error", "ambiguous-named-argument"),
            ("dots_usage.R", 4, "error", "coerced-to-container"),
            ("dots_usage.R", 20, "warning", "unused-dots"),
            ("malformed.R", 1, "warning", "parse-error"),
        )
        self.then_exit_code_is(1)

    @pytest.mark.asyncio
    async def test_skips_environment_directories_and_other_extensions(
        self, fixtures_path
    ):
        """renv/ and non-R files are not scanned."""
        self.given_sample_directory(fixtures_path)
        await self.when_paths_are_linted()
        scanned = {Path(s.file_path).name for s in self.result.signatures}
        assert scanned == {"clean.R", "dots_usage.R", "malformed.R"}
        assert self.result.files_scanned == 4

    @pytest.mark.asyncio
    async def test_cross_references_calls_across_files(self, fixtures_path):
        """Calls in one file are matched to definitions in another."""
        self.given_sample_directory(fixtures_path)
        await self.when_paths_are_linted()
        calls = [c for c in self.result.call_sites if c.function_name == "total"]
        assert len(calls) == 2
        assert all(Path(c.file_path).name == "calls.R" for c in calls)

    @pytest.mark.asyncio
    async def test_scan_is_idempotent(self, fixtures_path):
        """Linting unchanged input twice yields identical findings."""
        self.given_sample_directory(fixtures_path)
        await self.when_paths_are_linted()
        first = self.result.findings
        await self.when_paths_are_linted()
        assert self.result.findings == first

    @pytest.mark.asyncio
    async def test_malformed_definition_does_not_stop_analysis(self, fixtures_path):
        """A parse error is reported and the next definition is classified."""
        self.given_single_file(fixtures_path, "malformed.R")
        await self.when_paths_are_linted()
        self.then_findings_are(("malformed.R", 1, "warning", "parse-error"))
        assert [(s.function_name, s.kind) for s in self.result.usage_sites] == [
            ("forward", FORWARDED)
        ]
        self.then_exit_code_is(0)

    @pytest.mark.asyncio
    async def test_clean_file_has_no_findings(self, fixtures_path):
        """Forwarding and plain functions produce no findings."""
        self.given_single_file(fixtures_path, "clean.R")
        await self.when_paths_are_linted()
        self.then_findings_are()
        self.then_exit_code_is(0)

    @pytest.mark.asyncio
    async def test_missing_path_becomes_finding(self, fixtures_path):
        """A path that does not exist is reported, not raised."""
        self.given_missing_path(fixtures_path)
        await self.when_paths_are_linted()
        self.then_findings_are(("does_not_exist.R", 1, "warning", "read-error"))
        self.then_exit_code_is(0)

    @pytest.mark.asyncio
    async def test_result_serializes_to_valid_json(self, fixtures_path):
        """lint_paths result can be serialized to valid JSON."""
        self.given_sample_directory(fixtures_path)
        await self.when_paths_are_linted()
        parsed = json.loads(self.result.to_json())
        assert parsed["files_scanned"] == 4
        assert len(parsed["findings"]) == 4


class TestLintSource:
    def given_source(self, source):
        self.source = source

    def when_source_is_linted(self):
        self.result = lint_source(self.source, "snippet.R")

    def test_coerced_dots_is_reported(self):
        """sum(c(...)) yields one coercion finding suggesting a named parameter."""
        self.given_source("f <- function(...) sum(c(...))\n")
        self.when_source_is_linted()
        assert [s.kind for s in self.result.usage_sites] == [COERCED]
        assert len(self.result.findings) == 1
        assert "named parameter" in self.result.findings[0].message
        assert self.result.exit_code == 1

    def test_definition_and_call_in_same_source(self):
        """The na.omit scenario is reported next to the coercion."""
        self.given_source(
            "f <- function(...) sum(c(...))\nf(1, 1, 1, na.omit = TRUE)\n"
        )
        self.when_source_is_linted()
        assert summarize(self.result.findings) == [
            ("snippet.R", 1, "error", "coerced-to-container"),
            ("snippet.R", 2, "error", "ambiguous-named-argument"),
        ]

    def test_identical_calls_on_one_line_are_reported_separately(self):
        """Each call site gets its own finding even when the text repeats."""
        self.given_source(
            "f <- function(...) length(c(...))\nf(na.omit = 1); f(na.omit = 1)\n"
        )
        self.when_source_is_linted()
        assert summarize(self.result.findings) == [
            ("snippet.R", 1, "error", "coerced-to-container"),
            ("snippet.R", 2, "error", "ambiguous-named-argument"),
            ("snippet.R", 2, "error", "ambiguous-named-argument"),
        ]

    def test_s3_generic_is_not_reported_as_unused_dots(self):
        """Dispatch through UseMethod() counts as using the dots."""
        self.given_source('area <- function(shape, ...) UseMethod("area")\n')
        self.when_source_is_linted()
        assert self.result.findings == []
        assert [s.target for s in self.result.usage_sites] == ["UseMethod"]

    def test_function_without_dots_has_no_findings(self):
        """Definitions without ... produce no usage sites or findings."""
        self.given_source("add <- function(a, b = 1) a + b\nadd(1, b = 2)\n")
        self.when_source_is_linted()
        assert self.result.usage_sites == []
        assert self.result.findings == []

    def test_unresolved_usage_is_reported_as_unknown(self):
        """Ambiguous usage is surfaced with unknown severity."""
        self.given_source("f <- function(x, ...) c(x, ...)\n")
        self.when_source_is_linted()
        assert summarize(self.result.findings) == [
            ("snippet.R", 1, "unknown", "unresolved-usage")
        ]
        assert self.result.exit_code == 0

    def test_later_definition_wins_for_call_matching(self):
        """A redefinition replaces the earlier signature."""
        self.given_source(
            "f <- function(x) x\nf <- function(x, ...) list(x, ...)\nf(1, y = 2)\n"
        )
        self.when_source_is_linted()
        assert [f.rule for f in self.result.findings] == ["ambiguous-named-argument"]


class TestCollectFiles:
    def test_explicit_file_is_kept_regardless_of_extension(self, fixtures_path):
        """Named files are linted even without an R extension."""
        files, findings = collect_files([str(fixtures_path / "notes.txt")])
        assert [f.name for f in files] == ["notes.txt"]
        assert findings == []

    def test_directory_files_are_sorted(self, fixtures_path):
        """Directory expansion is deterministic."""
        files, _ = collect_files([str(fixtures_path)])
        assert [f.name for f in files] == [
            "calls.R",
            "clean.R",
            "dots_usage.R",
            "malformed.R",
        ]
