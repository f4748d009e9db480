"""Tests for the batch worker pool."""

import threading

from snippet_harness.batch import CANCELLED_REASON, BatchRunner
from snippet_harness.classification import VerdictStatus
from snippet_harness.core.config import HarnessConfig
from snippet_harness.core.exceptions import ToolchainNotFoundError
from snippet_harness.execution import ExecutionResult, Outcome, Stage
from snippet_harness.extraction import Label, Snippet, SnippetExtractor


def _snippet(position: int, language: str = "python", label: Label = Label.FIXED) -> Snippet:
    return Snippet(
        source=f"print({position})\n",
        language=language,
        label=label,
        source_file="guide.md",
        position=position,
    )


class _FakeRunner:
    def __init__(self, missing: set[str] | None = None, fail_on: set[int] | None = None):
        self.missing = missing or set()
        self.fail_on = fail_on or set()
        self.calls: list[int] = []
        self._lock = threading.Lock()

    def execute(self, snippet: Snippet) -> ExecutionResult:
        with self._lock:
            self.calls.append(snippet.position)
        if snippet.language in self.missing:
            raise ToolchainNotFoundError(snippet.language, f"{snippet.language}-compiler")
        if snippet.position in self.fail_on:
            raise RuntimeError("disk full")
        return ExecutionResult(
            snippet=snippet,
            outcome=Outcome.SUCCESS,
            exit_code=0,
            stage=Stage.RUN,
        )


def test_results_preserve_input_order_with_parallel_workers():
    snippets = [_snippet(position) for position in range(1, 21)]
    batch = BatchRunner(HarnessConfig(jobs=4), runner=_FakeRunner())
    result = batch.run(snippets)

    assert [verdict.snippet.position for verdict in result.verdicts] == list(range(1, 21))
    assert result.count(VerdictStatus.MATCH) == 20
    assert result.mismatches == []


def test_missing_toolchain_is_tried_once_then_indeterminate():
    snippets = [_snippet(1, "go"), _snippet(2, "go"), _snippet(3, "python"), _snippet(4, "go")]
    runner = _FakeRunner(missing={"go"})
    result = BatchRunner(HarnessConfig(jobs=1), runner=runner).run(snippets)

    assert runner.calls == [1, 3]
    assert result.missing_toolchains == {"go": "go-compiler"}
    statuses = [verdict.status for verdict in result.verdicts]
    assert statuses == [
        VerdictStatus.INDETERMINATE,
        VerdictStatus.INDETERMINATE,
        VerdictStatus.MATCH,
        VerdictStatus.INDETERMINATE,
    ]
    assert all(
        verdict.result.outcome is Outcome.TOOLCHAIN_MISSING
        for verdict in result.verdicts
        if verdict.snippet.language == "go"
    )


def test_unexpected_runner_error_becomes_tooling_error():
    snippets = [_snippet(1), _snippet(2)]
    result = BatchRunner(HarnessConfig(jobs=1), runner=_FakeRunner(fail_on={1})).run(snippets)

    first, second = result.verdicts
    assert first.status is VerdictStatus.INDETERMINATE
    assert first.result.outcome is Outcome.TOOLING_ERROR
    assert "disk full" in first.reason
    assert second.status is VerdictStatus.MATCH


def test_cancel_stops_launching_new_snippets():
    snippets = [_snippet(position) for position in range(1, 6)]
    runner = _FakeRunner()
    batch = BatchRunner(HarnessConfig(jobs=1), runner=runner)

    def _cancel_after_second(verdict):
        if verdict.snippet.position == 2:
            batch.cancel()

    batch.on_verdict = _cancel_after_second
    result = batch.run(snippets)

    assert runner.calls == [1, 2]
    assert result.cancelled is True
    assert [verdict.status for verdict in result.verdicts[2:]] == [VerdictStatus.INDETERMINATE] * 3
    assert all(verdict.reason == CANCELLED_REASON for verdict in result.verdicts[2:])


def test_cancelled_before_start_launches_nothing():
    event = threading.Event()
    event.set()
    runner = _FakeRunner()
    result = BatchRunner(HarnessConfig(jobs=3), runner=runner, cancel_event=event).run(
        [_snippet(1), _snippet(2)]
    )
    assert runner.calls == []
    assert result.count(VerdictStatus.INDETERMINATE) == 2


def test_empty_batch():
    result = BatchRunner(HarnessConfig(), runner=_FakeRunner()).run([])
    assert result.verdicts == []
    assert result.cancelled is False


def test_fixed_snippets_are_deterministic_across_runs(harness_config, tutorial_markdown):
    extraction = SnippetExtractor(toolchains=harness_config.toolchains).extract_text(
        tutorial_markdown, "guide.md"
    )
    first = BatchRunner(harness_config).run(extraction.snippets)
    second = BatchRunner(harness_config).run(extraction.snippets)

    assert [v.status for v in first.verdicts] == [VerdictStatus.MATCH, VerdictStatus.MATCH]
    assert [(v.snippet.snippet_id, v.status) for v in first.verdicts] == [
        (v.snippet.snippet_id, v.status) for v in second.verdicts
    ]
