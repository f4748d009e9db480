"""Tests for verdict classification."""

import pytest

from snippet_harness.classification import VerdictStatus, classify
from snippet_harness.execution import ExecutionResult, Outcome, Stage
from snippet_harness.extraction import ExpectedStage, Label, Snippet


def _snippet(label: Label, stage: ExpectedStage = ExpectedStage.ANY) -> Snippet:
    return Snippet(
        source="x\n",
        language="cpp",
        label=label,
        source_file="guide.md",
        position=3,
        expected_stage=stage,
    )


def _result(snippet: Snippet, outcome: Outcome, stage: Stage = Stage.RUN, **kwargs):
    return ExecutionResult(snippet=snippet, outcome=outcome, stage=stage, **kwargs)


@pytest.mark.parametrize(
    ("label", "outcome", "stage", "expected"),
    [
        (Label.FIXED, Outcome.SUCCESS, Stage.RUN, VerdictStatus.MATCH),
        (Label.FIXED, Outcome.RUNTIME_ERROR, Stage.RUN, VerdictStatus.MISMATCH),
        (Label.FIXED, Outcome.COMPILE_ERROR, Stage.COMPILE, VerdictStatus.MISMATCH),
        (Label.FIXED, Outcome.TIMEOUT, Stage.RUN, VerdictStatus.MISMATCH),
        (Label.BROKEN, Outcome.SUCCESS, Stage.RUN, VerdictStatus.MISMATCH),
        (Label.BROKEN, Outcome.RUNTIME_ERROR, Stage.RUN, VerdictStatus.MATCH),
        (Label.BROKEN, Outcome.COMPILE_ERROR, Stage.COMPILE, VerdictStatus.MATCH),
        (Label.BROKEN, Outcome.TIMEOUT, Stage.RUN, VerdictStatus.MATCH),
        (Label.BROKEN, Outcome.TOOLCHAIN_MISSING, Stage.NONE, VerdictStatus.INDETERMINATE),
        (Label.FIXED, Outcome.TOOLING_ERROR, Stage.NONE, VerdictStatus.INDETERMINATE),
    ],
)
def test_broken_fixed_rule(label, outcome, stage, expected):
    snippet = _snippet(label)
    verdict = classify(snippet, _result(snippet, outcome, stage, exit_code=1))
    assert verdict.status is expected
    assert verdict.snippet is snippet


def test_compile_claim_requires_compile_stage_failure():
    snippet = _snippet(Label.BROKEN, ExpectedStage.COMPILE)

    run_failure = classify(
        snippet,
        _result(
            snippet,
            Outcome.RUNTIME_ERROR,
            Stage.RUN,
            exit_code=139,
            compile_exit_code=0,
            compiled=True,
        ),
    )
    assert run_failure.status is VerdictStatus.MISMATCH
    assert "expected compile error" in run_failure.reason

    compile_failure = classify(
        snippet, _result(snippet, Outcome.COMPILE_ERROR, Stage.COMPILE, compile_exit_code=1)
    )
    assert compile_failure.status is VerdictStatus.MATCH
    assert "compile error (exit 1)" in compile_failure.reason


def test_compile_claim_on_interpreted_toolchain_accepts_run_failure():
    snippet = _snippet(Label.BROKEN, ExpectedStage.COMPILE)
    verdict = classify(
        snippet, _result(snippet, Outcome.RUNTIME_ERROR, Stage.RUN, exit_code=1, compiled=False)
    )
    assert verdict.status is VerdictStatus.MATCH
    assert verdict.reason == "broken snippet failed: runtime-error (exit 1)"


def test_fixed_snippet_must_have_clean_stderr():
    snippet = _snippet(Label.FIXED)

    noisy = classify(
        snippet,
        _result(snippet, Outcome.SUCCESS, exit_code=0, stderr="DeprecationWarning: old api\n"),
    )
    assert noisy.status is VerdictStatus.MISMATCH
    assert noisy.reason == "fixed snippet wrote to stderr"

    warned_at_compile = classify(
        snippet,
        _result(
            snippet,
            Outcome.SUCCESS,
            exit_code=0,
            compile_output="warning: unused variable 'x'\n",
            stderr="\n",
        ),
    )
    assert warned_at_compile.status is VerdictStatus.MATCH


def test_runtime_claim_accepts_any_failure():
    snippet = _snippet(Label.BROKEN, ExpectedStage.RUNTIME)
    verdict = classify(snippet, _result(snippet, Outcome.COMPILE_ERROR, Stage.COMPILE))
    assert verdict.status is VerdictStatus.MATCH


def test_verdict_to_dict_includes_snippet_and_result():
    snippet = _snippet(Label.FIXED)
    verdict = classify(snippet, _result(snippet, Outcome.SUCCESS, exit_code=0))
    payload = verdict.to_dict()
    assert payload["id"] == "guide.md:3"
    assert payload["label"] == "fixed"
    assert payload["verdict"] == "match"
    assert payload["result"]["outcome"] == "success"
    assert payload["result"]["exit_code"] == 0
