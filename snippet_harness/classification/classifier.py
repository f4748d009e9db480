"""
Compares observed outcomes with the author's broken/fixed claim.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..execution.runner import ExecutionResult, Outcome, Stage
from ..extraction.snippet import ExpectedStage, Label, Snippet


class VerdictStatus(str, Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    INDETERMINATE = "indeterminate"


@dataclass(slots=True)
class Verdict:
    """Comparison between a snippet's claimed and observed outcome."""

    snippet: Snippet
    status: VerdictStatus
    reason: str
    result: ExecutionResult | None = None

    @property
    def is_mismatch(self) -> bool:
        return self.status is VerdictStatus.MISMATCH

    def to_dict(self) -> dict[str, object]:
        return {
            **self.snippet.to_dict(),
            "verdict": self.status.value,
            "reason": self.reason,
            "result": self.result.to_dict() if self.result is not None else None,
        }


def classify(snippet: Snippet, result: ExecutionResult) -> Verdict:
    """
    Apply the broken/fixed rule to one execution result.

    Broken snippets must fail (compile error, runtime error or timeout). A broken
    snippet that claims a compile error must fail at the compile stage when its
    toolchain has one; interpreters report syntax errors at run time, so for them
    any failure matches. Fixed snippets must exit zero with clean output: nothing
    written to stderr by the run. Compiler warnings do not count. Missing
    toolchains and harness failures are indeterminate.
    """
    outcome = result.outcome
    if outcome is Outcome.TOOLCHAIN_MISSING:
        return indeterminate(snippet, result.detail or "toolchain missing", result)
    if outcome is Outcome.TOOLING_ERROR:
        return indeterminate(snippet, result.detail or "tooling error", result)

    if snippet.label is Label.FIXED:
        if result.succeeded and result.stderr.strip():
            return Verdict(
                snippet, VerdictStatus.MISMATCH, "fixed snippet wrote to stderr", result
            )
        if result.succeeded:
            return Verdict(snippet, VerdictStatus.MATCH, "fixed snippet succeeded", result)
        return Verdict(
            snippet,
            VerdictStatus.MISMATCH,
            f"fixed snippet failed: {_describe_failure(result)}",
            result,
        )

    if result.succeeded:
        return Verdict(snippet, VerdictStatus.MISMATCH, "broken snippet succeeded", result)

    if (
        snippet.expected_stage is ExpectedStage.COMPILE
        and result.compiled
        and result.stage is not Stage.COMPILE
    ):
        return Verdict(
            snippet,
            VerdictStatus.MISMATCH,
            f"expected compile error, failed at run: {_describe_failure(result)}",
            result,
        )

    return Verdict(
        snippet,
        VerdictStatus.MATCH,
        f"broken snippet failed: {_describe_failure(result)}",
        result,
    )


def indeterminate(snippet: Snippet, reason: str, result: ExecutionResult | None = None) -> Verdict:
    """Verdict for a snippet that could not be judged (cancelled, no toolchain, ...)."""
    return Verdict(snippet, VerdictStatus.INDETERMINATE, reason, result)


def _describe_failure(result: ExecutionResult) -> str:
    if result.outcome is Outcome.TIMEOUT:
        return f"{result.stage.value} timeout"
    if result.outcome is Outcome.COMPILE_ERROR:
        return f"compile error (exit {result.compile_exit_code})"
    return f"{result.outcome.value} (exit {result.exit_code})"
