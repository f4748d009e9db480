"""
Batch execution of snippets over a bounded worker pool.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from .classification import Verdict, VerdictStatus, classify, indeterminate
from .core.config import HarnessConfig
from .core.exceptions import ConfigurationError, ToolchainNotFoundError
from .core.logging import get_logger
from .execution import ExecutionResult, Outcome, SnippetRunner
from .extraction import Snippet

logger = get_logger(__name__)

CANCELLED_REASON = "cancelled before launch"


@dataclass(slots=True)
class BatchRunResult:
    """Ordered verdicts for one batch plus batch-level bookkeeping."""

    verdicts: list[Verdict] = field(default_factory=list)
    missing_toolchains: dict[str, str] = field(default_factory=dict)
    cancelled: bool = False
    duration_seconds: float = 0.0

    def count(self, status: VerdictStatus) -> int:
        return sum(1 for verdict in self.verdicts if verdict.status is status)

    @property
    def mismatches(self) -> list[Verdict]:
        return [verdict for verdict in self.verdicts if verdict.is_mismatch]


class BatchRunner:
    """
    Runs snippets independently and classifies each result.

    Each worker owns at most one toolchain subprocess at a time. Cancellation is
    cooperative: once `cancel()` is called no new snippet is launched, while
    in-flight snippets finish or time out. A missing toolchain is reported once
    and every later snippet in that language is marked indeterminate without
    being launched.
    """

    def __init__(
        self,
        config: HarnessConfig | None = None,
        *,
        runner: SnippetRunner | None = None,
        cancel_event: threading.Event | None = None,
        on_verdict: Callable[[Verdict], None] | None = None,
    ):
        self.config = config or HarnessConfig()
        self.runner = runner or SnippetRunner(self.config)
        self.cancel_event = cancel_event or threading.Event()
        self.on_verdict = on_verdict
        self._missing: dict[str, str] = {}
        self._lock = threading.Lock()

    def cancel(self) -> None:
        """Stop launching new snippets."""
        if not self.cancel_event.is_set():
            logger.warning("Cancellation requested; waiting for in-flight snippets")
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def run(self, snippets: Sequence[Snippet]) -> BatchRunResult:
        """Execute and classify snippets, returning verdicts in input order."""
        start = time.perf_counter()
        verdicts: list[Verdict | None] = [None] * len(snippets)
        workers = max(1, int(self.config.jobs))

        if workers <= 1 or len(snippets) <= 1:
            for idx, snippet in enumerate(snippets):
                verdicts[idx] = self._process(snippet)
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="snippet") as executor:
                future_map = {
                    executor.submit(self._process, snippet): idx
                    for idx, snippet in enumerate(snippets)
                }
                for future in as_completed(future_map):
                    idx = future_map[future]
                    verdicts[idx] = future.result()

        with self._lock:
            missing = dict(self._missing)
        return BatchRunResult(
            verdicts=[verdict for verdict in verdicts if verdict is not None],
            missing_toolchains=missing,
            cancelled=self.cancelled,
            duration_seconds=time.perf_counter() - start,
        )

    def _process(self, snippet: Snippet) -> Verdict:
        verdict = self._judge(snippet)
        if self.on_verdict is not None:
            self.on_verdict(verdict)
        return verdict

    def _judge(self, snippet: Snippet) -> Verdict:
        if self.cancelled:
            return indeterminate(snippet, CANCELLED_REASON)

        with self._lock:
            missing_executable = self._missing.get(snippet.language)
        if missing_executable is not None:
            reason = f"{snippet.language} toolchain not found ({missing_executable})"
            return indeterminate(
                snippet, reason, self._placeholder(snippet, Outcome.TOOLCHAIN_MISSING, reason)
            )

        try:
            result = self.runner.execute(snippet)
        except ToolchainNotFoundError as exc:
            self._record_missing(snippet.language, exc.executable)
            result = self._placeholder(snippet, Outcome.TOOLCHAIN_MISSING, str(exc))
        except ConfigurationError as exc:
            result = self._placeholder(snippet, Outcome.TOOLING_ERROR, str(exc))
        except Exception as exc:
            logger.error(f"Harness failure on {snippet.snippet_id}: {exc}")
            result = self._placeholder(snippet, Outcome.TOOLING_ERROR, f"harness error: {exc}")

        return classify(snippet, result)

    def _record_missing(self, language: str, executable: str) -> None:
        with self._lock:
            first = language not in self._missing
            self._missing.setdefault(language, executable)
        if first:
            logger.warning(
                f"{language} toolchain not found ({executable}); "
                f"remaining {language} snippets will be marked indeterminate"
            )

    @staticmethod
    def _placeholder(snippet: Snippet, outcome: Outcome, detail: str) -> ExecutionResult:
        return ExecutionResult(snippet=snippet, outcome=outcome, detail=detail)
