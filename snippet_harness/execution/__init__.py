"""
Snippet execution with bounded timeouts.
"""

from .process import ProcessResult, run_process, truncate_output
from .runner import FAILURE_OUTCOMES, ExecutionResult, Outcome, SnippetRunner, Stage

__all__ = [
    "FAILURE_OUTCOMES",
    "ExecutionResult",
    "Outcome",
    "ProcessResult",
    "SnippetRunner",
    "Stage",
    "run_process",
    "truncate_output",
]
