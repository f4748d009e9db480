"""
Snippet Harness - validate broken/fixed code samples embedded in markdown tutorials.
"""

from .batch import BatchRunner, BatchRunResult
from .classification import Verdict, VerdictStatus, classify
from .execution import ExecutionResult, Outcome, SnippetRunner
from .extraction import ExtractionResult, Label, SkippedBlock, Snippet, SnippetExtractor

__version__ = "0.1.0"

__all__ = [
    "BatchRunResult",
    "BatchRunner",
    "ExecutionResult",
    "ExtractionResult",
    "Label",
    "Outcome",
    "SkippedBlock",
    "Snippet",
    "SnippetExtractor",
    "SnippetRunner",
    "Verdict",
    "VerdictStatus",
    "classify",
]
