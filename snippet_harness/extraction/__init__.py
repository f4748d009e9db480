"""
Snippet extraction from markdown tutorials.
"""

from .extractor import SnippetExtractor, extract_snippets, iter_fenced_blocks
from .snippet import ExpectedStage, ExtractionResult, Label, SkippedBlock, SkipReason, Snippet

__all__ = [
    "ExpectedStage",
    "ExtractionResult",
    "Label",
    "SkipReason",
    "SkippedBlock",
    "Snippet",
    "SnippetExtractor",
    "extract_snippets",
    "iter_fenced_blocks",
]
