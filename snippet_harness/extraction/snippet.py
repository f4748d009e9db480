"""
Snippet records produced by the extractor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Label(str, Enum):
    """Author's claim about a snippet."""

    BROKEN = "broken"
    FIXED = "fixed"


class ExpectedStage(str, Enum):
    """Stage at which a broken snippet claims to fail."""

    COMPILE = "compile"
    RUNTIME = "runtime"
    ANY = "any"


class SkipReason(str, Enum):
    """Why a fenced block did not become a snippet."""

    UNTAGGED = "untagged"
    UNSUPPORTED_LANGUAGE = "unsupported-language"
    UNLABELED = "unlabeled"
    UNTERMINATED = "unterminated"
    EMPTY = "empty"
    UNREADABLE = "unreadable"


@dataclass(frozen=True, slots=True)
class Snippet:
    """A single fenced code block extracted from a tutorial document."""

    source: str
    language: str
    label: Label
    source_file: str
    position: int
    index: int = 0
    raw_language: str = ""
    filename_hint: str | None = None
    expected_stage: ExpectedStage = ExpectedStage.ANY

    @property
    def snippet_id(self) -> str:
        return f"{self.source_file}:{self.position}"

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.snippet_id,
            "source_file": self.source_file,
            "position": self.position,
            "index": self.index,
            "language": self.language,
            "raw_language": self.raw_language,
            "label": self.label.value,
            "expected_stage": self.expected_stage.value,
            "filename_hint": self.filename_hint,
        }


@dataclass(frozen=True, slots=True)
class SkippedBlock:
    """A fenced block (or file) the extractor could not turn into a snippet."""

    source_file: str
    position: int
    reason: SkipReason
    raw_language: str = ""
    detail: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "source_file": self.source_file,
            "position": self.position,
            "reason": self.reason.value,
            "raw_language": self.raw_language,
            "detail": self.detail,
        }


@dataclass(slots=True)
class ExtractionResult:
    """Ordered extraction output for a corpus."""

    snippets: list[Snippet] = field(default_factory=list)
    skipped: list[SkippedBlock] = field(default_factory=list)
    files_scanned: int = 0
    filtered_count: int = 0

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def skip_reasons(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for block in self.skipped:
            counts[block.reason.value] = counts.get(block.reason.value, 0) + 1
        return counts

    def extend(self, other: ExtractionResult) -> None:
        self.snippets.extend(other.snippets)
        self.skipped.extend(other.skipped)
        self.files_scanned += other.files_scanned
        self.filtered_count += other.filtered_count
