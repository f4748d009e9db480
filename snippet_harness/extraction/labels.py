"""
Heuristics that assign broken/fixed labels and expected failure stages.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import PurePath

from .snippet import ExpectedStage, Label

# Lines of prose above a fence considered when inferring its label.
PROSE_WINDOW = 6
# Leading lines of a block searched for a filename comment.
FILENAME_COMMENT_LINES = 3

_COMMENT_PREFIX = r"(?://+|#+|--|/\*+|<!--|;+|\*|rem\b|REM\b)"
_FILENAME_COMMENT_RE = re.compile(
    r"^\s*(?:<\?php\s*)?" + _COMMENT_PREFIX + r"\s*(?:file(?:name)?\s*:\s*)?"
    r"(?P<name>[\w./-]*\w\.[A-Za-z0-9+#]{1,6})\b",
    re.IGNORECASE,
)
_COMMENT_LINE_RE = re.compile(r"^\s*(?:<\?php\s*)?" + _COMMENT_PREFIX, re.IGNORECASE)

_BROKEN_WORDS = (
    "broken",
    "buggy",
    "wrong",
    "incorrect",
    "bad",
    "before",
    "faulty",
    "erroneous",
    "problematic",
    "bug",
)
_FIXED_WORDS = (
    "fixed",
    "correct",
    "corrected",
    "good",
    "after",
    "solution",
    "working",
    "repaired",
    "fix",
)
_BROKEN_RE = re.compile(r"(?:\b(?:" + "|".join(_BROKEN_WORDS) + r")\b|❌|✗)", re.IGNORECASE)
_FIXED_RE = re.compile(r"(?:\b(?:" + "|".join(_FIXED_WORDS) + r")\b|✅|✓|✔)", re.IGNORECASE)

_COMPILE_STAGE_RE = re.compile(
    r"compil(?:e|ation|er)[\s-]*(?:time[\s-]*)?error"
    r"|(?:does\s*n[o']?t|won'?t|will\s+not|fails?\s+to|cannot|can'?t)\s+compile"
    r"|syntax\s+error|parse\s+error|build\s+(?:error|fails?|failure)",
    re.IGNORECASE,
)
_RUNTIME_STAGE_RE = re.compile(
    r"run[\s-]*time\s+(?:error|crash|failure|exception)"
    r"|\bcrash(?:es|ed)?\b|segfault|segmentation\s+fault|\bpanic(?:s)?\b"
    r"|uncaught\s+exception|throws?\b|infinite\s+loop|\bhangs?\b|deadlock"
    r"|stack\s+overflow|traceback|null\s*pointer|undefined\s+behaviou?r",
    re.IGNORECASE,
)


@dataclass(frozen=True, slots=True)
class FilenameComment:
    """A filename comment found at the top of a block (e.g. `// broken_05.cpp`)."""

    name: str
    line: int

    @property
    def extension(self) -> str:
        return PurePath(self.name).suffix.lower()

    @property
    def label(self) -> Label | None:
        return label_from_text(PurePath(self.name).stem.replace("_", " ").replace("-", " "))


def find_filename_comment(lines: list[str]) -> FilenameComment | None:
    """Return the first filename comment within the first few non-blank lines."""
    seen = 0
    for offset, line in enumerate(lines):
        if not line.strip():
            continue
        seen += 1
        if seen > FILENAME_COMMENT_LINES:
            break
        match = _FILENAME_COMMENT_RE.match(line)
        if match:
            return FilenameComment(name=match.group("name"), line=offset)
    return None


def label_from_text(text: str) -> Label | None:
    """Label carried by a line of text; the earliest keyword wins when both appear."""
    broken = _BROKEN_RE.search(text)
    fixed = _FIXED_RE.search(text)
    if broken and fixed:
        return Label.BROKEN if broken.start() < fixed.start() else Label.FIXED
    if broken:
        return Label.BROKEN
    if fixed:
        return Label.FIXED
    return None


def label_from_info(info_words: Iterable[str]) -> Label | None:
    """Label given explicitly in a fence info string (```cpp broken)."""
    for word in info_words:
        normalized = word.strip("{}.,;:()[]").lower()
        if normalized in {"broken", "bad", "buggy"}:
            return Label.BROKEN
        if normalized in {"fixed", "good", "correct"}:
            return Label.FIXED
    return None


def label_from_prose(prose: list[str]) -> Label | None:
    """Label from the nearest preceding prose line that carries one."""
    for line in reversed(prose):
        if not line.strip():
            continue
        label = label_from_text(line)
        if label is not None:
            return label
    return None


def comment_lines(lines: Iterable[str]) -> list[str]:
    return [line for line in lines if _COMMENT_LINE_RE.match(line)]


def infer_expected_stage(label: Label, texts: Iterable[str]) -> ExpectedStage:
    """Stage at which a broken snippet claims to fail, from prose and code comments."""
    if label is not Label.BROKEN:
        return ExpectedStage.ANY
    joined = "\n".join(texts)
    if _COMPILE_STAGE_RE.search(joined):
        return ExpectedStage.COMPILE
    if _RUNTIME_STAGE_RE.search(joined):
        return ExpectedStage.RUNTIME
    return ExpectedStage.ANY
