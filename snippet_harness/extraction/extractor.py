"""
Markdown scanner that turns fenced code blocks into snippets.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..core.exceptions import ConfigurationError, ExtractionError
from ..core.logging import get_logger
from ..toolchains.registry import language_for_extension, resolve_language
from .labels import (
    PROSE_WINDOW,
    comment_lines,
    find_filename_comment,
    infer_expected_stage,
    label_from_info,
    label_from_prose,
)
from .snippet import ExtractionResult, SkippedBlock, SkipReason, Snippet

logger = get_logger(__name__)

MARKDOWN_SUFFIXES = (".md", ".markdown")

_OPEN_FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(?P<fence>`{3,}|~{3,})(?P<info>.*)$")


@dataclass(slots=True)
class FencedBlock:
    """Raw fenced block before language and label resolution."""

    line: int
    indent: int
    info: str
    body: list[str]
    prose: list[str]
    terminated: bool

    @property
    def info_words(self) -> list[str]:
        return self.info.split()

    @property
    def tag(self) -> str:
        words = self.info_words
        if not words:
            return ""
        tag = words[0].strip("{}").lstrip(".")
        # ```python,ignore / ```rust:main.rs
        return re.split(r"[,:]", tag, maxsplit=1)[0]


def iter_fenced_blocks(text: str) -> list[FencedBlock]:
    """Split markdown text into fenced blocks, keeping the prose that precedes each."""
    lines = text.splitlines()
    blocks: list[FencedBlock] = []
    prose: list[str] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        match = _OPEN_FENCE_RE.match(line)
        if not match or (match.group("fence")[0] == "`" and "`" in match.group("info")):
            prose.append(line)
            i += 1
            continue

        fence = match.group("fence")
        indent = len(match.group("indent").expandtabs(4))
        close_re = re.compile(
            r"^[ \t]*" + re.escape(fence[0]) + "{" + str(len(fence)) + r",}[ \t]*$"
        )
        body: list[str] = []
        terminated = False
        j = i + 1
        while j < len(lines):
            if close_re.match(lines[j]):
                terminated = True
                break
            body.append(_dedent(lines[j], indent))
            j += 1

        blocks.append(
            FencedBlock(
                line=i + 1,
                indent=indent,
                info=match.group("info").strip(),
                body=body,
                prose=prose[-PROSE_WINDOW:],
                terminated=terminated,
            )
        )
        prose = []
        i = j + 1
    return blocks


def _dedent(line: str, indent: int) -> str:
    if indent <= 0:
        return line
    expanded = line.expandtabs(4)
    stripped = len(expanded) - len(expanded.lstrip(" "))
    return expanded[min(indent, stripped):]


class SnippetExtractor:
    """Extracts labeled snippets from a directory of markdown files."""

    def __init__(
        self,
        languages: list[str] | None = None,
        toolchains: dict[str, Any] | None = None,
    ):
        """
        Initialize the extractor.

        Args:
            languages: Optional allow-list of canonical language names
            toolchains: Configured toolchain overrides (adds custom languages)

        Raises:
            ConfigurationError: when the allow-list names an unknown language
        """
        self.toolchains = toolchains or {}
        self.languages: set[str] = set()
        for name in languages or []:
            if not name.strip():
                continue
            resolved = resolve_language(name, self.toolchains)
            if resolved is None:
                raise ConfigurationError(f"Unknown language in allow-list: {name.strip()}")
            self.languages.add(resolved)

    def extract(self, path: Path) -> ExtractionResult:
        """Extract snippets from a markdown file or every markdown file under a directory."""
        path = Path(path)
        if path.is_file():
            return self.extract_file(path, relative_to=path.parent)
        if not path.is_dir():
            raise ExtractionError(f"Input path does not exist: {path}")

        result = ExtractionResult()
        for file_path in self.discover(path):
            result.extend(self.extract_file(file_path, relative_to=path))
        logger.debug(
            f"Extracted {len(result.snippets)} snippets from {result.files_scanned} files "
            f"({result.skipped_count} skipped, {result.filtered_count} filtered)"
        )
        return result

    @staticmethod
    def discover(root: Path) -> list[Path]:
        return sorted(
            candidate
            for candidate in root.rglob("*")
            if candidate.is_file() and candidate.suffix.lower() in MARKDOWN_SUFFIXES
        )

    def extract_file(self, file_path: Path, relative_to: Path | None = None) -> ExtractionResult:
        """Extract snippets from a single markdown file."""
        display = self._display_name(file_path, relative_to)
        result = ExtractionResult(files_scanned=1)
        try:
            text = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Skipping unreadable file {display}: {exc}")
            result.skipped.append(
                SkippedBlock(
                    source_file=display,
                    position=0,
                    reason=SkipReason.UNREADABLE,
                    detail=str(exc),
                )
            )
            return result

        return self.extract_text(text, display, result)

    def extract_text(
        self, text: str, source_file: str, result: ExtractionResult | None = None
    ) -> ExtractionResult:
        """Extract snippets from markdown text attributed to `source_file`."""
        result = result if result is not None else ExtractionResult(files_scanned=1)
        index = 0
        for block in iter_fenced_blocks(text):
            outcome = self._resolve_block(block, source_file, index)
            if isinstance(outcome, SkippedBlock):
                logger.debug(f"Skipped block {source_file}:{block.line} ({outcome.reason.value})")
                result.skipped.append(outcome)
                continue
            if outcome is None:
                result.filtered_count += 1
                continue
            result.snippets.append(outcome)
            index += 1
        return result

    def _resolve_block(
        self, block: FencedBlock, source_file: str, index: int
    ) -> Snippet | SkippedBlock | None:
        def skip(reason: SkipReason, detail: str = "") -> SkippedBlock:
            return SkippedBlock(
                source_file=source_file,
                position=block.line,
                reason=reason,
                raw_language=block.tag,
                detail=detail,
            )

        if not block.terminated:
            return skip(SkipReason.UNTERMINATED, "fence is never closed")

        source = "\n".join(block.body).strip("\n")
        if not source.strip():
            return skip(SkipReason.EMPTY)

        filename_comment = find_filename_comment(block.body)
        tag = block.tag
        if tag:
            language = resolve_language(tag, self.toolchains)
            if language is None:
                return skip(SkipReason.UNSUPPORTED_LANGUAGE, f"no toolchain for '{tag}'")
        else:
            language = None
            if filename_comment is not None:
                language = language_for_extension(filename_comment.extension)
            if language is None:
                return skip(SkipReason.UNTAGGED, "fence has no language tag")

        if self.languages and language not in self.languages:
            return None

        label = None
        if filename_comment is not None:
            label = filename_comment.label
        if label is None:
            label = label_from_info(block.info_words[1:])
        if label is None:
            label = label_from_prose(block.prose)
        if label is None:
            return skip(SkipReason.UNLABELED, "no broken/fixed marker in filename comment or prose")

        nearby_prose = [line for line in block.prose if line.strip()][-2:]
        stage = infer_expected_stage(label, [*nearby_prose, *comment_lines(block.body)])
        return Snippet(
            source=source + "\n",
            language=language,
            label=label,
            source_file=source_file,
            position=block.line,
            index=index,
            raw_language=tag,
            filename_hint=filename_comment.name if filename_comment else None,
            expected_stage=stage,
        )

    @staticmethod
    def _display_name(file_path: Path, relative_to: Path | None) -> str:
        if relative_to is not None:
            try:
                return file_path.relative_to(relative_to).as_posix()
            except ValueError:
                pass
        return file_path.as_posix()


def extract_snippets(path: Path, languages: list[str] | None = None) -> ExtractionResult:
    """Convenience wrapper around `SnippetExtractor.extract`."""
    return SnippetExtractor(languages=languages).extract(path)
