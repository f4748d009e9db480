"""
Base types for language toolchains.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePath


@dataclass(frozen=True, slots=True)
class CommandContext:
    """Values substituted into toolchain command templates."""

    source: str
    binary: str
    workdir: str
    source_name: str
    stem: str
    # Class or module holding the entry point; falls back to the stem.
    entry: str = ""

    def expand(self, template: tuple[str, ...] | list[str]) -> list[str]:
        mapping = {
            "{source}": self.source,
            "{binary}": self.binary,
            "{workdir}": self.workdir,
            "{source_name}": self.source_name,
            "{stem}": self.stem,
            "{entry}": self.entry or self.stem,
        }
        expanded: list[str] = []
        for token in template:
            value = str(token)
            for key, replacement in mapping.items():
                value = value.replace(key, replacement)
            expanded.append(value)
        return expanded


@dataclass(frozen=True, slots=True)
class ToolchainSpec:
    """Compile and run command templates for one language."""

    language: str
    run: tuple[str, ...]
    compile: tuple[str, ...] | None = None
    source_name: str = "main.txt"
    aliases: tuple[str, ...] = ()
    extensions: tuple[str, ...] = ()
    # Regex whose first group names the source stem (e.g. Java public class).
    name_pattern: str | None = None
    # Regex whose first group names the entry point (e.g. the Java class with main).
    entry_pattern: str | None = None
    extra_env: dict[str, str] = field(default_factory=dict)

    @property
    def compiled(self) -> bool:
        return bool(self.compile)

    def executables(self) -> list[str]:
        """External programs this toolchain needs on PATH."""
        names: list[str] = []
        for template in (self.compile, self.run):
            if not template:
                continue
            head = str(template[0])
            if "{" in head:
                continue
            if head not in names:
                names.append(head)
        return names

    def source_filename(self, code: str, filename_hint: str | None = None) -> str:
        """Pick the file name a snippet is written to before compiling or running."""
        default_suffix = PurePath(self.source_name).suffix
        for pattern in (self.name_pattern, self.entry_pattern):
            if not pattern:
                continue
            match = re.search(pattern, code, flags=re.MULTILINE | re.DOTALL)
            if match:
                return f"{match.group(1)}{default_suffix}"
        if filename_hint:
            hint = PurePath(filename_hint).name
            suffix = PurePath(hint).suffix.lower()
            if hint and suffix and (suffix in self.extensions or suffix == default_suffix):
                return hint
        return self.source_name

    def entry_name(self, code: str, source_name: str) -> str:
        """Name substituted for `{entry}`: the matched entry point, else the source stem."""
        if self.entry_pattern:
            match = re.search(self.entry_pattern, code, flags=re.MULTILINE | re.DOTALL)
            if match:
                return match.group(1)
        return PurePath(source_name).stem
