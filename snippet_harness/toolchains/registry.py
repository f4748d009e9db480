"""
Toolchain registry and health checks.
"""

import shutil
from dataclasses import dataclass, replace
from typing import Any

from ..core.exceptions import ConfigurationError
from ..core.logging import get_logger
from .base import ToolchainSpec

logger = get_logger(__name__)

BUILTIN_TOOLCHAINS: dict[str, ToolchainSpec] = {
    spec.language: spec
    for spec in (
        ToolchainSpec(
            language="cpp",
            compile=("g++", "-std=c++17", "-O0", "-o", "{binary}", "{source}"),
            run=("{binary}",),
            source_name="main.cpp",
            aliases=("c++", "cxx", "cc", "hpp"),
            extensions=(".cpp", ".cc", ".cxx", ".c++"),
        ),
        ToolchainSpec(
            language="c",
            compile=("gcc", "-std=c11", "-O0", "-o", "{binary}", "{source}", "-lm"),
            run=("{binary}",),
            source_name="main.c",
            aliases=("h",),
            extensions=(".c",),
        ),
        ToolchainSpec(
            language="java",
            compile=("javac", "-d", "{workdir}", "{source}"),
            run=("java", "-cp", "{workdir}", "{entry}"),
            source_name="Main.java",
            extensions=(".java",),
            name_pattern=r"^\s*public\s+(?:(?:final|abstract)\s+)*class\s+([A-Za-z_]\w*)",
            entry_pattern=(
                r"\bclass\s+([A-Za-z_]\w*)(?:(?!\bclass\b).)*?"
                r"\bstatic\b[^;{}()]*\bvoid\s+main\s*\("
            ),
        ),
        ToolchainSpec(
            language="go",
            compile=("go", "build", "-o", "{binary}", "{source}"),
            run=("{binary}",),
            source_name="main.go",
            aliases=("golang",),
            extensions=(".go",),
            extra_env={"GO111MODULE": "off", "CGO_ENABLED": "0"},
        ),
        ToolchainSpec(
            language="csharp",
            compile=("mcs", "-out:{binary}.exe", "{source}"),
            run=("mono", "{binary}.exe"),
            source_name="Program.cs",
            aliases=("cs", "c#"),
            extensions=(".cs",),
        ),
        ToolchainSpec(
            language="rust",
            compile=("rustc", "-o", "{binary}", "{source}"),
            run=("{binary}",),
            source_name="main.rs",
            aliases=("rs",),
            extensions=(".rs",),
        ),
        ToolchainSpec(
            language="python",
            run=("python3", "{source}"),
            source_name="main.py",
            aliases=("py", "python3", "py3"),
            extensions=(".py",),
            extra_env={"PYTHONUNBUFFERED": "1", "PYTHONDONTWRITEBYTECODE": "1"},
        ),
        ToolchainSpec(
            language="php",
            run=("php", "{source}"),
            source_name="main.php",
            extensions=(".php",),
        ),
        ToolchainSpec(
            language="javascript",
            run=("node", "{source}"),
            source_name="main.js",
            aliases=("js", "node", "nodejs"),
            extensions=(".js", ".mjs", ".cjs"),
        ),
        ToolchainSpec(
            language="sql",
            run=("sqlite3", "-bail", ":memory:", ".read {source_name}"),
            source_name="main.sql",
            aliases=("sqlite", "sqlite3"),
            extensions=(".sql",),
        ),
        ToolchainSpec(
            language="shell",
            run=("bash", "{source}"),
            source_name="main.sh",
            aliases=("sh", "bash", "zsh"),
            extensions=(".sh", ".bash"),
        ),
    )
}

SUPPORTED_LANGUAGES = frozenset(BUILTIN_TOOLCHAINS)


@dataclass(slots=True)
class ToolchainHealth:
    """Availability information for a language toolchain."""

    language: str
    available: bool
    detail: str
    missing: list[str]


def _alias_table(toolchains: dict[str, Any] | None = None) -> dict[str, str]:
    table: dict[str, str] = {}
    for spec in BUILTIN_TOOLCHAINS.values():
        table[spec.language] = spec.language
        for alias in spec.aliases:
            table[alias] = spec.language
    for language in toolchains or {}:
        table.setdefault(str(language).lower(), str(language).lower())
    return table


def resolve_language(tag: str | None, toolchains: dict[str, Any] | None = None) -> str | None:
    """Map a fence info-string tag to a canonical language name."""
    normalized = (tag or "").strip().lower()
    if not normalized:
        return None
    return _alias_table(toolchains).get(normalized)


def language_for_extension(extension: str) -> str | None:
    """Map a file extension such as '.cpp' to a canonical language name."""
    normalized = (extension or "").strip().lower()
    if not normalized:
        return None
    if not normalized.startswith("."):
        normalized = f".{normalized}"
    for spec in BUILTIN_TOOLCHAINS.values():
        if normalized in spec.extensions:
            return spec.language
    return None


def supported_languages(harness_config: Any = None) -> list[str]:
    """Built-in languages plus any defined only through configuration."""
    languages = set(SUPPORTED_LANGUAGES)
    for language, override in (getattr(harness_config, "toolchains", None) or {}).items():
        if getattr(override, "enabled", True):
            languages.add(language)
        else:
            languages.discard(language)
    return sorted(languages)


def create_toolchain(language: str, harness_config: Any = None) -> ToolchainSpec:
    """Create the effective toolchain for a language, applying config overrides."""
    overrides = getattr(harness_config, "toolchains", None) or {}
    normalized = resolve_language(language, overrides)
    if normalized is None:
        raise ConfigurationError(
            f"Unsupported language '{language}'. "
            f"Supported: {', '.join(supported_languages(harness_config))}"
        )

    override = overrides.get(normalized)
    base = BUILTIN_TOOLCHAINS.get(normalized)
    if override is not None and not getattr(override, "enabled", True):
        raise ConfigurationError(f"Toolchain for '{normalized}' is disabled in configuration.")

    if base is None:
        run = list(getattr(override, "run", None) or [])
        if not run:
            raise ConfigurationError(
                f"Toolchain '{normalized}' has no run command. Set toolchains.{normalized}.run."
            )
        compile_cmd = getattr(override, "compile", None)
        return ToolchainSpec(
            language=normalized,
            run=tuple(run),
            compile=tuple(compile_cmd) if compile_cmd else None,
            source_name=getattr(override, "source_name", None) or f"main.{normalized}",
        )

    if override is None:
        return base

    changes: dict[str, Any] = {}
    if override.run:
        changes["run"] = tuple(str(token) for token in override.run)
    if override.compile is not None:
        # An empty compile list turns a compiled language into an interpreted one.
        changes["compile"] = tuple(str(token) for token in override.compile) or None
    if override.source_name:
        changes["source_name"] = override.source_name
    return replace(base, **changes) if changes else base


def detect_toolchain_health(harness_config: Any = None) -> dict[str, ToolchainHealth]:
    """Probe PATH for every configured toolchain's executables."""
    health: dict[str, ToolchainHealth] = {}
    for language in supported_languages(harness_config):
        try:
            spec = create_toolchain(language, harness_config)
        except ConfigurationError as exc:
            health[language] = ToolchainHealth(
                language=language, available=False, detail=str(exc), missing=[]
            )
            continue

        missing = [name for name in spec.executables() if shutil.which(name) is None]
        if missing:
            detail = f"not found on PATH: {', '.join(missing)}"
        else:
            found = [shutil.which(name) or name for name in spec.executables()]
            detail = ", ".join(found) or "no external executable"
        health[language] = ToolchainHealth(
            language=language,
            available=not missing,
            detail=detail,
            missing=missing,
        )
        logger.debug(f"Toolchain {language}: {detail}")
    return health
