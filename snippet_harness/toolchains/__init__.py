"""
Language toolchains used to compile and run snippets.
"""

from .base import CommandContext, ToolchainSpec
from .registry import (
    BUILTIN_TOOLCHAINS,
    SUPPORTED_LANGUAGES,
    ToolchainHealth,
    create_toolchain,
    detect_toolchain_health,
    language_for_extension,
    resolve_language,
    supported_languages,
)

__all__ = [
    "BUILTIN_TOOLCHAINS",
    "CommandContext",
    "SUPPORTED_LANGUAGES",
    "ToolchainHealth",
    "ToolchainSpec",
    "create_toolchain",
    "detect_toolchain_health",
    "language_for_extension",
    "resolve_language",
    "supported_languages",
]
