"""
Core functionality for Snippet Harness.
"""

from .config import ConfigManager, HarnessConfig, ToolchainOverride
from .exceptions import (
    ConfigurationError,
    ExtractionError,
    SnippetHarnessError,
    ToolchainError,
    ToolchainNotFoundError,
)
from .logging import get_logger, setup_logging

__all__ = [
    "ConfigManager",
    "ConfigurationError",
    "ExtractionError",
    "HarnessConfig",
    "SnippetHarnessError",
    "ToolchainError",
    "ToolchainNotFoundError",
    "ToolchainOverride",
    "get_logger",
    "setup_logging",
]
