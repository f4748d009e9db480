"""
Custom exceptions for Snippet Harness.
"""


class SnippetHarnessError(Exception):
    """Base exception for all harness errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(SnippetHarnessError):
    """Raised when configuration loading or validation fails."""


class ExtractionError(SnippetHarnessError):
    """Raised when the input corpus cannot be scanned at all."""


class ToolchainError(SnippetHarnessError):
    """Raised when a toolchain cannot be used for a snippet."""

    def __init__(self, message: str, language: str, details: dict | None = None):
        self.language = language
        super().__init__(message, details)


class ToolchainNotFoundError(ToolchainError):
    """Raised when a toolchain executable is not installed."""

    def __init__(self, language: str, executable: str):
        self.executable = executable
        super().__init__(
            f"{language} toolchain executable not found: {executable}",
            language=language,
            details={"executable": executable},
        )
