"""
Configuration management for Snippet Harness.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError


def _default_jobs() -> int:
    return max(1, min(4, os.cpu_count() or 1))


@dataclass
class ToolchainOverride:
    """Per-language override of the built-in toolchain commands."""

    compile: list[str] | None = None
    run: list[str] | None = None
    source_name: str | None = None
    enabled: bool = True


@dataclass
class HarnessConfig:
    """Main harness configuration."""

    run_timeout_seconds: float = 10.0
    compile_timeout_seconds: float = 60.0
    jobs: int = field(default_factory=_default_jobs)
    max_output_chars: int = 20000
    languages: list[str] = field(default_factory=list)
    env_allowlist: list[str] = field(default_factory=list)
    toolchains: dict[str, ToolchainOverride] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.run_timeout_seconds <= 0:
            raise ConfigurationError("run_timeout_seconds must be positive")
        if self.compile_timeout_seconds <= 0:
            raise ConfigurationError("compile_timeout_seconds must be positive")
        if self.jobs < 1:
            raise ConfigurationError("jobs must be at least 1")
        if self.max_output_chars < 0:
            raise ConfigurationError("max_output_chars cannot be negative")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "HarnessConfig":
        """Build a config from a plain mapping, ignoring unknown keys."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        raw_languages = data.get("languages", [])
        if isinstance(raw_languages, str):
            languages = [item.strip() for item in raw_languages.split(",") if item.strip()]
        elif isinstance(raw_languages, list):
            languages = [str(item).strip() for item in raw_languages if str(item).strip()]
        else:
            languages = []

        toolchains: dict[str, ToolchainOverride] = {}
        raw_toolchains = data.get("toolchains") or {}
        if not isinstance(raw_toolchains, dict):
            raise ConfigurationError("toolchains must be a mapping of language -> override")
        for language, override in raw_toolchains.items():
            override = override or {}
            if not isinstance(override, dict):
                raise ConfigurationError(f"toolchains.{language} must be a mapping")
            try:
                toolchains[str(language).strip().lower()] = ToolchainOverride(**override)
            except TypeError as exc:
                raise ConfigurationError(f"Invalid toolchains.{language}: {exc}") from exc

        valid_fields = {
            "run_timeout_seconds",
            "compile_timeout_seconds",
            "jobs",
            "max_output_chars",
            "env_allowlist",
        }
        filtered = {k: v for k, v in data.items() if k in valid_fields and v is not None}
        filtered["languages"] = languages
        filtered["toolchains"] = toolchains
        if "env_allowlist" in filtered:
            filtered["env_allowlist"] = [str(item) for item in filtered["env_allowlist"] or []]
        return cls(**filtered)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "HarnessConfig":
        """Load configuration from a YAML or JSON file."""
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                if config_path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        return cls.from_dict(data)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to a YAML or JSON file."""
        data = asdict(self)
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w", encoding="utf-8") as f:
                if config_path.suffix.lower() == ".json":
                    json.dump(data, f, indent=2)
                else:
                    yaml.safe_dump(data, f, default_flow_style=False, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}") from e

    def with_overrides(self, **overrides: Any) -> "HarnessConfig":
        """Return a copy with non-None keyword overrides applied (CLI flags)."""
        data = asdict(self)
        data["toolchains"] = dict(self.toolchains)
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in data:
                raise ConfigurationError(f"Unknown configuration key: {key}")
            data[key] = value
        return HarnessConfig(**data)


class ConfigManager:
    """Locates and loads the project configuration."""

    CONFIG_FILENAME = "snippet_harness.yaml"
    ALT_CONFIG_FILENAME = "snippet_harness.json"

    def __init__(self, project_root: Path | None = None, config_path: Path | None = None):
        self.project_root = project_root or Path.cwd()
        self._explicit_path = config_path
        self.config_path = self._resolve_config_path()
        self._config: HarnessConfig | None = None

    def _resolve_config_path(self) -> Path:
        if self._explicit_path is not None:
            return self._explicit_path
        primary = self.project_root / self.CONFIG_FILENAME
        alternate = self.project_root / self.ALT_CONFIG_FILENAME
        if primary.exists():
            return primary
        if alternate.exists():
            return alternate
        return primary

    @property
    def config(self) -> HarnessConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self.load_config()
        return self._config

    def load_config(self) -> HarnessConfig:
        """Load configuration from file, or defaults when no file exists."""
        if self._explicit_path is not None:
            # An explicitly requested file must exist.
            self._config = HarnessConfig.load_from_file(self._explicit_path)
        elif self.config_path.exists():
            self._config = HarnessConfig.load_from_file(self.config_path)
        else:
            self._config = HarnessConfig()
        return self._config

    def save_config(self) -> None:
        """Save current configuration to its resolved path."""
        if self._config is None:
            raise ConfigurationError("No configuration to save")
        self._config.save_to_file(self.config_path)
