"""Tests for harness configuration loading."""

import json

import pytest

from snippet_harness.core.config import ConfigManager, HarnessConfig, ToolchainOverride
from snippet_harness.core.exceptions import ConfigurationError


def test_defaults_are_valid():
    config = HarnessConfig()
    assert config.run_timeout_seconds == 10.0
    assert config.compile_timeout_seconds == 60.0
    assert 1 <= config.jobs <= 4
    assert config.languages == []
    assert config.toolchains == {}


def test_load_yaml_with_toolchain_overrides(tmp_path):
    config_path = tmp_path / "snippet_harness.yaml"
    config_path.write_text(
        """
run_timeout_seconds: 3
jobs: 2
languages: cpp, python
env_allowlist:
  - JAVA_HOME
toolchains:
  cpp:
    compile: ["clang++", "-o", "{binary}", "{source}"]
  php:
    enabled: false
unknown_key: ignored
""".strip()
        + "\n",
        encoding="utf-8",
    )

    config = HarnessConfig.load_from_file(config_path)
    assert config.run_timeout_seconds == 3
    assert config.jobs == 2
    assert config.languages == ["cpp", "python"]
    assert config.env_allowlist == ["JAVA_HOME"]
    assert config.toolchains["cpp"].compile == ["clang++", "-o", "{binary}", "{source}"]
    assert config.toolchains["php"].enabled is False


def test_load_json(tmp_path):
    config_path = tmp_path / "snippet_harness.json"
    config_path.write_text(json.dumps({"compile_timeout_seconds": 12}), encoding="utf-8")
    assert HarnessConfig.load_from_file(config_path).compile_timeout_seconds == 12


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        HarnessConfig.load_from_file(tmp_path / "nope.yaml")


def test_invalid_values_raise():
    with pytest.raises(ConfigurationError):
        HarnessConfig(run_timeout_seconds=0)
    with pytest.raises(ConfigurationError):
        HarnessConfig(jobs=0)
    with pytest.raises(ConfigurationError, match="toolchains.go"):
        HarnessConfig.from_dict({"toolchains": {"go": {"bogus": True}}})


def test_malformed_yaml_raises(tmp_path):
    config_path = tmp_path / "snippet_harness.yaml"
    config_path.write_text("jobs: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Failed to load"):
        HarnessConfig.load_from_file(config_path)


def test_with_overrides_skips_none_and_keeps_toolchains():
    config = HarnessConfig(toolchains={"python": ToolchainOverride(run=["py", "{source}"])})
    updated = config.with_overrides(run_timeout_seconds=2.5, jobs=None)
    assert updated.run_timeout_seconds == 2.5
    assert updated.jobs == config.jobs
    assert isinstance(updated.toolchains["python"], ToolchainOverride)

    with pytest.raises(ConfigurationError, match="Unknown configuration key"):
        config.with_overrides(nope=1)


def test_save_and_reload_roundtrip(tmp_path):
    config = HarnessConfig(run_timeout_seconds=4, languages=["go"])
    config_path = tmp_path / "out" / "snippet_harness.yaml"
    config.save_to_file(config_path)

    loaded = HarnessConfig.load_from_file(config_path)
    assert loaded.run_timeout_seconds == 4
    assert loaded.languages == ["go"]


def test_config_manager_defaults_when_no_file(tmp_path):
    manager = ConfigManager(tmp_path)
    assert manager.config_path == tmp_path / ConfigManager.CONFIG_FILENAME
    assert manager.config.run_timeout_seconds == 10.0


def test_config_manager_prefers_yaml_then_json(tmp_path):
    (tmp_path / ConfigManager.ALT_CONFIG_FILENAME).write_text('{"jobs": 3}', encoding="utf-8")
    manager = ConfigManager(tmp_path)
    assert manager.config_path.name == ConfigManager.ALT_CONFIG_FILENAME
    assert manager.config.jobs == 3

    (tmp_path / ConfigManager.CONFIG_FILENAME).write_text("jobs: 1\n", encoding="utf-8")
    manager = ConfigManager(tmp_path)
    assert manager.config.jobs == 1


def test_config_manager_explicit_path_must_exist(tmp_path):
    manager = ConfigManager(tmp_path, config_path=tmp_path / "custom.yaml")
    with pytest.raises(ConfigurationError):
        manager.load_config()
