"""Tests for :mod:`tsmeta.core.config`."""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest
from pydantic import ValidationError

from tsmeta.core.config import (
    AppConfig,
    ENV_LOG_LEVEL,
    ENV_TSC,
    ExtractionSettings,
    env_overrides,
    load_config,
    load_packaged_defaults,
    read_user_config,
    render_user_config,
)


def test_packaged_defaults_match_model_defaults() -> None:
    config = load_config()

    assert config.log_level == "WARNING"
    assert config.extraction.default_type == "any"
    assert config.extraction.crlf_bodies is True
    assert config.extraction.css_module_suffixes == (
        ".module.css",
        ".module.scss",
        ".module.sass",
    )
    assert config.sandbox.tsc_command == "tsc"
    assert config.sandbox.keep_sandbox is False
    assert config.validation.enabled is True
    assert load_packaged_defaults()["sandbox"]["tsc_command"] == "tsc"


def test_load_config_precedence_cli_over_env_over_user() -> None:
    config = load_config(
        user_config={"log_level": "info", "sandbox": {"tsc_command": "user-tsc"}},
        env_config={"log_level": "error", "sandbox": {"tsc_command": "env-tsc"}},
        cli_overrides={"log_level": "debug"},
    )

    assert config.log_level == "DEBUG"
    assert config.sandbox.tsc_command == "env-tsc"
    # Untouched nested keys survive the deep merge.
    assert config.sandbox.tsc_timeout == 120.0


def test_env_overrides_reads_tsmeta_variables() -> None:
    layer = env_overrides({ENV_LOG_LEVEL: "debug", ENV_TSC: "/opt/tsc", "OTHER": "x"})

    assert layer == {"log_level": "debug", "sandbox": {"tsc_command": "/opt/tsc"}}
    assert env_overrides({}) == {}


def test_read_user_config_handles_missing_and_invalid(tmp_path: Path) -> None:
    assert read_user_config(None) is None
    assert read_user_config(tmp_path / "absent.toml") is None

    broken = tmp_path / "tsmeta.toml"
    broken.write_text("log_level = [", encoding="utf-8")
    with pytest.raises(ValueError):
        read_user_config(broken)


def test_extraction_settings_normalize_suffixes() -> None:
    settings = ExtractionSettings(css_module_suffixes=(".Module.CSS", ".module.css"))

    assert settings.css_module_suffixes == (".module.css",)
    with pytest.raises(ValidationError):
        ExtractionSettings(default_type="  ")


def test_render_user_config_round_trips_through_toml() -> None:
    config = AppConfig(log_level="info", validation={"enabled": False})

    rendered = render_user_config(config)
    parsed = tomllib.loads(rendered)

    assert rendered.startswith("# tsmeta configuration")
    assert parsed["log_level"] == "INFO"
    assert parsed["validation"]["enabled"] is False
    assert parsed["sandbox"]["tsc_command"] == "tsc"
    assert load_config(user_config=parsed).validation.enabled is False
