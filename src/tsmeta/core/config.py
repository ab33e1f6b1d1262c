"""Configuration models and loaders for :mod:`tsmeta`."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
import os
from pathlib import Path
from typing import Any, Mapping

import tomllib
import tomlkit
from pydantic import BaseModel, Field, field_validator, model_validator

from tsmeta.resources import get_resource


class ExtractionSettings(BaseModel):
    """Knobs applied while walking syntax trees into metadata."""

    default_type: str = Field(
        default="any",
        description="Type string used when a type cannot be resolved.",
    )
    crlf_bodies: bool = Field(
        default=True,
        description="Normalize captured function bodies to CRLF endings.",
    )
    css_module_suffixes: tuple[str, ...] = Field(
        default=(".module.css", ".module.scss", ".module.sass"),
        description="Filename suffixes marking locally-scoped stylesheets.",
    )

    model_config = {
        "frozen": True,
        "str_strip_whitespace": True,
    }

    @field_validator("default_type")
    @classmethod
    def _require_type(cls, value: str) -> str:
        if not value:
            raise ValueError("default_type cannot be blank.")
        return value

    @field_validator("css_module_suffixes")
    @classmethod
    def _lower_suffixes(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(item.lower() for item in value))


class SandboxSettings(BaseModel):
    """Temporary compiler project and ``tsc`` invocation settings."""

    tsc_command: str = Field(
        default="tsc",
        description="Executable (or path) used to type-check the sandbox.",
    )
    tsc_timeout: float | None = Field(
        default=120.0,
        gt=0.0,
        description="Seconds before the compiler process is abandoned.",
    )
    temp_root: Path | None = Field(
        default=None,
        description="Parent directory for sandboxes; null uses the OS temp.",
    )
    stub_catalog: Path | None = Field(
        default=None,
        description="Directory holding an alternative stub catalog.",
    )
    keep_sandbox: bool = Field(
        default=False,
        description="Leave sandbox directories behind for debugging.",
    )

    model_config = {
        "frozen": True,
        "str_strip_whitespace": True,
    }

    @model_validator(mode="after")
    def _expand_paths(self) -> "SandboxSettings":
        for name in ("temp_root", "stub_catalog"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, value.expanduser())
        return self


class ValidationSettings(BaseModel):
    """Controls the compiler-backed diagnostics stage."""

    enabled: bool = Field(
        default=True,
        description="Run the TypeScript compiler over script submissions.",
    )

    model_config = {"frozen": True}


class AppConfig(BaseModel):
    """Root configuration for the :mod:`tsmeta` application."""

    log_level: str = Field(
        default="WARNING",
        description="Logging level for the application runtime.",
    )
    log_dir: Path | None = Field(
        default=None,
        description="Directory receiving rotated JSON log files.",
    )
    extraction: ExtractionSettings = Field(
        default_factory=ExtractionSettings,
        description="Metadata extraction settings.",
    )
    sandbox: SandboxSettings = Field(
        default_factory=SandboxSettings,
        description="Compiler sandbox settings.",
    )
    validation: ValidationSettings = Field(
        default_factory=ValidationSettings,
        description="Diagnostics stage settings.",
    )

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @model_validator(mode="after")
    def _post_process(self) -> "AppConfig":
        object.__setattr__(self, "log_level", self.log_level.upper())
        return self


DEFAULTS_RESOURCE_NAME = "tsmeta.defaults.toml"
USER_CONFIG_FILENAME = "tsmeta.toml"

ENV_LOG_LEVEL = "TSMETA_LOG_LEVEL"
ENV_CONFIG = "TSMETA_CONFIG"
ENV_TSC = "TSMETA_TSC"


def read_packaged_defaults_text() -> str:
    """Return the raw packaged defaults TOML content."""

    return get_resource(DEFAULTS_RESOURCE_NAME).read_text(encoding="utf-8")


def load_packaged_defaults() -> dict[str, Any]:
    """Load the packaged defaults as a plain dictionary.

    Example:
        >>> load_packaged_defaults()["sandbox"]["tsc_command"]
        'tsc'
    """

    data: dict[str, Any] = tomllib.loads(read_packaged_defaults_text())
    return data


def read_user_config(path: Path | None) -> dict[str, Any] | None:
    """Parse a user ``tsmeta.toml`` when ``path`` points at one.

    Raises:
        ValueError: If the file exists but is not valid TOML.
    """

    if path is None or not path.is_file():
        return None
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid configuration file {path}: {exc}") from exc


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Collect ``TSMETA_*`` environment overrides as a config layer."""

    source = os.environ if environ is None else environ
    layer: dict[str, Any] = {}
    level = source.get(ENV_LOG_LEVEL)
    if level:
        layer["log_level"] = level
    tsc = source.get(ENV_TSC)
    if tsc:
        layer["sandbox"] = {"tsc_command": tsc}
    return layer


def _deep_merge(
    base: Mapping[str, Any],
    overlay: Mapping[str, Any],
) -> dict[str, Any]:
    merged: dict[str, Any] = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, MappingABC) and isinstance(value, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_config(
    *,
    defaults: Mapping[str, Any] | None = None,
    user_config: Mapping[str, Any] | None = None,
    env_config: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """Load configuration according to the precedence stack.

    Args:
        defaults: Packaged defaults; read from the package when omitted.
        user_config: Parsed user ``tsmeta.toml`` content.
        env_config: Settings derived from environment variables.
        cli_overrides: Settings supplied via CLI flags.

    Returns:
        A validated :class:`AppConfig` instance.
    """

    stack = dict(load_packaged_defaults() if defaults is None else defaults)
    for layer in (user_config, env_config, cli_overrides):
        if layer:
            stack = _deep_merge(stack, layer)
    return AppConfig(**stack)


def render_user_config(
    config: AppConfig,
    *,
    include_defaults: bool = True,
) -> str:
    """Render a ``tsmeta.toml`` document for users to customize."""

    document = tomlkit.document()

    if include_defaults:
        document.add(tomlkit.comment("tsmeta configuration"))
        document.add(
            tomlkit.comment(
                "Precedence: CLI flags > env vars > tsmeta.toml > defaults"
            )
        )
        document.add(tomlkit.comment("Environment overrides:"))
        document.add(tomlkit.comment(f"  {ENV_LOG_LEVEL}=debug"))
        document.add(tomlkit.comment(f"  {ENV_TSC}=/path/to/tsc"))
        document.add(tomlkit.comment(f"  {ENV_CONFIG}=/path/to/tsmeta.toml"))
        document.add(tomlkit.nl())

    document["log_level"] = config.log_level
    if config.log_dir is not None:
        document["log_dir"] = str(config.log_dir)

    extraction = tomlkit.table()
    extraction["default_type"] = config.extraction.default_type
    extraction["crlf_bodies"] = config.extraction.crlf_bodies
    extraction["css_module_suffixes"] = list(
        config.extraction.css_module_suffixes
    )
    document["extraction"] = extraction

    sandbox = tomlkit.table()
    sandbox["tsc_command"] = config.sandbox.tsc_command
    if config.sandbox.tsc_timeout is not None:
        sandbox["tsc_timeout"] = config.sandbox.tsc_timeout
    if config.sandbox.temp_root is not None:
        sandbox["temp_root"] = str(config.sandbox.temp_root)
    if config.sandbox.stub_catalog is not None:
        sandbox["stub_catalog"] = str(config.sandbox.stub_catalog)
    sandbox["keep_sandbox"] = config.sandbox.keep_sandbox
    document["sandbox"] = sandbox

    validation = tomlkit.table()
    validation["enabled"] = config.validation.enabled
    document["validation"] = validation

    return tomlkit.dumps(document)


__all__ = [
    "AppConfig",
    "ExtractionSettings",
    "SandboxSettings",
    "ValidationSettings",
    "DEFAULTS_RESOURCE_NAME",
    "USER_CONFIG_FILENAME",
    "ENV_CONFIG",
    "ENV_LOG_LEVEL",
    "ENV_TSC",
    "env_overrides",
    "load_config",
    "load_packaged_defaults",
    "read_packaged_defaults_text",
    "read_user_config",
    "render_user_config",
]
