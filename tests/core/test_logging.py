"""Tests for :mod:`tsmeta.core.logging`."""

from __future__ import annotations

import gzip
import io
import json
import logging
import subprocess
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import pytest
from rich.console import Console
from rich.logging import RichHandler

from tsmeta.core.config import SandboxSettings
from tsmeta.core.logging import LOG_FILENAME, configure_logging, get_logger
from tsmeta.modules.sandbox import StubCatalog, TypeScriptValidator, sandbox_project


def _clear_root_handlers() -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


@pytest.fixture(autouse=True)
def reset_logging_state():
    """Ensure each test runs with a clean logging configuration."""

    _clear_root_handlers()
    yield
    _clear_root_handlers()


def _build_console() -> Console:
    """Return a console that writes to an in-memory buffer for tests."""

    return Console(file=io.StringIO(), width=120, record=True)


def test_configure_logging_installs_console_and_file_handlers(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"

    log_file = configure_logging(level="debug", log_dir=log_dir, console=_build_console())

    root = logging.getLogger()
    rich_handlers = [h for h in root.handlers if isinstance(h, RichHandler)]
    file_handlers = [h for h in root.handlers if isinstance(h, TimedRotatingFileHandler)]

    assert len(rich_handlers) == 1, "Expected a single Rich console handler"
    assert len(file_handlers) == 1, "Expected a file handler for the log directory"
    assert log_file == (log_dir / LOG_FILENAME).resolve()

    logger = get_logger(__name__, component="sandbox")
    logger.info("sandbox-created", files=2)

    for handler in root.handlers:
        handler.flush()

    payload = json.loads(log_file.read_text(encoding="utf-8").strip())

    assert payload["event"] == "sandbox-created"
    assert payload["component"] == "sandbox"
    assert payload["files"] == 2


def test_configure_logging_without_log_dir_omits_file_handler() -> None:
    result = configure_logging(level="info", console=_build_console())

    root = logging.getLogger()
    assert result is None
    assert any(isinstance(h, RichHandler) for h in root.handlers)
    assert all(
        not isinstance(h, TimedRotatingFileHandler) for h in root.handlers
    ), "No file handler should be registered when log_dir is absent"


def test_configure_logging_rejects_unknown_level(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        configure_logging(
            level="invalid",
            log_dir=tmp_path / "logs",
            console=_build_console(),
        )


def test_configure_logging_rotates_with_compression(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"

    configure_logging(level="warning", log_dir=log_dir, console=_build_console())
    root = logging.getLogger()
    file_handler = next(
        h for h in root.handlers if isinstance(h, TimedRotatingFileHandler)
    )

    logger = get_logger("rotate", task="rotation")
    logger.warning("pre-rotation", sample=True)

    for handler in root.handlers:
        handler.flush()

    file_handler.doRollover()

    gz_files = sorted(log_dir.resolve().glob(f"{LOG_FILENAME}.*.gz"))
    assert gz_files, "Expected a compressed log archive after rollover"

    with gzip.open(gz_files[-1], "rt", encoding="utf-8") as fh:
        archived = fh.read()

    assert "pre-rotation" in archived
    assert "task" in archived


def test_console_handler_defaults_to_stderr() -> None:
    configure_logging(level="info")

    [handler] = [h for h in logging.getLogger().handlers if isinstance(h, RichHandler)]
    assert handler.console.stderr is True


def test_validator_component_survives_json_renderer(tmp_path: Path, fake_tsc) -> None:
    log_file = configure_logging(
        level="warning",
        log_dir=tmp_path / "logs",
        console=_build_console(),
    )
    fake_tsc.raises = subprocess.TimeoutExpired(cmd="tsc", timeout=3.0)
    validator = TypeScriptValidator(SandboxSettings(tsc_timeout=3.0), runner=fake_tsc)

    with sandbox_project(
        {"main.ts": "export {};\n"},
        catalog=StubCatalog({}),
        temp_root=tmp_path / "sandboxes",
    ) as project:
        validator.validate_all(["main.ts"], project)

    for handler in logging.getLogger().handlers:
        handler.flush()

    records = [
        json.loads(line)
        for line in log_file.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]
    [record] = [item for item in records if item["event"] == "tsc-unavailable"]
    assert record["component"] == "tsc-validator"
    assert record["level"] == "warning"
    assert record["error"] == "TypeScript compiler timed out after 3s"
    assert "timestamp" in record
