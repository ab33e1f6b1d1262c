"""Integration tests for the Typer application exposed by :mod:`tsmeta.cli`."""

from __future__ import annotations

import io
import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Iterator, Mapping

import pytest
from rich.console import Console
from typer.testing import CliRunner

from tsmeta.cli import create_app, read_submission
from tsmeta.core.config import AppConfig
from tsmeta.core.logging import configure_logging
from tsmeta.modules.sandbox import Diagnostic


@pytest.fixture()
def runner() -> CliRunner:
    """Return a Typer CLI runner for invoking the application."""

    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[dict[str, Any]]:
    """Configure real logging with the console captured in memory.

    Log records never reach stdout, which carries only the JSON response.
    """

    configured: dict[str, Any] = {"console": Console(file=io.StringIO(), width=120)}

    def capture_configure_logging(*, level: str, log_dir: Path | None = None, console=None):
        configured["level"] = level
        configured["log_dir"] = log_dir
        return configure_logging(level=level, log_dir=log_dir, console=configured["console"])

    monkeypatch.setattr("tsmeta.cli.configure_logging", capture_configure_logging)
    monkeypatch.delenv("TSMETA_CONFIG", raising=False)
    monkeypatch.delenv("TSMETA_LOG_LEVEL", raising=False)
    monkeypatch.delenv("TSMETA_TSC", raising=False)
    yield configured
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


class RecordingService:
    """Stand-in for :class:`AnalysisService` capturing CLI wiring."""

    instances: list["RecordingService"] = []
    diagnostics: dict[str, list[Diagnostic]] = {}

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.payloads: list[dict[str, str]] = []
        RecordingService.instances.append(self)

    def analyze(self, submission: Mapping[str, str]) -> dict[str, Any]:
        self.payloads.append(dict(submission))
        return {"files": {name: {} for name in submission}}

    def validate(self, submission: Mapping[str, str]) -> dict[str, list[Diagnostic]]:
        self.payloads.append(dict(submission))
        return {name: list(self.diagnostics.get(name, [])) for name in submission}


@pytest.fixture
def recording_service(monkeypatch: pytest.MonkeyPatch) -> type[RecordingService]:
    RecordingService.instances = []
    RecordingService.diagnostics = {}
    monkeypatch.setattr("tsmeta.cli.AnalysisService", RecordingService)
    return RecordingService


# ----------------------------------------------------------------------
# read_submission
# ----------------------------------------------------------------------


def test_read_submission_names_files_relative_to_root(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    main = tmp_path / "src" / "main.ts"
    main.write_text("export {};\n", encoding="utf-8")
    document = tmp_path / "submission.json"
    document.write_text(json.dumps({"files": {"extra.ts": "let x = 1;"}}), encoding="utf-8")

    payload = read_submission([main], root=tmp_path, submission=document)

    assert payload == {"extra.ts": "let x = 1;", "src/main.ts": "export {};\n"}


def test_read_submission_rejects_bad_documents(tmp_path: Path) -> None:
    document = tmp_path / "bad.json"
    document.write_text(json.dumps({"a.ts": 1}), encoding="utf-8")

    with pytest.raises(ValueError, match="must map file names"):
        read_submission([], submission=document)
    with pytest.raises(ValueError, match="Cannot read"):
        read_submission([tmp_path / "absent.ts"])


# ----------------------------------------------------------------------
# analyze
# ----------------------------------------------------------------------


def test_analyze_prints_service_response(
    runner: CliRunner,
    tmp_path: Path,
    recording_service: type[RecordingService],
    quiet_logging: dict[str, Any],
) -> None:
    source = tmp_path / "main.ts"
    source.write_text("export const a = 1;\n", encoding="utf-8")

    result = runner.invoke(
        create_app(),
        ["analyze", str(source), "--root", str(tmp_path), "--no-validate", "-l", "debug", "--indent", "0"],
        catch_exceptions=False,
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"files": {"main.ts": {}}}
    service = recording_service.instances[0]
    assert service.payloads == [{"main.ts": "export const a = 1;\n"}]
    assert service.config.validation.enabled is False
    assert quiet_logging["level"] == "DEBUG"
    assert "analyze-complete" in quiet_logging["console"].file.getvalue()


def test_analyze_without_files_fails(runner: CliRunner) -> None:
    result = runner.invoke(create_app(), ["analyze"])

    assert result.exit_code == 1
    assert "no files to analyze" in result.output


def test_analyze_reports_missing_config(runner: CliRunner, tmp_path: Path) -> None:
    source = tmp_path / "main.ts"
    source.write_text("export {};\n", encoding="utf-8")

    result = runner.invoke(
        create_app(),
        ["analyze", str(source), "--config", str(tmp_path / "nope.toml")],
    )

    assert result.exit_code == 1
    assert "Configuration file not found" in result.output


def test_analyze_end_to_end(runner: CliRunner, tmp_path: Path) -> None:
    pytest.importorskip("tree_sitter_languages")
    source = tmp_path / "main.ts"
    source.write_text("export function twice(n: number): number { return n * 2; }\n", encoding="utf-8")

    result = runner.invoke(
        create_app(),
        ["analyze", str(source), "--root", str(tmp_path), "--no-validate"],
        catch_exceptions=False,
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["functions"]["twice"]["returnType"] == "number"
    assert payload["diagnostics"] == {"main.ts": []}


# ----------------------------------------------------------------------
# validate
# ----------------------------------------------------------------------


def test_validate_exits_nonzero_with_diagnostics(
    runner: CliRunner,
    tmp_path: Path,
    recording_service: type[RecordingService],
) -> None:
    source = tmp_path / "main.ts"
    source.write_text("const x: number = 'a';\n", encoding="utf-8")
    recording_service.diagnostics = {
        "main.ts": [Diagnostic(message="Type 'string' is not assignable.", line=1, column=7)]
    }

    result = runner.invoke(create_app(), ["validate", str(source), "-r", str(tmp_path)])

    assert result.exit_code == 1
    assert json.loads(result.stdout) == {
        "main.ts": [
            {"location": {"line": 1, "column": 7}, "message": "Type 'string' is not assignable."}
        ]
    }


def test_validate_clean_run_exits_zero(
    runner: CliRunner,
    tmp_path: Path,
    recording_service: type[RecordingService],
) -> None:
    source = tmp_path / "main.ts"
    source.write_text("export {};\n", encoding="utf-8")

    result = runner.invoke(create_app(), ["validate", str(source), "-r", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"main.ts": []}


# ----------------------------------------------------------------------
# config
# ----------------------------------------------------------------------


def test_config_prints_template(runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TSMETA_TSC", "/opt/bin/tsc")

    result = runner.invoke(create_app(), ["config"], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    parsed = tomllib.loads(result.stdout)
    assert parsed["sandbox"]["tsc_command"] == "/opt/bin/tsc"
    assert parsed["validation"]["enabled"] is True


def test_config_writes_output_file(runner: CliRunner, tmp_path: Path) -> None:
    user = tmp_path / "tsmeta.toml"
    user.write_text('log_level = "info"\n[extraction]\ndefault_type = "unknown"\n', encoding="utf-8")
    output = tmp_path / "out" / "tsmeta.toml"

    result = runner.invoke(
        create_app(),
        ["config", "--config", str(user), "--output", str(output)],
        catch_exceptions=False,
    )

    assert result.exit_code == 0, result.output
    assert f"Wrote {output}" in result.stdout
    parsed = tomllib.loads(output.read_text(encoding="utf-8"))
    assert parsed["log_level"] == "INFO"
    assert parsed["extraction"]["default_type"] == "unknown"
