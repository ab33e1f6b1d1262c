"""Command-line interface primitives for :mod:`tsmeta`.

This module exposes the Typer application behind the ``tsmeta`` console
script and wires the ``analyze``, ``validate`` and ``config`` commands into
the analysis service.

Example:
    >>> import typer
    >>> from tsmeta.cli import create_app
    >>> app = create_app()
    >>> isinstance(app, typer.Typer)
    True
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Sequence

import typer

from tsmeta.core.config import (
    ENV_CONFIG,
    USER_CONFIG_FILENAME,
    AppConfig,
    env_overrides,
    load_config,
    read_user_config,
    render_user_config,
)
from tsmeta.core.errors import TsmetaError
from tsmeta.core.logging import configure_logging, get_logger
from tsmeta.modules.analysis import AnalysisService

__all__ = ["create_app", "read_submission"]

_app_help = (
    "Static metadata extraction for TypeScript, TSX and stylesheet sources."
    "\n\n"
    "Use `tsmeta analyze FILE...` to print the analysis response as JSON."
)


def _fail(message: str) -> typer.Exit:
    typer.secho(message, fg=typer.colors.RED, err=True)
    return typer.Exit(code=1)


def _resolve_config(
    *,
    config_path: Path | None,
    log_level: str | None,
    no_validate: bool = False,
) -> AppConfig:
    """Assemble the configuration stack for one CLI invocation."""

    env_path = os.environ.get(ENV_CONFIG)
    path = config_path or (Path(env_path).expanduser() if env_path else None)
    if path is None and Path(USER_CONFIG_FILENAME).is_file():
        path = Path(USER_CONFIG_FILENAME)
    if config_path is not None and not config_path.is_file():
        raise ValueError(f"Configuration file not found: {config_path}")

    cli_overrides: dict[str, Any] = {}
    if log_level:
        cli_overrides["log_level"] = log_level
    if no_validate:
        cli_overrides["validation"] = {"enabled": False}

    return load_config(
        user_config=read_user_config(path),
        env_config=env_overrides(),
        cli_overrides=cli_overrides,
    )


def read_submission(
    files: Sequence[Path],
    *,
    root: Path | None = None,
    submission: Path | None = None,
) -> dict[str, str]:
    """Build the ``name -> text`` submission from CLI arguments.

    File names are made relative to ``root`` (default: the current
    directory) when possible. A JSON submission document may be a flat
    mapping or ``{"files": {...}}``; its entries come first.

    Raises:
        ValueError: If a file cannot be read or the document is malformed.
    """

    result: dict[str, str] = {}
    if submission is not None:
        try:
            document = json.loads(submission.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ValueError(f"Cannot read submission {submission}: {exc}") from exc
        if isinstance(document, dict) and isinstance(document.get("files"), dict):
            document = document["files"]
        if not isinstance(document, dict) or not all(
            isinstance(value, str) for value in document.values()
        ):
            raise ValueError(
                f"Submission {submission} must map file names to source text"
            )
        result.update(document)

    base = (root or Path.cwd()).resolve()
    for path in files:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ValueError(f"Cannot read {path}: {exc}") from exc
        resolved = path.resolve()
        try:
            name = resolved.relative_to(base).as_posix()
        except ValueError:
            name = path.name
        result[name] = text
    return result


def create_app() -> "typer.Typer":
    """Return the Typer application powering the ``tsmeta`` CLI.

    Example:
        >>> import typer
        >>> from tsmeta.cli import create_app
        >>> cli = create_app()
        >>> isinstance(cli, typer.Typer)
        True
    """

    app = typer.Typer(
        help=_app_help,
        no_args_is_help=True,
        rich_markup_mode="rich",
        invoke_without_command=False,
        cls=typer.core.TyperGroup,
    )

    @app.callback()
    def main_callback() -> None:
        """Top-level CLI callback ensuring subcommands are dispatched."""

        return None

    def _prepare(
        *,
        files: Sequence[Path],
        root: Path | None,
        submission: Path | None,
        config_path: Path | None,
        log_level: str | None,
        no_validate: bool = False,
    ) -> tuple[AppConfig, dict[str, str]]:
        try:
            config = _resolve_config(
                config_path=config_path,
                log_level=log_level,
                no_validate=no_validate,
            )
            configure_logging(level=config.log_level, log_dir=config.log_dir)
            payload = read_submission(files, root=root, submission=submission)
        except ValueError as exc:
            raise _fail(f"Error: {exc}") from exc
        if not payload:
            raise _fail("Error: no files to analyze")
        return config, payload

    @app.command(
        "analyze",
        help="Extract metadata and diagnostics and print the JSON response.",
    )
    def analyze_command(  # noqa: PLR0913 - CLI surface area intentionally explicit
        files: list[Path] = typer.Argument(
            None,
            metavar="FILE...",
            help="Source files to analyze.",
        ),
        root: Path | None = typer.Option(
            None,
            "--root",
            "-r",
            help="Directory that submitted file names are relative to.",
        ),
        submission: Path | None = typer.Option(
            None,
            "--submission",
            "-s",
            help="JSON document mapping file names to source text.",
        ),
        no_validate: bool = typer.Option(
            False,
            "--no-validate",
            help="Skip the TypeScript compiler diagnostics stage.",
        ),
        indent: int = typer.Option(
            2,
            "--indent",
            min=0,
            help="JSON indentation (0 for compact output).",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Override the logging level (DEBUG/INFO/WARNING/ERROR).",
        ),
        config_path: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help="Path to a tsmeta.toml configuration file.",
        ),
    ) -> None:
        config, payload = _prepare(
            files=files or [],
            root=root,
            submission=submission,
            config_path=config_path,
            log_level=log_level,
            no_validate=no_validate,
        )
        logger = get_logger(__name__, command="analyze")
        try:
            response = AnalysisService(config).analyze(payload)
        except TsmetaError as exc:
            raise _fail(f"Analysis failed: {exc}") from exc
        logger.info("analyze-complete", files=len(payload))
        typer.echo(json.dumps(response, indent=indent or None, ensure_ascii=False))

    @app.command(
        "validate",
        help="Type-check files with tsc and print diagnostics only.",
    )
    def validate_command(
        files: list[Path] = typer.Argument(
            None,
            metavar="FILE...",
            help="Source files to validate.",
        ),
        root: Path | None = typer.Option(
            None,
            "--root",
            "-r",
            help="Directory that submitted file names are relative to.",
        ),
        submission: Path | None = typer.Option(
            None,
            "--submission",
            "-s",
            help="JSON document mapping file names to source text.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Override the logging level (DEBUG/INFO/WARNING/ERROR).",
        ),
        config_path: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help="Path to a tsmeta.toml configuration file.",
        ),
    ) -> None:
        config, payload = _prepare(
            files=files or [],
            root=root,
            submission=submission,
            config_path=config_path,
            log_level=log_level,
        )
        try:
            results = AnalysisService(config).validate(payload)
        except TsmetaError as exc:
            raise _fail(f"Validation failed: {exc}") from exc
        rendered = {
            name: [item.to_dict() for item in found]
            for name, found in results.items()
        }
        typer.echo(json.dumps(rendered, indent=2, ensure_ascii=False))
        if any(rendered.values()):
            raise typer.Exit(code=1)

    @app.command(
        "config",
        help="Render a commented tsmeta.toml with the effective settings.",
    )
    def config_command(
        output: Path | None = typer.Option(
            None,
            "--output",
            "-o",
            help="Write the template to this path instead of stdout.",
        ),
        config_path: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help="Start from an existing tsmeta.toml.",
        ),
    ) -> None:
        try:
            config = _resolve_config(config_path=config_path, log_level=None)
        except ValueError as exc:
            raise _fail(f"Error: {exc}") from exc
        rendered = render_user_config(config)
        if output is None:
            typer.echo(rendered, nl=False)
            return
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(rendered, encoding="utf-8")
        except OSError as exc:
            raise _fail(f"Failed to write {output}: {exc}") from exc
        typer.secho(f"Wrote {output}", fg=typer.colors.GREEN)

    return app
