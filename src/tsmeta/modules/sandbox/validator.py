"""Type-check sandbox projects with the TypeScript compiler."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
import shutil
import subprocess
from typing import Callable, Mapping, Sequence

from tsmeta.core.config import SandboxSettings
from tsmeta.core.errors import CompilerUnavailableError
from tsmeta.core.logging import Logger, get_logger

from .builder import GLOBAL_TYPES_FILE, SandboxProject
from .diagnostics import Diagnostic, parse_tsc_output

__all__ = ["Runner", "TypeScriptValidator", "default_runner"]

# Written by the sandbox itself; never matched by basename.
_GENERATED_FILES = frozenset({GLOBAL_TYPES_FILE, "tsconfig.json", "package.json"})
_GENERATED_DIRS = ("node_modules/",)

Runner = Callable[[Sequence[str], Path, float | None], "subprocess.CompletedProcess[str]"]


def default_runner(
    args: Sequence[str],
    cwd: Path,
    timeout: float | None,
) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        list(args),
        cwd=cwd,
        capture_output=True,
        text=True,
        timeout=timeout,
        check=False,
    )


class TypeScriptValidator:
    """Run one ``tsc --noEmit`` session per call and bucket its output.

    ``runner`` receives the argument vector, the sandbox root and the
    timeout; tests substitute a fake that returns canned compiler output.
    """

    def __init__(
        self,
        settings: SandboxSettings | None = None,
        *,
        runner: Runner | None = None,
        logger: Logger | None = None,
    ) -> None:
        self._settings = settings or SandboxSettings()
        self._runner = runner
        self._logger = logger or get_logger(__name__, component="tsc-validator")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def validate_all(
        self,
        ts_files: Sequence[str] | Mapping[str, str],
        project: SandboxProject,
    ) -> dict[str, list[Diagnostic]]:
        """Return diagnostics for every name in ``ts_files``.

        Project-level messages are attached to every bucket; messages for
        files outside ``ts_files`` are dropped.
        """

        names = list(ts_files)
        buckets: dict[str, list[Diagnostic]] = {name: [] for name in names}
        if not names:
            return buckets
        try:
            stdout = self._run(project)
        except CompilerUnavailableError as exc:
            self._logger.warning("tsc-unavailable", error=str(exc))
            failure = Diagnostic(message=str(exc))
            return {name: [failure] for name in names}

        exact, by_basename = self._lookup(names, project)
        for message in parse_tsc_output(stdout):
            if message.path is None:
                for bucket in buckets.values():
                    bucket.append(message.diagnostic)
                continue
            target = exact.get(_normalize(message.path))
            if target is None and not _is_generated(message.path, project):
                target = by_basename.get(PurePosixPath(_normalize(message.path)).name)
            if target is not None:
                buckets[target].append(message.diagnostic)
        return buckets

    def validate_one(
        self,
        filename: str,
        content: str,
        project: SandboxProject,
    ) -> list[Diagnostic]:
        """Rewrite ``filename`` inside ``project`` and return its diagnostics."""

        if project.path_for(filename) is None:
            return [Diagnostic(message=f"File not found: {filename}")]
        project.write(filename, content)
        return self.validate_all([filename], project)[filename]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _command(self, project: SandboxProject) -> list[str]:
        executable = self._settings.tsc_command
        if self._runner is None:
            resolved = shutil.which(executable)
            if resolved is None:
                raise CompilerUnavailableError(
                    f"TypeScript compiler not found: {executable}"
                )
            executable = resolved
        return [
            executable,
            "--noEmit",
            "--pretty",
            "false",
            "-p",
            str(project.root / "tsconfig.json"),
        ]

    def _run(self, project: SandboxProject) -> str:
        args = self._command(project)
        runner = self._runner or default_runner
        timeout = self._settings.tsc_timeout
        try:
            completed = runner(args, project.root, timeout)
        except subprocess.TimeoutExpired as exc:
            raise CompilerUnavailableError(
                f"TypeScript compiler timed out after {timeout:g}s"
            ) from exc
        except OSError as exc:
            raise CompilerUnavailableError(
                f"TypeScript compiler failed to start: {exc}"
            ) from exc

        stdout = completed.stdout or ""
        self._logger.debug(
            "tsc-finished",
            root=str(project.root),
            returncode=completed.returncode,
            output_lines=len(stdout.splitlines()),
        )
        # tsc exits 1 or 2 when it reports diagnostics; anything else, or a
        # non-zero exit with no parseable output, means the compiler broke.
        if completed.returncode not in (0, 1, 2) or (
            completed.returncode != 0 and not parse_tsc_output(stdout)
        ):
            detail = (completed.stderr or stdout).strip() or f"exit code {completed.returncode}"
            raise CompilerUnavailableError(f"TypeScript compiler failed: {detail}")
        return stdout

    @staticmethod
    def _lookup(
        names: Sequence[str],
        project: SandboxProject,
    ) -> tuple[dict[str, str], dict[str, str]]:
        exact: dict[str, str] = {}
        for name in names:
            exact[_normalize(name)] = name
            path = project.path_for(name)
            if path is not None:
                exact[_normalize(str(path))] = name
        # Bare file names as a fallback only when unambiguous.
        basenames: dict[str, list[str]] = {}
        for name in names:
            basenames.setdefault(PurePosixPath(_normalize(name)).name, []).append(name)
        by_basename = {
            base: owners[0] for base, owners in basenames.items() if len(owners) == 1
        }
        return exact, by_basename


def _normalize(path: str) -> str:
    text = path.replace("\\", "/")
    while text.startswith("./"):
        text = text[2:]
    return text


def _is_generated(path: str, project: SandboxProject) -> bool:
    text = _normalize(path)
    root = _normalize(str(project.root)).rstrip("/") + "/"
    if text.startswith(root):
        text = text[len(root) :]
    return text in _GENERATED_FILES or text.startswith(_GENERATED_DIRS)
