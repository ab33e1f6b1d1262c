"""Shared pytest fixtures for tsmeta tests."""

from __future__ import annotations

import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from tsmeta.modules.sandbox import StubCatalog


@dataclass
class FakeTsc:
    """Stand-in for the ``tsc`` process used by the validator.

    ``output`` may be a string or a callable receiving the sandbox root, so
    tests can report diagnostics against absolute sandbox paths.
    """

    output: str | Callable[[Path], str] = ""
    returncode: int | None = None
    stderr: str = ""
    raises: BaseException | None = None
    calls: list[tuple[list[str], Path, float | None]] = field(default_factory=list)

    def __call__(
        self,
        args: Sequence[str],
        cwd: Path,
        timeout: float | None,
    ) -> subprocess.CompletedProcess[str]:
        self.calls.append((list(args), cwd, timeout))
        if self.raises is not None:
            raise self.raises
        stdout = self.output(cwd) if callable(self.output) else self.output
        code = self.returncode
        if code is None:
            code = 2 if stdout.strip() else 0
        return subprocess.CompletedProcess(list(args), code, stdout, self.stderr)


@pytest.fixture
def fake_tsc() -> FakeTsc:
    """Return a runner that reports a clean compile until configured."""

    return FakeTsc()


@pytest.fixture(scope="session")
def stub_catalog() -> StubCatalog:
    return StubCatalog.load()


@pytest.fixture
def write_files(tmp_path: Path) -> Callable[[dict[str, str]], list[Path]]:
    """Write ``name -> text`` pairs under ``tmp_path`` and return the paths."""

    def _write(files: dict[str, str]) -> list[Path]:
        written: list[Path] = []
        for name, text in files.items():
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
            written.append(path)
        return written

    return _write
