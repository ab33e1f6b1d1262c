"""Tests for the :mod:`tsmeta.__main__` entrypoint."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from tsmeta.__main__ import main


def test_main_invokes_cli(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    output = tmp_path / "tsmeta.toml"

    monkeypatch.delenv("TSMETA_CONFIG", raising=False)
    monkeypatch.setenv("TSMETA_LOG_LEVEL", "error")
    monkeypatch.setattr(sys, "argv", ["tsmeta", "config", "--output", str(output)])

    with pytest.raises(SystemExit) as exc:
        main()

    assert exc.value.code == 0
    assert output.is_file()
    assert 'log_level = "ERROR"' in output.read_text(encoding="utf-8")
    assert "Wrote" in capsys.readouterr().out
