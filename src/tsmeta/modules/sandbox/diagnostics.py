"""Compiler diagnostics and ``tsc`` output parsing."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any

__all__ = ["CompilerMessage", "Diagnostic", "parse_tsc_output"]

# Format: file(line,col): error TSxxxx: message
_FILE_PATTERN = re.compile(r"^(.+?)\((\d+),(\d+)\): (error|warning) (TS\d+): (.+)$")
# Project-level messages carry no location.
_GLOBAL_PATTERN = re.compile(r"^(error|warning) (TS\d+): (.+)$")


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A compiler message; ``line`` and ``column`` are 1-based."""

    message: str
    line: int | None = None
    column: int | None = None

    @property
    def is_session_wide(self) -> bool:
        return self.line is None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.line is not None:
            payload["location"] = {"line": self.line, "column": self.column}
        payload["message"] = self.message
        return payload


@dataclass(frozen=True, slots=True)
class CompilerMessage:
    """One parsed ``tsc`` line; ``path`` is ``None`` for project-level errors."""

    path: str | None
    diagnostic: Diagnostic
    code: str
    severity: str


def parse_tsc_output(stdout: str) -> list[CompilerMessage]:
    """Parse ``tsc --pretty false`` output.

    Indented continuation lines are folded into the preceding message.
    """

    messages: list[CompilerMessage] = []
    for line in stdout.splitlines():
        if not line.strip():
            continue
        if line[:1].isspace() and messages:
            last = messages[-1]
            folded = Diagnostic(
                message=f"{last.diagnostic.message}\n{line.strip()}",
                line=last.diagnostic.line,
                column=last.diagnostic.column,
            )
            messages[-1] = CompilerMessage(last.path, folded, last.code, last.severity)
            continue
        match = _FILE_PATTERN.match(line)
        if match:
            messages.append(
                CompilerMessage(
                    path=match.group(1),
                    diagnostic=Diagnostic(
                        message=match.group(6),
                        line=int(match.group(2)),
                        column=int(match.group(3)),
                    ),
                    code=match.group(5),
                    severity=match.group(4),
                )
            )
            continue
        match = _GLOBAL_PATTERN.match(line)
        if match:
            messages.append(
                CompilerMessage(
                    path=None,
                    diagnostic=Diagnostic(message=match.group(3)),
                    code=match.group(2),
                    severity=match.group(1),
                )
            )
    return messages
