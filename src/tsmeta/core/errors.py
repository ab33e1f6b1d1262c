"""Exception hierarchy shared across :mod:`tsmeta` modules."""

from __future__ import annotations

__all__ = [
    "TsmetaError",
    "ParserUnavailableError",
    "SubmissionError",
    "SandboxError",
    "CompilerUnavailableError",
]


class TsmetaError(RuntimeError):
    """Base error for metadata extraction and validation failures."""


class ParserUnavailableError(TsmetaError):
    """Raised when a tree-sitter grammar cannot be loaded."""


class SubmissionError(TsmetaError):
    """Raised when a submitted file set cannot be accepted."""


class SandboxError(TsmetaError):
    """Raised when the temporary compiler project cannot be materialized."""


class CompilerUnavailableError(TsmetaError):
    """Raised when the TypeScript compiler cannot be located or run."""
