"""Temporary compiler projects and ``tsc`` validation."""

from __future__ import annotations

from .builder import SandboxProject, build_project, sandbox_project
from .diagnostics import Diagnostic, parse_tsc_output
from .stubs import PackageStub, StubCatalog
from .validator import TypeScriptValidator

__all__ = [
    "Diagnostic",
    "PackageStub",
    "SandboxProject",
    "StubCatalog",
    "TypeScriptValidator",
    "build_project",
    "parse_tsc_output",
    "sandbox_project",
]
