"""Import resolution across submitted script files."""

from __future__ import annotations

from .css_modules import CssModuleAnalyzer, used_classes
from .resolver import (
    DependencyResolution,
    DependencyResolver,
    exported_view,
    resolve_module_path,
)

__all__ = [
    "CssModuleAnalyzer",
    "DependencyResolution",
    "DependencyResolver",
    "exported_view",
    "resolve_module_path",
    "used_classes",
]
