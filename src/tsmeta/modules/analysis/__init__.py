"""End-to-end analysis of a submitted file set."""

from __future__ import annotations

from .service import AnalysisService, select_main_file

__all__ = ["AnalysisService", "select_main_file"]
