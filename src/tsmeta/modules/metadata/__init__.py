"""Metadata extraction for scripts, markup components and stylesheets."""

from __future__ import annotations

from .extractor import SourceExtractor
from .markup import MarkupExtractor
from .stylesheet import StylesheetExtractor, empty_stylesheet
from .syntax import ParserCache, is_markup, is_script, is_stylesheet
from .tree import MetadataTree, empty_tree

__all__ = [
    "MarkupExtractor",
    "MetadataTree",
    "ParserCache",
    "SourceExtractor",
    "StylesheetExtractor",
    "empty_stylesheet",
    "empty_tree",
    "is_markup",
    "is_script",
    "is_stylesheet",
]
