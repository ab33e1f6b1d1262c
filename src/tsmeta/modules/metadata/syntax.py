"""tree-sitter front-end shared by the metadata extractors.

Grammars come from :mod:`tree_sitter_languages`; parsers are cached per
language in a :class:`ParserCache` so a batch parses every file with one
parser instance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
import re
from typing import Any, Callable, Iterable, Iterator

from tsmeta.core.errors import ParserUnavailableError

__all__ = [
    "MARKUP_SUFFIXES",
    "SCRIPT_SUFFIXES",
    "STYLE_SUFFIXES",
    "ParserCache",
    "SourceFile",
    "child_by_field",
    "children_of_type",
    "collapse_whitespace",
    "first_child_of_type",
    "has_token",
    "is_markup",
    "is_script",
    "is_stylesheet",
    "iter_nodes",
    "language_for_path",
    "load_parser",
    "named_children",
    "parse_source",
    "row_of",
    "strip_quotes",
    "unwrap_parens",
]

SCRIPT_SUFFIXES: tuple[str, ...] = (".ts", ".mts", ".cts", ".js", ".mjs", ".cjs")
MARKUP_SUFFIXES: tuple[str, ...] = (".tsx", ".jsx")
STYLE_SUFFIXES: tuple[str, ...] = (".css", ".scss", ".sass")

_WHITESPACE_RE = re.compile(r"\s+")
_QUOTES_RE = re.compile(r"['\"]+")


def _suffix(name: str) -> str:
    return PurePosixPath(name.replace("\\", "/")).suffix.lower()


def is_script(name: str) -> bool:
    """Return ``True`` for TypeScript/JavaScript sources (``.d.ts`` too)."""

    return _suffix(name) in SCRIPT_SUFFIXES


def is_markup(name: str) -> bool:
    return _suffix(name) in MARKUP_SUFFIXES


def is_stylesheet(name: str) -> bool:
    return _suffix(name) in STYLE_SUFFIXES


def language_for_path(name: str) -> str | None:
    """Map a filename onto the tree-sitter grammar that parses it.

    Example:
        >>> language_for_path("types.d.ts")
        'typescript'
        >>> language_for_path("App.jsx")
        'tsx'
        >>> language_for_path("README.md") is None
        True
    """

    suffix = _suffix(name)
    if suffix in {".ts", ".mts", ".cts"}:
        return "typescript"
    if suffix in MARKUP_SUFFIXES or suffix in {".js", ".mjs", ".cjs"}:
        return "tsx"
    if suffix in STYLE_SUFFIXES:
        return "css"
    return None


@dataclass(slots=True)
class ParserCache:
    """Per-batch cache of tree-sitter parsers keyed by grammar name."""

    data: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, factory: Callable[[], Any]) -> Any:
        if key not in self.data:
            self.data[key] = factory()
        return self.data[key]

    def clear(self) -> None:
        self.data.clear()


def load_parser(language: str, *, cache: ParserCache | None = None) -> Any:
    """Return a tree-sitter parser for ``language``.

    Raises:
        ParserUnavailableError: If the grammar bundle is missing or does not
            provide ``language``.
    """

    def _factory() -> Any:
        try:
            from tree_sitter_languages import get_parser
        except ImportError as exc:
            raise ParserUnavailableError(
                "Metadata extraction requires the tree_sitter_languages "
                "package."
            ) from exc
        try:
            return get_parser(language)
        except Exception as exc:
            raise ParserUnavailableError(
                f"tree-sitter parser for {language!r} is unavailable: {exc}"
            ) from exc

    if cache is None:
        return _factory()
    return cache.get(f"parser::{language}", _factory)


@dataclass(slots=True)
class SourceFile:
    """A parsed submission file with byte-accurate slicing helpers."""

    name: str
    text: str
    language: str
    data: bytes
    tree: Any

    @property
    def root(self) -> Any:
        return self.tree.root_node

    @property
    def has_error(self) -> bool:
        return bool(self.tree.root_node.has_error)

    @property
    def is_declaration_file(self) -> bool:
        return self.name.lower().endswith(".d.ts")

    def slice(self, node: Any | None) -> str:
        """Return the source text spanned by ``node`` (empty for ``None``)."""

        if node is None:
            return ""
        return self.data[node.start_byte : node.end_byte].decode(
            "utf-8", errors="replace"
        )

    def first_error_row(self) -> int | None:
        """Return the 1-based line of the first error node, if any."""

        for node in iter_nodes(self.root):
            if node.type == "ERROR" or node.is_missing:
                return row_of(node) + 1
        return None


def parse_source(
    name: str,
    text: str,
    *,
    cache: ParserCache | None = None,
    language: str | None = None,
) -> SourceFile:
    """Parse ``text`` with the grammar matching ``name``.

    Raises:
        ParserUnavailableError: If no grammar handles ``name``.
    """

    grammar = language or language_for_path(name)
    if grammar is None:
        raise ParserUnavailableError(f"No grammar registered for {name!r}")
    parser = load_parser(grammar, cache=cache)
    data = text.encode("utf-8")
    tree = parser.parse(data)
    return SourceFile(
        name=name,
        text=text,
        language=grammar,
        data=data,
        tree=tree,
    )


# ----------------------------------------------------------------------
# Node helpers
# ----------------------------------------------------------------------


def row_of(node: Any) -> int:
    point = node.start_point
    return point[0] if isinstance(point, tuple) else point.row


def child_by_field(node: Any, *names: str) -> Any | None:
    """Return the first child bound to any of ``names``."""

    for name in names:
        child = node.child_by_field_name(name)
        if child is not None:
            return child
    return None


def first_child_of_type(node: Any, *types: str) -> Any | None:
    for child in node.children:
        if child.type in types:
            return child
    return None


def children_of_type(node: Any, *types: str) -> list[Any]:
    return [child for child in node.children if child.type in types]


def has_token(node: Any, *tokens: str) -> bool:
    """Return ``True`` when ``node`` has a direct child of any ``tokens``."""

    return any(child.type in tokens for child in node.children)


def iter_nodes(node: Any) -> Iterator[Any]:
    """Depth-first pre-order traversal without recursion."""

    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def unwrap_parens(node: Any | None) -> Any | None:
    """Strip ``( ... )`` wrappers from expressions and types."""

    while node is not None and node.type in {
        "parenthesized_expression",
        "parenthesized_type",
    }:
        inner = [child for child in node.named_children if child.type != "comment"]
        if len(inner) != 1:
            break
        node = inner[0]
    return node


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_quotes(text: str) -> str:
    """Drop every single and double quote character from ``text``."""

    return _QUOTES_RE.sub("", text)


def named_children(node: Any, *, skip: Iterable[str] = ("comment",)) -> list[Any]:
    skipped = set(skip)
    return [child for child in node.named_children if child.type not in skipped]
