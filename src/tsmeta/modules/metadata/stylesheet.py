"""Structural metadata for CSS / SCSS stylesheets.

Rules are parsed with the tree-sitter ``css`` grammar. Selectors are split
and tokenized from their source text; declarations are distributed to the
class, id and element tokens of each selector's subject (right-most)
compound, with pseudo-class and media-query overlays kept apart from the
base properties.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re
from typing import Any, Iterable, Mapping, Sequence

from tsmeta.core.config import ExtractionSettings
from tsmeta.core.errors import TsmetaError
from tsmeta.core.logging import Logger, get_logger

from .syntax import ParserCache, SourceFile, collapse_whitespace, named_children, parse_source

__all__ = [
    "StylesheetExtractor",
    "empty_stylesheet",
    "normalize_media_query",
    "split_selectors",
]

_VAR_RE = re.compile(r"var\(\s*(--[\w-]+)")
_ELEMENT_RE = re.compile(r"^(\*|[a-zA-Z][\w-]*)")
_TOKEN_RE = re.compile(
    r"(?P<cls>\.-?[_a-zA-Z][\w-]*)"
    r"|(?P<id>#-?[_a-zA-Z][\w-]*)"
    r"|(?P<pseudo>::?[\w-]+(?:\([^)]*\))?)"
    r"|(?P<attr>\[[^\]]*\])"
)
_IMPORTANT_RE = re.compile(r"\s*!\s*important\s*$", re.I)
_COMBINATORS = frozenset(">+~")


def empty_stylesheet() -> dict[str, Any]:
    return {
        "selectors": [],
        "classes": {},
        "ids": {},
        "elements": {},
        "pseudoClasses": {},
        "allProperties": [],
        "variables": {},
        "mediaQueries": {},
        "imports": [],
        "exports": [],
        "keyframes": {},
        "atRules": {},
    }


def normalize_media_query(query: str) -> str:
    """Collapse whitespace and drop spaces inside parentheses and around ``:``.

    Example:
        >>> normalize_media_query("screen and ( max-width : 600px )")
        'screen and (max-width:600px)'
    """

    text = collapse_whitespace(query)
    text = re.sub(r"\(\s+", "(", text)
    text = re.sub(r"\s+\)", ")", text)
    return re.sub(r"\s*:\s*", ":", text)


def split_selectors(raw: str) -> list[str]:
    """Split a selector list on top-level commas."""

    segments: list[str] = []
    depth = 0
    start = 0
    for index, char in enumerate(raw):
        if char in "([":
            depth += 1
        elif char in ")]":
            depth = max(0, depth - 1)
        elif char == "," and depth == 0:
            segment = collapse_whitespace(raw[start:index])
            if segment:
                segments.append(segment)
            start = index + 1
    tail = collapse_whitespace(raw[start:])
    if tail:
        segments.append(tail)
    return segments


def _compounds(selector: str) -> list[str]:
    """Split a selector into compound selectors at top-level combinators."""

    compounds: list[str] = []
    depth = 0
    current: list[str] = []
    for char in selector:
        if char in "([":
            depth += 1
        elif char in ")]":
            depth = max(0, depth - 1)
        if depth == 0 and (char.isspace() or char in _COMBINATORS):
            if current:
                compounds.append("".join(current))
                current = []
            continue
        current.append(char)
    if current:
        compounds.append("".join(current))
    return compounds


@dataclass(slots=True)
class _Compound:
    element: str | None
    classes: list[str]
    ids: list[str]
    pseudo_classes: list[str]
    pseudo: str | None


def _parse_compound(compound: str) -> _Compound:
    element = None
    rest = compound
    match = _ELEMENT_RE.match(compound)
    if match:
        element = match.group(1) if match.group(1) != "*" else None
        rest = compound[match.end():]
    classes: list[str] = []
    ids: list[str] = []
    pseudo_classes: list[str] = []
    pseudo: str | None = None
    for token in _TOKEN_RE.finditer(rest):
        if token.group("cls"):
            classes.append(token.group("cls")[1:])
        elif token.group("id"):
            ids.append(token.group("id")[1:])
        elif token.group("pseudo"):
            text = token.group("pseudo")
            if not text.startswith("::"):
                pseudo_classes.append(text[1:].split("(", 1)[0])
            if pseudo is None:
                pseudo = text.lstrip(":")
    return _Compound(element, classes, ids, pseudo_classes, pseudo)


def _combine(parents: Sequence[str], selectors: Sequence[str]) -> list[str]:
    """Resolve nested selectors against their parents (``&`` or descendant)."""

    if not parents:
        return list(selectors)
    combined: list[str] = []
    for parent in parents:
        for selector in selectors:
            if "&" in selector:
                combined.append(selector.replace("&", parent))
            else:
                combined.append(f"{parent} {selector}")
    return combined


class _StyleCollector:
    """Accumulates one stylesheet's metadata while walking its tree."""

    def __init__(self, source: SourceFile, metadata: dict[str, Any]) -> None:
        self.source = source
        self.metadata = metadata
        self.classes_seen: list[str] = []

    def collect(self) -> None:
        self._walk_statements(named_children(self.source.root), media=None, parents=())

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------
    def _walk_statements(
        self,
        nodes: Iterable[Any],
        *,
        media: str | None,
        parents: Sequence[str],
    ) -> None:
        for node in nodes:
            kind = node.type
            if kind == "rule_set":
                self._rule(node, media=media, parents=parents)
            elif kind == "media_statement":
                self._media(node, media=media, parents=parents)
            elif kind == "keyframes_statement":
                self._keyframes(node)
            elif kind == "import_statement":
                self.metadata["imports"].append(
                    {"value": self._prelude(node), "file": self.source.name}
                )
            elif kind.endswith("_statement") or kind == "at_rule":
                self._at_rule(node, media=media, parents=parents)

    def _rule(self, node: Any, *, media: str | None, parents: Sequence[str]) -> None:
        selectors_node = next(
            (child for child in node.children if child.type == "selectors"),
            None,
        )
        block = next((child for child in node.children if child.type == "block"), None)
        if selectors_node is None or block is None:
            return
        selectors = _combine(parents, split_selectors(self.source.slice(selectors_node)))
        properties = self._declarations(block)

        for name, value in properties.items():
            self.metadata["allProperties"].append(name)
            if name.startswith("--"):
                variable = self._variable(name)
                variable["value"] = value
        for name, value in properties.items():
            for match in _VAR_RE.finditer(value):
                self._variable(match.group(1))["usedIn"].append(
                    {"selector": list(selectors), "property": name, "context": media}
                )

        if media is not None:
            self.metadata["mediaQueries"][media]["rules"].append(
                collapse_whitespace(self.source.slice(node))
            )
        for selector in selectors:
            self._distribute(selector, properties, media)
        self.metadata["selectors"].extend(selectors)

        nested = [child for child in named_children(block) if child.type != "declaration"]
        self._walk_statements(nested, media=media, parents=selectors)

    def _media(self, node: Any, *, media: str | None, parents: Sequence[str]) -> None:
        query = normalize_media_query(self._prelude(node))
        if media is not None:
            query = f"{media} and {query}"
        self.metadata["mediaQueries"].setdefault(
            query,
            {"query": query, "rules": [], "classes": {}, "ids": {}, "elements": {}},
        )
        block = next((child for child in node.children if child.type == "block"), None)
        if block is None:
            return
        if parents:
            # Nested media inside a rule applies the block to the parent selectors.
            properties = self._declarations(block)
            for selector in parents:
                self._distribute(selector, properties, query)
        self._walk_statements(named_children(block), media=query, parents=parents)

    def _keyframes(self, node: Any) -> None:
        name_node = next(
            (child for child in node.children if child.type == "keyframes_name"),
            None,
        )
        name = self.source.slice(name_node).strip() if name_node is not None else ""
        frames: dict[str, dict[str, str]] = {}
        blocks = next(
            (child for child in node.children if child.type == "keyframe_block_list"),
            None,
        )
        for frame in named_children(blocks) if blocks is not None else []:
            block = next((child for child in frame.children if child.type == "block"), None)
            if block is None:
                continue
            selector = collapse_whitespace(
                self.source.data[frame.start_byte : block.start_byte].decode("utf-8", errors="replace")
            )
            frames.setdefault(selector, {}).update(self._declarations(block))
        self.metadata["keyframes"][name] = {"name": name, "frames": frames}

    def _at_rule(self, node: Any, *, media: str | None, parents: Sequence[str]) -> None:
        keyword = node.children[0] if node.children else None
        name = self.source.slice(keyword).lstrip("@") if keyword is not None else ""
        block = next((child for child in node.children if child.type == "block"), None)
        prelude = self._prelude(node)
        self.metadata["atRules"].setdefault(name, []).append(
            {
                "prelude": prelude or None,
                "block": collapse_whitespace(self.source.slice(block)) if block is not None else None,
            }
        )
        if block is not None:
            self._walk_statements(named_children(block), media=media, parents=parents)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _prelude(self, node: Any) -> str:
        """Return the text between an at-keyword and its block or ``;``."""

        if not node.children:
            return ""
        start = node.children[0].end_byte
        end = node.end_byte
        for child in node.children[1:]:
            if child.type in {"block", ";", "keyframe_block_list"}:
                end = child.start_byte
                break
        return collapse_whitespace(
            self.source.data[start:end].decode("utf-8", errors="replace")
        )

    def _declarations(self, block: Any) -> dict[str, str]:
        properties: dict[str, str] = {}
        for declaration in named_children(block):
            if declaration.type != "declaration":
                continue
            name_node = next(
                (child for child in declaration.children if child.type == "property_name"),
                None,
            )
            colon = next((child for child in declaration.children if child.type == ":"), None)
            if name_node is None or colon is None:
                continue
            end = declaration.end_byte
            if declaration.children[-1].type == ";":
                end = declaration.children[-1].start_byte
            raw = self.source.data[colon.end_byte : end].decode("utf-8", errors="replace")
            value = collapse_whitespace(_IMPORTANT_RE.sub("", raw))
            properties[self.source.slice(name_node)] = value
        return properties

    def _variable(self, name: str) -> dict[str, Any]:
        return self.metadata["variables"].setdefault(
            name,
            {"name": name, "value": None, "usedIn": []},
        )

    def _entry(self, kind: str, name: str) -> dict[str, Any]:
        prefix = {"classes": ".", "ids": "#", "elements": ""}[kind]
        if kind == "classes" and name not in self.classes_seen:
            self.classes_seen.append(name)
        return self.metadata[kind].setdefault(
            name,
            {
                "name": name,
                "selector": f"{prefix}{name}",
                "properties": {},
                "pseudoClasses": {},
                "mediaQueries": {},
                "context": [],
            },
        )

    def _register(self, compound: _Compound) -> list[tuple[str, str, dict[str, Any]]]:
        entries: list[tuple[str, str]] = []
        if compound.element is not None:
            entries.append(("elements", compound.element))
        entries.extend(("classes", name) for name in compound.classes)
        entries.extend(("ids", name) for name in compound.ids)
        for pseudo in compound.pseudo_classes:
            self.metadata["pseudoClasses"].setdefault(
                pseudo,
                {"name": pseudo, "properties": {}, "contexts": []},
            )
        return [(kind, name, self._entry(kind, name)) for kind, name in entries]

    def _distribute(
        self,
        selector: str,
        properties: Mapping[str, str],
        media: str | None,
    ) -> None:
        compounds = [_parse_compound(compound) for compound in _compounds(selector)]
        if not compounds:
            return
        for compound in compounds[:-1]:
            self._register(compound)
        subject = compounds[-1]
        for kind, name, entry in self._register(subject):
            if media is not None:
                overlay = entry["mediaQueries"].setdefault(media, {})
                touched = self.metadata["mediaQueries"][media][kind].setdefault(name, {})
                for prop, value in properties.items():
                    touched.setdefault(prop, value)
            elif subject.pseudo is not None:
                overlay = entry["pseudoClasses"].setdefault(subject.pseudo, {})
            else:
                overlay = entry["properties"]
            for prop, value in properties.items():
                overlay.setdefault(prop, value)
            entry["context"].append(
                {"media": media, "pseudo": subject.pseudo, "properties": list(properties)}
            )
        if subject.pseudo in self.metadata["pseudoClasses"]:
            self.metadata["pseudoClasses"][subject.pseudo]["contexts"].append(
                {"selector": selector, "media": media}
            )
            target = self.metadata["pseudoClasses"][subject.pseudo]["properties"]
            for prop, value in properties.items():
                target.setdefault(prop, value)


class StylesheetExtractor:
    """Merge stylesheet metadata across one or more files."""

    def __init__(
        self,
        settings: ExtractionSettings | None = None,
        *,
        cache: ParserCache | None = None,
        logger: Logger | None = None,
    ) -> None:
        self._settings = settings or ExtractionSettings()
        self._cache = cache or ParserCache()
        self._logger = logger or get_logger(__name__, component="stylesheet-extractor")
        self.failures: dict[str, str] = {}

    def is_css_module(self, name: str) -> bool:
        lowered = name.lower()
        return any(lowered.endswith(suffix) for suffix in self._settings.css_module_suffixes)

    def extract_styles(self, files: Sequence[Path]) -> dict[str, Any]:
        texts: dict[str, str] = {}
        for path in files:
            try:
                texts[str(path)] = Path(path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                self._fail(str(path), f"Failed to read {path}: {exc}")
        return self.extract_style_sources(texts)

    def extract_style_sources(self, sources: Mapping[str, str]) -> dict[str, Any]:
        metadata = empty_stylesheet()
        for name, text in sources.items():
            try:
                source = parse_source(name, text, cache=self._cache, language="css")
            except TsmetaError as exc:
                self._fail(name, str(exc))
                continue
            if source.has_error:
                row = source.first_error_row()
                where = f" near line {row}" if row is not None else ""
                self._fail(name, f"Syntax error in {name}{where}")
            collector = _StyleCollector(source, metadata)
            collector.collect()
            if self.is_css_module(name):
                for class_name in collector.classes_seen:
                    if class_name not in metadata["exports"]:
                        metadata["exports"].append(class_name)
            self._logger.debug(
                "stylesheet-extracted",
                file=name,
                classes=len(metadata["classes"]),
                variables=len(metadata["variables"]),
            )
        return metadata

    def _fail(self, name: str, message: str) -> None:
        self._logger.info("parse-failed", file=name, message=message)
        self.failures.setdefault(name, message)
