"""CSS-module consumption: which exported classes each script reads.

A script consumes a CSS module through a binding imported from a
``*.module.css`` file (``import styles from "./x.module.css"``). Every
``styles.name`` and ``styles["name"]`` access on that binding counts as a
use; named imports count as uses of the imported class.
"""

from __future__ import annotations

from typing import Any, Mapping

from tsmeta.core.config import ExtractionSettings
from tsmeta.core.errors import TsmetaError
from tsmeta.core.logging import Logger, get_logger
from tsmeta.modules.metadata import ParserCache, StylesheetExtractor
from tsmeta.modules.metadata.syntax import (
    SourceFile,
    child_by_field,
    iter_nodes,
    parse_source,
    strip_quotes,
)

from .resolver import resolve_module_path

__all__ = ["CssModuleAnalyzer", "used_classes"]

_STRING_INDEX = frozenset({"string"})


def _append_unique(target: list[str], value: str) -> None:
    if value and value not in target:
        target.append(value)


def used_classes(source: SourceFile, bindings: set[str]) -> dict[str, list[str]]:
    """Return ``binding -> [class, ...]`` for member accesses in ``source``.

    Classes are listed in order of first access.
    """

    found: dict[str, list[str]] = {binding: [] for binding in bindings}
    if not bindings:
        return found
    for node in iter_nodes(source.root):
        if node.type == "member_expression":
            owner = child_by_field(node, "object")
            prop = child_by_field(node, "property")
            if (
                owner is not None
                and prop is not None
                and owner.type == "identifier"
                and prop.type == "property_identifier"
            ):
                binding = source.slice(owner)
                if binding in found:
                    _append_unique(found[binding], source.slice(prop))
        elif node.type == "subscript_expression":
            owner = child_by_field(node, "object")
            index = child_by_field(node, "index")
            if (
                owner is not None
                and index is not None
                and owner.type == "identifier"
                and index.type in _STRING_INDEX
            ):
                binding = source.slice(owner)
                if binding in found:
                    _append_unique(found[binding], strip_quotes(source.slice(index)))
    return found


class CssModuleAnalyzer:
    """Cross-check CSS-module imports against the classes a module defines."""

    def __init__(
        self,
        settings: ExtractionSettings | None = None,
        *,
        cache: ParserCache | None = None,
        logger: Logger | None = None,
    ) -> None:
        self._settings = settings or ExtractionSettings()
        self._cache = cache or ParserCache()
        self._styles = StylesheetExtractor(self._settings, cache=self._cache)
        self._logger = logger or get_logger(__name__, component="css-module-analyzer")

    def analyze(
        self,
        scripts: Mapping[str, str],
        metadata: Mapping[str, Mapping[str, Any]],
        stylesheets: Mapping[str, str],
    ) -> dict[str, list[dict[str, Any]]]:
        """Return ``script -> [usage, ...]`` for scripts importing CSS modules.

        Imports that do not resolve to a submitted CSS module are skipped.
        Scripts without any CSS-module import are left out.
        """

        modules = [name for name in stylesheets if self._styles.is_css_module(name)]
        if not modules:
            return {}
        available: dict[str, list[str]] = {}

        report: dict[str, list[dict[str, Any]]] = {}
        for name, tree in metadata.items():
            imports = self._module_imports(name, tree, modules)
            if not imports:
                continue
            bindings = {item["importName"] for item in imports if item["importName"]}
            accesses = self._accesses(name, scripts.get(name, ""), bindings)

            entries: list[dict[str, Any]] = []
            for item in imports:
                target = item["resolvedPath"]
                if target not in available:
                    sheet = self._styles.extract_style_sources({target: stylesheets[target]})
                    available[target] = list(sheet["exports"])
                used = list(item.pop("named"))
                for class_name in accesses.get(item["importName"] or "", []):
                    _append_unique(used, class_name)
                defined = available[target]
                undefined = [cls for cls in used if cls not in defined]
                entries.append(
                    {
                        **item,
                        "usedClasses": used,
                        "availableClasses": list(defined),
                        "undefinedClasses": undefined,
                        "unusedClasses": [cls for cls in defined if cls not in used],
                        "valid": not undefined,
                    }
                )
                if undefined:
                    self._logger.info(
                        "css-module-undefined-classes",
                        file=name,
                        module=target,
                        classes=undefined,
                    )
            report[name] = entries
        return report

    def _module_imports(
        self,
        importer: str,
        tree: Mapping[str, Any],
        modules: list[str],
    ) -> list[dict[str, Any]]:
        found: list[dict[str, Any]] = []
        for specifier, info in (tree.get("imports") or {}).items():
            target = resolve_module_path(specifier, importer, modules)
            if target is None:
                continue
            named: list[str] = []
            for entry in info.get("namedImports", []):
                _append_unique(named, entry.get("alias") or entry.get("name") or "")
            found.append(
                {
                    "module": specifier,
                    "resolvedPath": target,
                    "importName": info.get("defaultImport") or info.get("namespaceImport"),
                    "named": named,
                }
            )
        return found

    def _accesses(self, name: str, text: str, bindings: set[str]) -> dict[str, list[str]]:
        if not bindings:
            return {}
        try:
            source = parse_source(name, text, cache=self._cache)
        except TsmetaError as exc:
            self._logger.info("css-module-scan-skipped", file=name, error=str(exc))
            return {}
        return used_classes(source, bindings)
