"""Cross-file import resolution for script metadata trees."""

from __future__ import annotations

from dataclasses import dataclass, field
import posixpath
from typing import Any, Iterable, Mapping

from tsmeta.core.logging import Logger, get_logger

__all__ = [
    "PROBE_EXTENSIONS",
    "DependencyResolution",
    "DependencyResolver",
    "ExportedView",
    "exported_view",
    "resolve_module_path",
]

PROBE_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".jsx", ".d.ts", ".js")

_EXPORTABLE_TABLES: tuple[str, ...] = (
    "functions",
    "variables",
    "classes",
    "types",
    "interfaces",
    "enums",
)


@dataclass(slots=True)
class ExportedView:
    """Names a file makes importable, mapped to their declarations."""

    named: dict[str, dict[str, Any]] = field(default_factory=dict)
    default: Any | None = None


@dataclass(frozen=True, slots=True)
class DependencyResolution:
    """Outcome of :meth:`DependencyResolver.resolve`."""

    graph: dict[str, dict[str, Any]]
    unified_context: dict[str, dict[str, Any]]


def _is_relative(specifier: str) -> bool:
    return specifier.startswith("./") or specifier.startswith("../")


def resolve_module_path(
    specifier: str,
    importer: str,
    files: Iterable[str],
) -> str | None:
    """Map a relative ``specifier`` imported by ``importer`` onto a file name.

    Candidates are probed as the exact path, the path plus each extension in
    :data:`PROBE_EXTENSIONS`, then ``index`` plus each extension inside the
    path. Bare package specifiers never resolve.

    Example:
        >>> resolve_module_path("./a", "src/b.ts", ["src/a.ts", "src/b.ts"])
        'src/a.ts'
    """

    if not _is_relative(specifier):
        return None
    known = {posixpath.normpath(name): name for name in files}
    base = posixpath.normpath(
        posixpath.join(posixpath.dirname(importer), specifier)
    )
    candidates = [base]
    candidates.extend(base + ext for ext in PROBE_EXTENSIONS)
    candidates.extend(posixpath.join(base, "index" + ext) for ext in PROBE_EXTENSIONS)
    for candidate in candidates:
        if candidate in known:
            return known[candidate]
    return None


def exported_view(metadata: Mapping[str, Any]) -> ExportedView:
    """Collect the exported declarations of one file's metadata tree."""

    view = ExportedView()
    for table in _EXPORTABLE_TABLES:
        for name, entry in (metadata.get(table) or {}).items():
            if not isinstance(entry, dict):
                continue
            if entry.get("isExported"):
                view.named.setdefault(name, entry)
            if entry.get("isDefault") and view.default is None:
                view.default = entry

    exports = metadata.get("exports") or {}
    for item in exports.get("namedExports", []):
        exported = item.get("name")
        if not exported:
            continue
        local = item.get("alias") or exported
        definition = _local_declaration(metadata, local) if item.get("from") is None else None
        view.named.setdefault(exported, definition or item)
    if view.default is None:
        view.default = exports.get("default") or exports.get("exportEquals")
    return view


def _local_declaration(metadata: Mapping[str, Any], name: str) -> dict[str, Any] | None:
    for table in _EXPORTABLE_TABLES:
        entry = (metadata.get(table) or {}).get(name)
        if isinstance(entry, dict):
            return entry
    return None


class DependencyResolver:
    """Build the dependency graph and unified context for a file set."""

    def __init__(self, *, logger: Logger | None = None) -> None:
        self._logger = logger or get_logger(__name__, component="dependency-resolver")

    def resolve(
        self,
        files: Iterable[str],
        metadata: Mapping[str, Mapping[str, Any]],
    ) -> DependencyResolution:
        names = list(files)
        views = {name: exported_view(tree) for name, tree in metadata.items()}
        graph: dict[str, dict[str, Any]] = {
            name: {"imports": [], "dependsOn": [], "dependents": []}
            for name in metadata
        }

        for name, tree in metadata.items():
            for specifier, info in (tree.get("imports") or {}).items():
                target = resolve_module_path(specifier, name, names)
                if target is None or target not in views:
                    continue
                view = views[target]
                resolved: list[dict[str, Any]] = []
                default_import = info.get("defaultImport")
                if default_import and view.default is not None:
                    resolved.append(
                        {"name": default_import, "type": "default", "from": target}
                    )
                for named in info.get("namedImports", []):
                    imported = named.get("alias") or named.get("name")
                    definition = view.named.get(imported)
                    if definition is None:
                        continue
                    resolved.append(
                        {
                            "name": imported,
                            "type": "named",
                            "from": target,
                            "definition": definition,
                        }
                    )
                graph[name]["imports"].append(
                    {"module": specifier, "resolvedPath": target, "imports": resolved}
                )
                if target not in graph[name]["dependsOn"]:
                    graph[name]["dependsOn"].append(target)
                if name not in graph[target]["dependents"]:
                    graph[target]["dependents"].append(name)

        unified = self._unified_context(metadata, views)
        self._logger.debug(
            "dependencies-resolved",
            files=len(graph),
            edges=sum(len(entry["dependsOn"]) for entry in graph.values()),
            declarations=len(unified),
        )
        return DependencyResolution(graph=graph, unified_context=unified)

    @staticmethod
    def _unified_context(
        metadata: Mapping[str, Mapping[str, Any]],
        views: Mapping[str, ExportedView],
    ) -> dict[str, dict[str, Any]]:
        unified: dict[str, dict[str, Any]] = {}
        for name, tree in metadata.items():
            for function in (tree.get("functions") or {}).values():
                if isinstance(function, dict) and function.get("isDeclared"):
                    unified[function["name"]] = {**function, "from": name}
            for exported, definition in views[name].named.items():
                unified[exported] = {**definition, "from": name}
        return unified
