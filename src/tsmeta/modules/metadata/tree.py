"""Per-file accumulator for projected declaration records."""

from __future__ import annotations

import re
from typing import Any

from .projection import (
    project_class,
    project_enum,
    project_function,
    project_function_variable,
    project_import,
    project_interface,
    project_overload,
    project_type_alias,
    project_variable,
)
from .records import (
    ClassRecord,
    EnumRecord,
    FunctionRecord,
    FunctionVariableRecord,
    ImportRecord,
    InterfaceRecord,
    TypeAliasRecord,
    VariableRecord,
)

__all__ = ["MODULE_KEYS", "TREE_KEYS", "MetadataTree", "empty_tree"]

TREE_KEYS: tuple[str, ...] = (
    "functions",
    "variables",
    "classes",
    "interfaces",
    "types",
    "enums",
    "imports",
    "exports",
    "declarations",
    "modules",
    "namespaces",
)

MODULE_KEYS: tuple[str, ...] = (
    "exports",
    "interfaces",
    "functions",
    "classes",
    "variables",
    "types",
    "enums",
)

_OVERLOAD_KEY = re.compile(r"^overload\d+$")

_FUNCTION_CORE_KEYS = frozenset(
    {
        "name",
        "parameters",
        "params",
        "returnType",
        "returnResult",
        "isAsync",
        "isGenerator",
        "isDefault",
        "isExported",
        "isDeclared",
        "decorators",
        "genericsTypes",
        "body",
        "types",
    }
)


def _merge_first_wins(target: dict[str, Any], incoming: dict[str, Any]) -> None:
    for key, value in incoming.items():
        if key not in target:
            target[key] = value
        elif isinstance(target[key], list) and isinstance(value, list):
            target[key].extend(value)


def empty_tree() -> dict[str, Any]:
    """Return the serialized form of a tree with no declarations."""

    return MetadataTree().to_dict()


class MetadataTree:
    """Mutable accumulator threaded through the declaration walkers.

    Redeclarations merge instead of overwriting: body-less function
    signatures become ``overloadK`` entries counted from the entry itself,
    and declarations found in nested scopes never replace top-level ones.
    """

    def __init__(self, *, nested: bool = False) -> None:
        self.nested = nested
        self.functions: dict[str, dict[str, Any]] = {}
        self.variables: dict[str, dict[str, Any]] = {}
        self.classes: dict[str, dict[str, Any]] = {}
        self.interfaces: dict[str, dict[str, Any]] = {}
        self.types: dict[str, dict[str, Any]] = {}
        self.enums: dict[str, dict[str, Any]] = {}
        self.imports: dict[str, dict[str, Any]] = {}
        self.exports: dict[str, Any] = {}
        self.declarations: dict[str, dict[str, Any]] = {}
        self.modules: dict[str, dict[str, Any]] = {}
        self.namespaces: dict[str, dict[str, Any]] = {}
        self._implemented: set[str] = set()

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------
    def add_function(self, record: FunctionRecord, *, local: bool = False) -> None:
        entry = self.functions.get(record.name)
        if local and entry is not None:
            return
        if record.is_signature:
            if entry is None:
                entry = project_function(record)
                self.functions[record.name] = entry
            index = sum(1 for key in entry if _OVERLOAD_KEY.match(key))
            entry[f"overload{index}"] = project_overload(record)
            return

        canonical = project_function(record)
        if entry is None:
            self.functions[record.name] = canonical
        else:
            entry.update(canonical)
        self._implemented.add(record.name)

    def add_function_variable(
        self,
        record: FunctionVariableRecord,
        *,
        local: bool = False,
    ) -> None:
        if local and record.name in self.functions:
            return
        self.functions[record.name] = project_function_variable(record)

    def fold_assignment(self, function: str, prop: str, leaf: dict[str, Any]) -> bool:
        """Attach ``function.prop = value`` to a known function entry."""

        entry = self.functions.get(function)
        if entry is None or prop in _FUNCTION_CORE_KEYS or _OVERLOAD_KEY.match(prop):
            return False
        entry[prop] = leaf
        return True

    # ------------------------------------------------------------------
    # Other declarations
    # ------------------------------------------------------------------
    def add_variable(self, record: VariableRecord, *, local: bool = False) -> None:
        if local and record.name in self.variables:
            return
        self.variables[record.name] = project_variable(record)

    def add_class(self, record: ClassRecord, *, local: bool = False) -> None:
        if local and record.name in self.classes:
            return
        self.classes[record.name] = project_class(record)

    def add_interface(self, record: InterfaceRecord, *, local: bool = False) -> None:
        projected = project_interface(record)
        existing = self.interfaces.get(record.name)
        if existing is None:
            self.interfaces[record.name] = projected
            return
        if local:
            return
        # Declaration merging: later members extend the earlier declaration.
        existing["properties"].update(projected["properties"])
        existing["propertyDetails"].extend(projected["propertyDetails"])
        existing["methods"].update(projected["methods"])
        for key in ("extends", "extendedBy"):
            if key in projected:
                merged = existing.get(key, []) + projected[key]
                existing[key] = list(dict.fromkeys(merged))
        existing["isExported"] = existing["isExported"] or record.is_exported

    def add_type(self, record: TypeAliasRecord, *, local: bool = False) -> None:
        if local and record.name in self.types:
            return
        self.types[record.name] = project_type_alias(record)

    def add_enum(self, record: EnumRecord, *, local: bool = False) -> None:
        if local and record.name in self.enums:
            return
        self.enums[record.name] = project_enum(record)

    def add_import(self, record: ImportRecord) -> None:
        projected = project_import(record)
        existing = self.imports.get(record.module)
        if existing is None:
            self.imports[record.module] = projected
            return
        if record.default_import is not None:
            existing["defaultImport"] = record.default_import
        existing["namedImports"].extend(projected["namedImports"])
        if record.namespace_import is not None:
            existing["namespaceImport"] = record.namespace_import

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------
    def add_named_export(
        self,
        name: str,
        alias: str | None,
        source: str | None,
    ) -> None:
        if self.nested:
            self.exports.setdefault("named", []).append(
                {"name": name, "alias": alias}
            )
            return
        self.exports.setdefault("namedExports", []).append(
            {"name": name, "alias": alias, "from": source}
        )

    def add_reexport(self, module: str, namespace: str | None = None) -> None:
        entry: dict[str, Any] = {"module": module}
        if namespace is not None:
            entry["as"] = namespace
        self.exports.setdefault("reExports", []).append(entry)

    def set_default_export(self, expression: str) -> None:
        self.exports["default"] = expression

    def set_export_equals(self, expression: str) -> None:
        self.exports["exportEquals"] = expression

    def mark_default(self, name: str) -> bool:
        """Flag an already-recorded declaration as the default export."""

        for table in (self.functions, self.classes, self.variables):
            entry = table.get(name)
            if entry is not None:
                entry["isDefault"] = True
                return True
        return False

    # ------------------------------------------------------------------
    # Modules and namespaces
    # ------------------------------------------------------------------
    def add_module(
        self,
        name: str,
        tree: "MetadataTree",
        *,
        namespace: bool,
        declared: bool,
        exported: bool,
    ) -> None:
        payload = tree.to_dict()
        payload["isDeclared"] = declared
        payload["isExported"] = exported
        target = self.namespaces if namespace else self.modules
        existing = target.get(name)
        if existing is None:
            target[name] = payload
            return
        # Namespace merging: members of later blocks join the first one.
        for key, value in payload.items():
            current = existing.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                _merge_first_wins(current, value)
            elif current is None:
                existing[key] = value
        existing["isExported"] = existing["isExported"] or exported

    def splice_global(self, tree: "MetadataTree") -> None:
        """Merge the members of a ``declare global`` block into ``declarations``."""

        for table in (
            tree.functions,
            tree.interfaces,
            tree.classes,
            tree.variables,
            tree.types,
            tree.enums,
        ):
            self.declarations.update(table)

    def function_names(self) -> set[str]:
        return set(self.functions)

    def to_dict(self) -> dict[str, Any]:
        keys = MODULE_KEYS if self.nested else TREE_KEYS
        payload = {key: getattr(self, key) for key in keys}
        if self.nested and self.namespaces:
            payload["namespaces"] = self.namespaces
        if self.nested and self.modules:
            payload["modules"] = self.modules
        return payload
