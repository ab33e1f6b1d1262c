"""Tests for :mod:`tsmeta.modules.dependencies.resolver`."""

from __future__ import annotations

from typing import Any

import pytest

from tsmeta.modules.dependencies import (
    DependencyResolver,
    exported_view,
    resolve_module_path,
)


def _function(name: str, *, exported: bool = True, **extra: Any) -> dict[str, Any]:
    return {"name": name, "isExported": exported, "isDeclared": False, **extra}


def _tree(**tables: Any) -> dict[str, Any]:
    base: dict[str, Any] = {
        "functions": {},
        "variables": {},
        "classes": {},
        "interfaces": {},
        "types": {},
        "enums": {},
        "imports": {},
        "exports": {},
    }
    base.update(tables)
    return base


@pytest.mark.parametrize(
    ("specifier", "importer", "files", "expected"),
    [
        ("./a", "b.ts", ["a.ts", "b.ts"], "a.ts"),
        ("./a", "b.ts", ["a.tsx", "a.js", "b.ts"], "a.tsx"),
        ("./a.ts", "b.ts", ["a.ts"], "a.ts"),
        ("../lib/util", "src/main.ts", ["lib/util.d.ts"], "lib/util.d.ts"),
        ("./widgets", "main.ts", ["widgets/index.ts"], "widgets/index.ts"),
        ("react", "main.ts", ["react.ts"], None),
        ("./missing", "main.ts", ["main.ts"], None),
    ],
)
def test_resolve_module_path(
    specifier: str,
    importer: str,
    files: list[str],
    expected: str | None,
) -> None:
    assert resolve_module_path(specifier, importer, files) == expected


def test_exported_view_collects_declarations_and_named_exports() -> None:
    helper = _function("helper", exported=False)
    tree = _tree(
        functions={"add": _function("add"), "helper": helper},
        variables={"answer": {"name": "answer", "isExported": False, "isDefault": True}},
        exports={"namedExports": [{"name": "util", "alias": "helper", "from": None}]},
    )

    view = exported_view(tree)

    assert set(view.named) == {"add", "util"}
    assert view.named["util"] is helper
    assert view.default["name"] == "answer"


def test_resolve_builds_graph_and_unified_context() -> None:
    metadata = {
        "a.ts": _tree(functions={"add": _function("add", returnType="number")}),
        "b.ts": _tree(
            imports={
                "./a": {
                    "module": "./a",
                    "defaultImport": None,
                    "namedImports": [
                        {"name": "add", "alias": None},
                        {"name": "missing", "alias": None},
                    ],
                },
                "react": {"module": "react", "defaultImport": "React", "namedImports": []},
            }
        ),
    }

    resolution = DependencyResolver().resolve(metadata, metadata)

    b = resolution.graph["b.ts"]
    assert b["dependsOn"] == ["a.ts"]
    assert resolution.graph["a.ts"]["dependents"] == ["b.ts"]
    assert len(b["imports"]) == 1
    edge = b["imports"][0]
    assert edge["module"] == "./a"
    assert edge["resolvedPath"] == "a.ts"
    assert [item["name"] for item in edge["imports"]] == ["add"]
    assert edge["imports"][0]["type"] == "named"
    assert edge["imports"][0]["from"] == "a.ts"
    assert edge["imports"][0]["definition"]["returnType"] == "number"
    assert resolution.unified_context["add"]["from"] == "a.ts"


def test_aliased_and_default_imports_resolve() -> None:
    metadata = {
        "math.ts": _tree(
            functions={"sum": _function("sum", isDefault=True)},
        ),
        "main.ts": _tree(
            imports={
                "./math": {
                    "module": "./math",
                    "defaultImport": "total",
                    "namedImports": [{"name": "plus", "alias": "sum"}],
                }
            }
        ),
    }

    resolution = DependencyResolver().resolve(metadata, metadata)

    resolved = resolution.graph["main.ts"]["imports"][0]["imports"]
    assert resolved[0] == {"name": "total", "type": "default", "from": "math.ts"}
    assert resolved[1]["name"] == "sum"
    assert resolved[1]["type"] == "named"


def test_declared_functions_join_unified_context() -> None:
    metadata = {
        "globals.d.ts": _tree(
            functions={"log": _function("log", exported=False, isDeclared=True)}
        )
    }

    resolution = DependencyResolver().resolve(metadata, metadata)

    assert resolution.unified_context == {
        "log": {"name": "log", "isExported": False, "isDeclared": True, "from": "globals.d.ts"}
    }
    assert resolution.graph["globals.d.ts"] == {
        "imports": [],
        "dependsOn": [],
        "dependents": [],
    }
