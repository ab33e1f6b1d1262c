"""Tests for :mod:`tsmeta.modules.metadata.tree` (no parser required)."""

from __future__ import annotations

from tsmeta.modules.metadata.records import (
    ClassRecord,
    ConstructorRecord,
    FunctionRecord,
    ImportRecord,
    InterfaceProperty,
    InterfaceRecord,
    MethodRecord,
    Parameter,
    PropertyRecord,
    VariableRecord,
)
from tsmeta.modules.metadata.tree import TREE_KEYS, MetadataTree, empty_tree


def _signature(name: str, *types: str, returns: str = "void") -> FunctionRecord:
    params = tuple(Parameter(name=f"p{i}", type=t) for i, t in enumerate(types))
    return FunctionRecord(name=name, parameters=params, return_type=returns)


def test_empty_tree_has_every_section() -> None:
    tree = empty_tree()

    assert tuple(tree) == TREE_KEYS
    assert all(value == {} for value in tree.values())


def test_signatures_become_overloads_and_body_fills_entry() -> None:
    tree = MetadataTree()
    tree.add_function(_signature("pick", "string", returns="string"))
    tree.add_function(_signature("pick", "number", returns="number"))
    implementation = FunctionRecord(
        name="pick",
        parameters=(Parameter(name="value", type="any"),),
        return_type="any",
        body="{\r\n  return value;\r\n}",
    )
    tree.add_function(implementation)

    entry = tree.to_dict()["functions"]["pick"]

    assert entry["overload0"]["returnType"] == "string"
    assert entry["overload1"]["params"][0]["type"] == "number"
    assert entry["overload0"]["body"] is None
    assert entry["returnType"] == "any"
    assert entry["body"] == "{\r\n  return value;\r\n}"
    assert entry["params"] == [
        {"name": "value", "type": ["any"], "optional": False, "initializer": None}
    ]


def test_local_declarations_never_replace_top_level() -> None:
    tree = MetadataTree()
    tree.add_variable(VariableRecord(name="count", type="number", declaration_kind="let"))
    tree.add_variable(
        VariableRecord(name="count", type="string", declaration_kind="const"),
        local=True,
    )

    assert tree.variables["count"]["type"] == "number"
    assert tree.variables["count"]["declarationType"] == "let"


def test_fold_assignment_rejects_core_keys() -> None:
    tree = MetadataTree()
    tree.add_function(
        FunctionRecord(name="greet", parameters=(), return_type="void", body="{}")
    )

    assert tree.fold_assignment("greet", "displayName", {"value": "Greet"})
    assert not tree.fold_assignment("greet", "body", {"value": "x"})
    assert not tree.fold_assignment("missing", "displayName", {"value": "x"})
    assert tree.functions["greet"]["displayName"] == {"value": "Greet"}


def test_interfaces_merge_members() -> None:
    tree = MetadataTree()
    tree.add_interface(
        InterfaceRecord(
            name="Box",
            properties=(InterfaceProperty(name="width", type="number"),),
        )
    )
    tree.add_interface(
        InterfaceRecord(
            name="Box",
            properties=(InterfaceProperty(name="height", type="number"),),
            extends=("Shape",),
            is_exported=True,
        )
    )

    box = tree.interfaces["Box"]
    assert box["properties"] == {"width": "number", "height": "number"}
    assert box["extends"] == ["Shape"]
    assert box["isExported"] is True


def test_imports_from_same_module_accumulate() -> None:
    tree = MetadataTree()
    tree.add_import(ImportRecord(module="./math", named_imports=(("add", None),)))
    tree.add_import(
        ImportRecord(
            module="./math",
            default_import="math",
            named_imports=(("sub", "minus"),),
        )
    )

    entry = tree.imports["./math"]
    assert entry["defaultImport"] == "math"
    assert entry["namedImports"] == [
        {"name": "add", "alias": None},
        {"name": "sub", "alias": "minus"},
    ]


def test_class_projection_keeps_reserved_keys() -> None:
    record = ClassRecord(
        name="Point",
        properties=(
            PropertyRecord(name="x", type="number", initializer="0"),
            PropertyRecord(name="name", type="string", access_modifier="private"),
        ),
        methods=(
            MethodRecord(name="norm", parameters=(), return_type="number", body="{}"),
        ),
        constructor=ConstructorRecord(
            parameters=(Parameter(name="x", type="number", initializer="'0'"),),
            body="{}",
        ),
        constructor_signatures=(
            ConstructorRecord(parameters=()),
            ConstructorRecord(parameters=(Parameter(name="x", type="number"),)),
        ),
    )
    tree = MetadataTree()
    tree.add_class(record)

    point = tree.classes["Point"]
    assert point["name"] == "Point"
    assert point["x"] == {"types": ["number"], "modificator": "opened", "value": "0"}
    assert point["norm"] == {"body": "{}"}
    assert point["methods"]["norm"]["kind"] == "method"
    assert point["constructor"]["params"] == [
        {"x": {"types": ["number"], "defaultValue": "0"}}
    ]
    assert point["constructor"]["body"] == "{}"
    assert point["constructorSignature0"] == {"params": []}
    assert "constructorSignature1" in point
    assert point["properties"]["name"]["accessModifier"] == "private"


def test_nested_tree_uses_module_keys_and_named_exports() -> None:
    tree = MetadataTree(nested=True)
    tree.add_named_export("helper", None, None)

    payload = tree.to_dict()

    assert "imports" not in payload
    assert payload["exports"] == {"named": [{"name": "helper", "alias": None}]}
