"""Tests for :class:`tsmeta.modules.metadata.SourceExtractor`."""

from __future__ import annotations

import json
from pathlib import Path
from textwrap import dedent

import pytest

pytest.importorskip("tree_sitter_languages")

from tsmeta.modules.metadata import SourceExtractor, empty_tree  # noqa: E402


def _extract(text: str, name: str = "main.ts") -> dict:
    extractor = SourceExtractor()
    return extractor.extract_sources({name: dedent(text)})[name]


def test_overload_signatures_are_kept_beside_implementation() -> None:
    tree = _extract(
        """
        function pick(value: string): string;
        function pick(value: number): number;
        function pick(value: any): any {
          return value;
        }
        """
    )

    entry = tree["functions"]["pick"]
    assert entry["overload0"]["returnType"] == "string"
    assert entry["overload1"]["returnType"] == "number"
    assert "overload2" not in entry
    assert entry["returnType"] == "any"
    assert entry["body"] == "{\r\n  return value;\r\n}"


def test_function_return_type_is_inferred_and_widened() -> None:
    tree = _extract(
        """
        export async function load(id: number) {
          return "item";
        }
        function add(a: number, b: number): number {
          return a + b;
        }
        """
    )

    load = tree["functions"]["load"]
    assert load["returnType"] == "Promise<string>"
    assert load["isAsync"] is True
    assert load["isExported"] is True
    assert load["parameters"] == [
        {"name": "id", "type": "number", "optional": False, "initializer": None}
    ]
    assert tree["functions"]["add"]["returnResult"] == ["number"]


def test_variables_keep_literal_types_and_materialize_objects() -> None:
    tree = _extract(
        """
        const answer = 42;
        let greeting: string = 'hi';
        const config = { port: 8080, name: 'api' };
        """
    )

    variables = tree["variables"]
    assert variables["answer"]["type"] == "42"
    assert variables["answer"]["isConst"] is True
    assert variables["greeting"]["declarationType"] == "let"
    assert variables["greeting"]["type"] == "string"
    assert variables["greeting"]["value"] == "hi"
    assert variables["config"]["value"] == {
        "port": {"type": "number", "value": "8080"},
        "name": {"type": "string", "value": "api"},
    }


def test_property_assignment_folds_into_function() -> None:
    tree = _extract(
        """
        function greet() {}
        greet.displayName = 'Greet';
        """
    )

    assert tree["functions"]["greet"]["displayName"] == {
        "type": "string",
        "value": "Greet",
    }


def test_arrow_function_variable_is_also_a_function() -> None:
    tree = _extract("const double = (n: number): number => n * 2;\n")

    entry = tree["functions"]["double"]
    assert entry["returnType"] == "number"
    assert entry["params"] == [{"name": "n", "type": ["number"]}]
    assert "double" in tree["variables"]


def test_class_constructor_signatures_and_members() -> None:
    tree = _extract(
        """
        export class Point {
          x: number = 0;
          constructor();
          constructor(x: number);
          constructor(x?: number) {
            this.x = x ?? 0;
          }
          norm(): number {
            return this.x;
          }
        }
        """
    )

    point = tree["classes"]["Point"]
    assert point["isExported"] is True
    assert "constructorSignature0" in point
    assert "constructorSignature1" in point
    assert "constructorSignature2" not in point
    assert point["constructor"]["body"].startswith("{")
    assert point["properties"]["x"]["type"] == "number"
    assert point["methods"]["norm"]["returnType"] == "number"
    assert point["norm"]["body"] == point["methods"]["norm"]["body"]


def test_enums_fold_constant_members() -> None:
    tree = _extract(
        """
        enum Flags { A = 1, B = A << 1, C }
        const enum Mode { Read = 'r' }
        """
    )

    flags = tree["enums"]["Flags"]
    assert flags["members"] == [
        {"name": "A", "value": 1},
        {"name": "B", "value": 2},
        {"name": "C", "value": 3},
    ]
    mode = tree["enums"]["Mode"]
    assert mode["isConst"] is True
    assert mode["members"] == [{"name": "Read", "value": '"r"'}]


def test_type_aliases_are_classified_by_shape() -> None:
    tree = _extract(
        """
        interface Foo { a: string }
        export type Mode = 'read' | 'write' | "append";
        type Draft = Partial<Foo>;
        type Handler = {
          (event: string): void;
          label: string;
          once?: boolean;
        };
        """
    )
    types = tree["types"]

    mode = types["Mode"]
    assert mode["isExported"] is True
    assert mode["type"] == "combined"
    assert mode["possibleTypes"] == [
        {"type": "literal", "value": "read"},
        {"type": "literal", "value": "write"},
        {"type": "literal", "value": "append"},
    ]

    draft = types["Draft"]
    assert draft["definition"] == "Partial<Foo>"
    assert draft["value"] == "Partial<Foo>"
    assert draft["type"] == "simple"

    handler = types["Handler"]
    assert handler["type"] == "function"
    assert handler["params"] == [{"name": "event", "type": "string", "optional": False}]
    assert handler["returnType"] == "void"
    assert handler["properties"] == {"label": "string", "once": "boolean"}


def test_interface_members_and_heritage() -> None:
    tree = _extract(
        """
        interface Audited { createdAt: Date }
        export interface User extends Audited {
          readonly id: number;
          nick?: string;
          greet(name: string): string;
          reset();
        }
        """
    )

    user = tree["interfaces"]["User"]
    assert user["isExported"] is True
    assert user["properties"] == {"id": "number", "nick": "string"}
    details = {item["name"]: item for item in user["propertyDetails"]}
    assert details["id"]["readonly"] is True
    assert details["nick"]["optional"] is True
    assert details["nick"]["typeString"] == "nick?: string"

    assert set(user["methods"]) == {"greet", "reset"}
    greet = user["methods"]["greet"]
    assert greet["returnType"] == "string"
    assert greet["parameters"] == [
        {"name": "name", "type": "string", "optional": False, "initializer": None}
    ]
    assert user["methods"]["reset"]["returnType"] == "any"
    assert user["extends"] == ["Audited"]
    assert user["extendedBy"] == ["Audited"]
    assert "extends" not in tree["interfaces"]["Audited"]


def test_same_named_interfaces_merge() -> None:
    tree = _extract(
        """
        interface Settings { theme: string }
        interface Settings extends Base {
          width: number;
          save(): void;
        }
        """
    )

    settings = tree["interfaces"]["Settings"]
    assert settings["properties"] == {"theme": "string", "width": "number"}
    assert list(settings["methods"]) == ["save"]
    assert settings["methods"]["save"]["returnType"] == "void"
    assert settings["extends"] == ["Base"]
    assert len(tree["interfaces"]) == 1


def test_imports_and_exports() -> None:
    tree = _extract(
        """
        import React, { useState as useS, useEffect } from 'react';
        import * as path from 'path';
        const answer = 42;
        export { helper as util } from './helpers';
        export default answer;
        """
    )

    react = tree["imports"]["react"]
    assert react["defaultImport"] == "React"
    assert react["namedImports"] == [
        {"name": "useS", "alias": "useState"},
        {"name": "useEffect", "alias": None},
    ]
    assert tree["imports"]["path"]["namespaceImport"] == "path"
    assert tree["exports"]["namedExports"] == [
        {"name": "util", "alias": "helper", "from": "./helpers"}
    ]
    assert tree["variables"]["answer"]["isDefault"] is True


def test_namespaces_collect_exported_members() -> None:
    tree = _extract(
        """
        namespace Geometry {
          export function area(r: number): number {
            return r * r;
          }
        }
        """
    )

    geometry = tree["namespaces"]["Geometry"]
    assert geometry["functions"]["area"]["isExported"] is True
    assert geometry["isDeclared"] is False


def test_declare_global_is_spliced_into_declarations() -> None:
    tree = _extract(
        """
        declare global {
          interface Window { appName: string; }
        }
        export {};
        """,
        name="globals.d.ts",
    )

    assert tree["declarations"]["Window"]["properties"] == {"appName": "string"}
    assert "Window" not in tree["interfaces"]


def test_local_declarations_do_not_leak_exports() -> None:
    tree = _extract(
        """
        export function outer() {
          const inner = 1;
          return inner;
        }
        """
    )

    assert tree["variables"]["inner"]["isExported"] is False


def test_extraction_is_idempotent() -> None:
    source = {"a.ts": "export const a = 1;\nexport function f(x: number) { return x; }\n"}

    first = SourceExtractor().extract_sources(source)
    second = SourceExtractor().extract_sources(source)

    assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)


def test_extract_empty_batch_returns_empty_tree() -> None:
    assert SourceExtractor().extract([]) == empty_tree()


def test_extract_reads_files_into_one_tree(write_files, tmp_path: Path) -> None:
    paths = write_files(
        {
            "a.ts": "export function add(a: number, b: number): number { return a + b; }\n",
            "b.ts": "export const total = 3;\n",
        }
    )
    extractor = SourceExtractor()

    tree = extractor.extract([*paths, tmp_path / "missing.ts"])

    assert set(tree["functions"]) == {"add"}
    assert "total" in tree["variables"]
    assert list(extractor.failures) == [str(tmp_path / "missing.ts")]


def test_syntax_error_is_reported_with_line() -> None:
    extractor = SourceExtractor()

    result = extractor.extract_sources({"bad.ts": "const ok = 1;\nfunction (\n"})

    assert set(result) == {"bad.ts"}
    assert extractor.failures["bad.ts"].startswith("Syntax error in bad.ts")
