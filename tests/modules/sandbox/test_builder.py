"""Tests for :mod:`tsmeta.modules.sandbox.builder`."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tsmeta.core.errors import SandboxError
from tsmeta.modules.sandbox import StubCatalog, build_project, sandbox_project
from tsmeta.modules.sandbox.builder import global_declarations, package_manifest, tsconfig
from tsmeta.modules.sandbox.stubs import PackageStub


@pytest.fixture
def small_catalog() -> StubCatalog:
    return StubCatalog(
        {
            "widgets": PackageStub(
                name="widgets",
                version="2.0.0",
                declaration="export declare const w: number;\n",
            )
        }
    )


def test_tsconfig_is_strict_and_emits_nothing() -> None:
    options = tsconfig()["compilerOptions"]

    assert options["strict"] is True
    assert options["noEmit"] is True
    assert options["jsx"] == "react-jsx"
    assert tsconfig()["exclude"] == ["node_modules"]


def test_package_manifest_pins_stub_versions(small_catalog: StubCatalog) -> None:
    assert package_manifest(small_catalog)["dependencies"] == {"widgets": "^2.0.0"}


def test_global_declarations_hoist_only_declaration_files() -> None:
    hoisted = global_declarations(
        {
            "types.d.ts": "declare global {\n  var VERSION: string;\n}\n",
            "main.ts": "declare global { var ignored: number; }\n",
        }
    )

    assert hoisted == (
        "declare global {\n  var VERSION: string;\n}\n\nexport {};\n"
    )
    assert global_declarations({"main.ts": "const a = 1;"}) is None


def test_build_project_writes_scaffolding(
    tmp_path: Path,
    small_catalog: StubCatalog,
) -> None:
    project = build_project(
        {"src/main.ts": "export const a = 1;\n"},
        catalog=small_catalog,
        temp_root=tmp_path,
    )

    root = project.root
    assert root.parent == tmp_path
    assert json.loads((root / "tsconfig.json").read_text())["compilerOptions"]["strict"]
    assert (root / "node_modules" / "widgets" / "index.d.ts").is_file()
    assert (root / "node_modules" / "@types" / "widgets" / "package.json").is_file()
    assert project.path_for("src/main.ts") == root / "src" / "main.ts"
    assert (root / "src" / "main.ts").read_text() == "export const a = 1;\n"
    assert project.path_for("global.d.ts") is None

    project.cleanup()
    assert not root.exists()
    project.cleanup()


def test_build_project_writes_global_types(
    tmp_path: Path,
    small_catalog: StubCatalog,
) -> None:
    project = build_project(
        {"env.d.ts": "declare global { var VERSION: string; }\nexport {};\n"},
        catalog=small_catalog,
        temp_root=tmp_path,
    )
    try:
        hoisted = project.path_for("global.d.ts")
        assert hoisted is not None
        assert "var VERSION: string;" in hoisted.read_text()
    finally:
        project.cleanup()


def test_escaping_file_names_are_rejected(
    tmp_path: Path,
    small_catalog: StubCatalog,
) -> None:
    with pytest.raises(SandboxError, match="outside the sandbox"):
        build_project(
            {"../evil.ts": "export {};"},
            catalog=small_catalog,
            temp_root=tmp_path,
        )

    assert list(tmp_path.iterdir()) == []


def test_sandbox_project_cleans_up(tmp_path: Path, small_catalog: StubCatalog) -> None:
    with sandbox_project(
        {"main.ts": "export {};"},
        catalog=small_catalog,
        temp_root=tmp_path,
    ) as project:
        root = project.root
        assert root.is_dir()

    assert not root.exists()


def test_keep_leaves_directory(tmp_path: Path, small_catalog: StubCatalog) -> None:
    with sandbox_project(
        {"main.ts": "export {};"},
        catalog=small_catalog,
        temp_root=tmp_path,
        keep=True,
    ) as project:
        root = project.root

    assert root.is_dir()
