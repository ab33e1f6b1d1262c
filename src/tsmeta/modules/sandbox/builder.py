"""Temporary on-disk TypeScript projects for compiler validation."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import json
from pathlib import Path, PurePosixPath
import re
import shutil
import tempfile
from typing import Any, Iterator, Mapping

from tsmeta.core.errors import SandboxError
from tsmeta.core.logging import Logger, get_logger

from .stubs import PackageStub, StubCatalog

__all__ = [
    "GLOBAL_TYPES_FILE",
    "SandboxProject",
    "build_project",
    "global_declarations",
    "package_manifest",
    "sandbox_project",
    "tsconfig",
]

GLOBAL_TYPES_FILE = "global.d.ts"

_GLOBAL_BLOCK = re.compile(r"declare\s+global\s*\{([^}]+)\}", re.S)


def tsconfig() -> dict[str, Any]:
    """Return the compiler configuration written into every sandbox."""

    return {
        "compilerOptions": {
            "target": "ES2022",
            "module": "commonjs",
            "moduleResolution": "node",
            "strict": True,
            "skipLibCheck": True,
            "esModuleInterop": True,
            "allowSyntheticDefaultImports": True,
            "jsx": "react-jsx",
            "jsxImportSource": "react",
            "baseUrl": ".",
            "typeRoots": ["./node_modules/@types", "./node_modules"],
            "paths": {"*": ["./node_modules/*", "./*"]},
            "noEmit": True,
            "resolveJsonModule": True,
            "isolatedModules": False,
            "allowJs": True,
            "checkJs": False,
            "types": [],
            "skipDefaultLibCheck": True,
            "experimentalDecorators": True,
            "emitDecoratorMetadata": True,
        },
        "include": ["./**/*"],
        "exclude": ["node_modules"],
    }


def package_manifest(catalog: StubCatalog) -> dict[str, Any]:
    dependencies = {
        stub.name: f"^{stub.version}"
        for stub in catalog
        if not stub.name.startswith("@types/")
    }
    return {
        "name": "tsmeta-sandbox",
        "version": "1.0.0",
        "private": True,
        "dependencies": dependencies,
    }


def global_declarations(files: Mapping[str, str]) -> str | None:
    """Hoist ``declare global`` bodies of submitted ``.d.ts`` files.

    Returns the contents of the combined ``global.d.ts`` or ``None`` when no
    declaration file contributes a global block.
    """

    bodies: list[str] = []
    for name, text in files.items():
        if not name.endswith(".d.ts"):
            continue
        match = _GLOBAL_BLOCK.search(text)
        if match:
            bodies.append(match.group(1).strip())
    if not bodies:
        return None
    joined = "\n  ".join(bodies)
    return f"declare global {{\n  {joined}\n}}\n\nexport {{}};\n"


@dataclass(slots=True)
class SandboxProject:
    """A materialized sandbox directory.

    ``file_map`` maps every submitted (and generated) file name to its
    absolute path inside ``root``.
    """

    root: Path
    file_map: dict[str, Path] = field(default_factory=dict)
    keep: bool = False
    _removed: bool = False

    def path_for(self, name: str) -> Path | None:
        return self.file_map.get(name)

    def write(self, name: str, content: str) -> Path:
        target = _safe_target(self.root, name)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        self.file_map[name] = target
        return target

    def cleanup(self) -> None:
        if self._removed or self.keep:
            return
        shutil.rmtree(self.root, ignore_errors=True)
        self._removed = True


def _safe_target(root: Path, name: str) -> Path:
    relative = PurePosixPath(name.replace("\\", "/"))
    if relative.is_absolute() or ".." in relative.parts or not relative.parts:
        raise SandboxError(f"Refusing to write outside the sandbox: {name}")
    return root.joinpath(*relative.parts)


def _write_json(path: Path, payload: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def _write_stub(node_modules: Path, stub: PackageStub) -> None:
    module_dir = node_modules / stub.name
    _write_json(
        module_dir / "package.json",
        {
            "name": stub.name,
            "version": stub.version,
            "main": "./index.js",
            "types": "./index.d.ts",
            "typings": "./index.d.ts",
        },
    )
    (module_dir / "index.d.ts").write_text(stub.declaration, encoding="utf-8")
    (module_dir / "index.js").write_text(
        f"// {stub.name} stub\nmodule.exports = {{}};\n",
        encoding="utf-8",
    )
    if stub.name.startswith("@types/"):
        return
    types_dir = node_modules / "@types" / stub.name
    _write_json(
        types_dir / "package.json",
        {"name": f"@types/{stub.name}", "version": stub.version, "types": "./index.d.ts"},
    )
    (types_dir / "index.d.ts").write_text(stub.declaration, encoding="utf-8")


def build_project(
    files: Mapping[str, str],
    *,
    catalog: StubCatalog,
    temp_root: Path | None = None,
    keep: bool = False,
    logger: Logger | None = None,
) -> SandboxProject:
    """Materialize ``files`` plus compiler scaffolding in a fresh directory.

    Raises:
        SandboxError: If the directory cannot be created or a file name
            escapes the sandbox root.
    """

    log = logger or get_logger(__name__, component="sandbox")
    try:
        if temp_root is not None:
            temp_root.mkdir(parents=True, exist_ok=True)
        root = Path(tempfile.mkdtemp(prefix="tsmeta-", dir=temp_root))
    except OSError as exc:
        raise SandboxError(f"Failed to create sandbox directory: {exc}") from exc

    project = SandboxProject(root=root, keep=keep)
    try:
        _write_json(root / "tsconfig.json", tsconfig())
        _write_json(root / "package.json", package_manifest(catalog))
        node_modules = root / "node_modules"
        (node_modules / "@types").mkdir(parents=True, exist_ok=True)
        for stub in catalog:
            _write_stub(node_modules, stub)

        hoisted = global_declarations(files)
        if hoisted is not None:
            project.write(GLOBAL_TYPES_FILE, hoisted)
        for name, content in files.items():
            project.write(name, content)
    except SandboxError:
        project.keep = False
        project.cleanup()
        raise
    except OSError as exc:
        project.keep = False
        project.cleanup()
        raise SandboxError(f"Failed to populate sandbox: {exc}") from exc

    log.debug(
        "sandbox-created",
        root=str(root),
        files=len(files),
        stubs=len(catalog),
        global_types=hoisted is not None,
    )
    return project


@contextmanager
def sandbox_project(
    files: Mapping[str, str],
    *,
    catalog: StubCatalog,
    temp_root: Path | None = None,
    keep: bool = False,
    logger: Logger | None = None,
) -> Iterator[SandboxProject]:
    """Scoped :func:`build_project` that always cleans up on exit."""

    project = build_project(
        files,
        catalog=catalog,
        temp_root=temp_root,
        keep=keep,
        logger=logger,
    )
    try:
        yield project
    finally:
        project.cleanup()
