"""Third-party package stubs materialized into sandbox ``node_modules``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import tomllib
from typing import Any, Iterator, Mapping

from tsmeta.core.errors import SandboxError
from tsmeta.resources import get_resource

__all__ = ["CATALOG_FILE", "DEFAULT_TEMPLATE", "PackageStub", "StubCatalog"]

CATALOG_FILE = "catalog.toml"
DEFAULT_TEMPLATE = "default.d.ts.tmpl"


@dataclass(frozen=True, slots=True)
class PackageStub:
    """Declaration text and manifest data for one stubbed package."""

    name: str
    version: str
    declaration: str


class StubCatalog:
    """Mapping of package name to :class:`PackageStub`.

    The packaged catalog lives in ``tsmeta/resources/stubs``; any directory
    with the same layout (``catalog.toml`` plus the declaration files it
    names and ``default.d.ts.tmpl``) can replace it.
    """

    def __init__(self, stubs: Mapping[str, PackageStub]) -> None:
        self._stubs = dict(stubs)

    def __iter__(self) -> Iterator[PackageStub]:
        return iter(self._stubs.values())

    def __len__(self) -> int:
        return len(self._stubs)

    def __contains__(self, name: object) -> bool:
        return name in self._stubs

    def get(self, name: str) -> PackageStub | None:
        return self._stubs.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._stubs)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    @classmethod
    def load(cls, directory: Path | None = None) -> "StubCatalog":
        """Load the catalog from ``directory`` or the packaged resources."""

        if directory is None:
            root: Any = get_resource("stubs")
        else:
            root = Path(directory)
            if not root.is_dir():
                raise SandboxError(f"Stub catalog directory not found: {root}")

        def read(name: str) -> str:
            candidate = root.joinpath(name)
            if not candidate.is_file():
                raise SandboxError(f"Stub catalog file missing: {name}")
            return candidate.read_text(encoding="utf-8")

        try:
            data = tomllib.loads(read(CATALOG_FILE))
        except tomllib.TOMLDecodeError as exc:
            raise SandboxError(f"Invalid stub catalog: {exc}") from exc

        template = read(DEFAULT_TEMPLATE)
        stubs: dict[str, PackageStub] = {}
        for name, entry in (data.get("packages") or {}).items():
            stub_file = entry.get("stub")
            if stub_file:
                declaration = read(stub_file)
            else:
                declaration = template.replace("{name}", name)
            stubs[name] = PackageStub(
                name=name,
                version=str(entry.get("version", "1.0.0")),
                declaration=declaration,
            )
        return cls(stubs)
