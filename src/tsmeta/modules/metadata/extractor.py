"""Source metadata extraction for TypeScript and JavaScript files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Sequence

from tsmeta.core.config import ExtractionSettings
from tsmeta.core.errors import TsmetaError
from tsmeta.core.logging import Logger, get_logger

from .syntax import ParserCache, SourceFile, parse_source
from .tree import MetadataTree, empty_tree
from .types import TypeSession
from .walkers import walk_file

__all__ = ["SourceExtractor"]


class SourceExtractor:
    """Walk a batch of script files into metadata trees.

    Every file in a batch is parsed once and indexed into one
    :class:`TypeSession` before any file is walked, so inferred types may
    reference declarations from sibling files.
    """

    def __init__(
        self,
        settings: ExtractionSettings | None = None,
        *,
        cache: ParserCache | None = None,
        logger: Logger | None = None,
    ) -> None:
        self._settings = settings or ExtractionSettings()
        self._cache = cache or ParserCache()
        self._logger = logger or get_logger(__name__, component="source-extractor")
        self.failures: dict[str, str] = {}

    @property
    def settings(self) -> ExtractionSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def extract(self, files: Sequence[Path]) -> dict[str, Any]:
        """Walk ``files`` into one shared tree and return its serialized form.

        Files that cannot be read are recorded in :attr:`failures` and
        skipped; an empty batch yields a tree whose sub-maps are all empty.
        """

        texts: dict[str, str] = {}
        for path in files:
            try:
                texts[str(path)] = Path(path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                self._fail(str(path), f"Failed to read {path}: {exc}")
        if not texts:
            return empty_tree()

        tree = MetadataTree()
        session, sources = self._session(texts)
        for name in texts:
            source = sources.get(name)
            if source is not None:
                self._walk(source, session, tree)
        return tree.to_dict()

    def extract_sources(self, sources: Mapping[str, str]) -> dict[str, dict[str, Any]]:
        """Return one serialized tree per submitted ``name -> text`` entry."""

        session, parsed = self._session(sources)
        results: dict[str, dict[str, Any]] = {}
        for name in sources:
            source = parsed.get(name)
            if source is None:
                results[name] = empty_tree()
                continue
            results[name] = self._walk(source, session, MetadataTree()).to_dict()
        return results

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _session(
        self,
        texts: Mapping[str, str],
    ) -> tuple[TypeSession, dict[str, SourceFile]]:
        session = TypeSession(default_type=self._settings.default_type)
        parsed: dict[str, SourceFile] = {}
        for name, text in texts.items():
            try:
                source = parse_source(name, text, cache=self._cache)
            except TsmetaError as exc:
                self._fail(name, str(exc))
                continue
            if source.has_error:
                row = source.first_error_row()
                where = f" near line {row}" if row is not None else ""
                self._fail(name, f"Syntax error in {name}{where}")
            session.index(source)
            parsed[name] = source
        self._logger.debug(
            "type-session-ready",
            files=len(parsed),
            functions=len(session.functions),
            variables=len(session.variables),
            aliases=len(session.aliases),
        )
        return session, parsed

    def _walk(
        self,
        source: SourceFile,
        session: TypeSession,
        tree: MetadataTree,
    ) -> MetadataTree:
        try:
            walk_file(source, session, self._settings, tree=tree)
        except (AttributeError, IndexError, TypeError, ValueError) as exc:
            # Malformed trees can break walker assumptions; keep what was collected.
            self._logger.warning(
                "walk-failed",
                file=source.name,
                error=str(exc),
            )
            self._fail(source.name, f"Failed to extract {source.name}: {exc}")
        return tree

    def _fail(self, name: str, message: str) -> None:
        self._logger.info("parse-failed", file=name, message=message)
        self.failures.setdefault(name, message)
