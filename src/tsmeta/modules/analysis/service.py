"""Submission orchestration: validate, extract, resolve, assemble."""

from __future__ import annotations

from typing import Any, Mapping

from tsmeta.core.config import AppConfig
from tsmeta.core.errors import SandboxError, SubmissionError
from tsmeta.core.logging import Logger, get_logger
from tsmeta.modules.dependencies import CssModuleAnalyzer, DependencyResolver
from tsmeta.modules.metadata import (
    MarkupExtractor,
    ParserCache,
    SourceExtractor,
    StylesheetExtractor,
    empty_tree,
    is_markup,
    is_script,
    is_stylesheet,
)
from tsmeta.modules.metadata.tree import TREE_KEYS
from tsmeta.modules.sandbox import (
    Diagnostic,
    StubCatalog,
    TypeScriptValidator,
    sandbox_project,
)

__all__ = ["MAIN_CANDIDATES", "AnalysisService", "select_main_file"]

MAIN_CANDIDATES: tuple[str, ...] = ("main.ts", "main.tsx", "main.jsx")


def select_main_file(names: list[str]) -> str | None:
    """Pick the file whose metadata is copied to the response root.

    Example:
        >>> select_main_file(["util.ts", "main.tsx"])
        'main.tsx'
    """

    for candidate in MAIN_CANDIDATES:
        if candidate in names:
            return candidate
    return names[0] if names else None


class AnalysisService:
    """Turn a ``name -> text`` submission into the analysis response."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        validator: TypeScriptValidator | None = None,
        catalog: StubCatalog | None = None,
        logger: Logger | None = None,
    ) -> None:
        self._config = config or AppConfig()
        self._validator = validator or TypeScriptValidator(self._config.sandbox)
        self._catalog = catalog
        self._logger = logger or get_logger(__name__, component="analysis-service")
        self._cache = ParserCache()

    @property
    def config(self) -> AppConfig:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def analyze(self, submission: Mapping[str, str]) -> dict[str, Any]:
        """Analyze every file in ``submission``.

        Raises:
            SubmissionError: If a file name or content is not text.
        """

        files = self._checked(submission)
        names = list(files)
        scripts = {name: text for name, text in files.items() if _is_script_like(name)}
        styles = {name: text for name, text in files.items() if is_stylesheet(name)}

        diagnostics: dict[str, list[dict[str, Any]]] = {name: [] for name in names}
        for name, found in self.validate(files).items():
            diagnostics[name].extend(item.to_dict() for item in found)

        per_file: dict[str, dict[str, Any]] = {}
        failures: dict[str, str] = {}

        source_extractor = SourceExtractor(self._config.extraction, cache=self._cache)
        trees = source_extractor.extract_sources(scripts) if scripts else {}
        failures.update(source_extractor.failures)

        markup_extractor = MarkupExtractor(cache=self._cache)
        style_extractor = StylesheetExtractor(self._config.extraction, cache=self._cache)
        for name, text in files.items():
            if name in scripts:
                tree = trees.get(name) or empty_tree()
                if is_markup(name):
                    markup = markup_extractor.extract_markup_sources({name: text})
                    tree["components"] = markup["components"]
                    tree["hooks"] = markup["hooks"]
                per_file[name] = tree
            elif name in styles:
                per_file[name] = style_extractor.extract_style_sources({name: text})
            else:
                per_file[name] = {"error": f"Unsupported file type: {name}"}
        for extractor in (markup_extractor, style_extractor):
            for name, message in extractor.failures.items():
                failures.setdefault(name, message)
        for name, message in failures.items():
            diagnostics.setdefault(name, []).append({"message": message})

        script_trees = {name: per_file[name] for name in scripts}
        resolution = DependencyResolver().resolve(names, script_trees)
        css_modules = CssModuleAnalyzer(
            self._config.extraction, cache=self._cache
        ).analyze(scripts, script_trees, styles)

        response: dict[str, Any] = {
            "files": per_file,
            "dependencies": resolution.graph,
            "globalDeclarations": resolution.unified_context,
            "cssModules": css_modules,
            "diagnostics": diagnostics,
        }
        main = select_main_file(names)
        main_tree = per_file.get(main, {}) if main is not None else {}
        for key in TREE_KEYS:
            value = main_tree.get(key)
            response[key] = value if isinstance(value, dict) and main in scripts else {}
        response["components"] = main_tree.get("components", {})
        response["hooks"] = main_tree.get("hooks", {})

        self._logger.info(
            "submission-analyzed",
            files=len(names),
            scripts=len(scripts),
            stylesheets=len(styles),
            main=main,
            diagnostics=sum(len(found) for found in diagnostics.values()),
        )
        return response

    def validate(self, submission: Mapping[str, str]) -> dict[str, list[Diagnostic]]:
        """Type-check the script files of ``submission`` in one sandbox."""

        files = self._checked(submission)
        scripts = [name for name in files if _is_script_like(name)]
        if not scripts or not self._config.validation.enabled:
            return {name: [] for name in scripts}

        settings = self._config.sandbox
        try:
            catalog = self._catalog or StubCatalog.load(settings.stub_catalog)
            with sandbox_project(
                files,
                catalog=catalog,
                temp_root=settings.temp_root,
                keep=settings.keep_sandbox,
            ) as project:
                if len(scripts) == 1:
                    name = scripts[0]
                    return {name: self._validator.validate_one(name, files[name], project)}
                return self._validator.validate_all(scripts, project)
        except SandboxError as exc:
            self._logger.warning("sandbox-failed", error=str(exc))
            failure = Diagnostic(message=str(exc))
            return {name: [failure] for name in scripts}

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @staticmethod
    def _checked(submission: Mapping[str, str]) -> dict[str, str]:
        files: dict[str, str] = {}
        for name, text in submission.items():
            if not isinstance(name, str) or not name:
                raise SubmissionError(f"Invalid file name: {name!r}")
            if not isinstance(text, str):
                raise SubmissionError(f"Content of {name} must be text")
            files[name] = text
        return files


def _is_script_like(name: str) -> bool:
    return is_script(name) or is_markup(name)
