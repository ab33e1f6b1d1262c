"""Component and hook extraction for JSX / TSX files.

The walk collects every candidate binding (function declarations,
function-valued variables, classes and plain variables) in one pass and
classifies them afterwards. A name keeps its first classification.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from tsmeta.core.errors import TsmetaError
from tsmeta.core.logging import Logger, get_logger

from .syntax import (
    ParserCache,
    SourceFile,
    child_by_field,
    iter_nodes,
    named_children,
    parse_source,
    unwrap_parens,
)

__all__ = ["MarkupExtractor", "hook_name"]

_MARKUP_NODES = frozenset({"jsx_element", "jsx_self_closing_element", "jsx_fragment"})
_FUNCTION_VALUES = frozenset({"arrow_function", "function", "function_expression"})
_CLASS_NODES = frozenset({"class_declaration", "class", "abstract_class_declaration"})
_LIFECYCLE_METHODS = ("componentDidMount", "componentDidUpdate", "componentWillUnmount")


@dataclass(slots=True)
class _Candidate:
    name: str
    kind: str
    node: Any
    statement: Any
    parent: int | None
    function: Any | None = None
    component: bool = False


@dataclass(slots=True)
class _FileResult:
    components: dict[str, dict[str, Any]] = field(default_factory=dict)
    variables: dict[str, dict[str, Any]] = field(default_factory=dict)
    hooks: dict[str, list[dict[str, Any]]] = field(default_factory=dict)


def hook_name(call: Any, source: SourceFile) -> str | None:
    """Return ``useX`` when ``call`` invokes a hook (bare or ``React.useX``)."""

    callee = child_by_field(call, "function")
    if callee is None:
        return None
    if callee.type == "member_expression":
        owner = child_by_field(callee, "object")
        if owner is None or source.slice(owner) != "React":
            return None
        callee = child_by_field(callee, "property")
    elif callee.type != "identifier":
        return None
    name = source.slice(callee)
    if len(name) > 3 and name.startswith("use") and name[3].isupper():
        return name
    return None


def _arguments(call: Any) -> list[Any]:
    arguments = child_by_field(call, "arguments")
    return named_children(arguments) if arguments is not None else []


def _is_markup(node: Any | None) -> bool:
    node = unwrap_parens(node)
    return node is not None and node.type in _MARKUP_NODES


def _returned_markup(function: Any) -> Any | None:
    """Return the markup node yielded by a function body, if any.

    Block bodies are judged by their last top-level ``return``; returns
    nested in branches are ignored.
    """

    body = child_by_field(function, "body")
    if body is None:
        return None
    if body.type != "statement_block":
        return unwrap_parens(body) if _is_markup(body) else None
    returns = [
        statement
        for statement in named_children(body)
        if statement.type == "return_statement"
    ]
    if not returns:
        return None
    values = named_children(returns[-1])
    if values and _is_markup(values[0]):
        return unwrap_parens(values[0])
    return None


def _class_methods(node: Any) -> list[Any]:
    body = child_by_field(node, "body")
    if body is None:
        return []
    return [member for member in named_children(body) if member.type == "method_definition"]


def _dependency_kind(node: Any | None) -> str:
    if node is None:
        return "none"
    if node.type == "array":
        return "array" if named_children(node) else "empty"
    return "unknown"


def _literal_kind(node: Any | None) -> str:
    if node is None:
        return "unknown"
    node = unwrap_parens(node)
    kind = node.type
    if kind == "number":
        return "number"
    if kind in {"string", "template_string"}:
        return "string"
    if kind in {"true", "false"}:
        return "boolean"
    if kind in {"array", "object", "null"}:
        return kind
    return "unknown"


def _variable_type(node: Any | None) -> str:
    if node is None:
        return "any"
    node = unwrap_parens(node)
    kind = node.type
    if kind == "number":
        return "number"
    if kind == "string":
        return "string"
    if kind in {"true", "false"}:
        return "boolean"
    if kind == "arrow_function":
        return "function"
    if kind == "object":
        return "object"
    return "any"


class MarkupExtractor:
    """Extract components, plain variables and hook calls from markup files."""

    def __init__(
        self,
        *,
        cache: ParserCache | None = None,
        logger: Logger | None = None,
    ) -> None:
        self._cache = cache or ParserCache()
        self._logger = logger or get_logger(__name__, component="markup-extractor")
        self.failures: dict[str, str] = {}

    def extract_markup(self, files: Sequence[Path]) -> dict[str, Any]:
        texts: dict[str, str] = {}
        for path in files:
            try:
                texts[str(path)] = Path(path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                self._fail(str(path), f"Failed to read {path}: {exc}")
        return self.extract_markup_sources(texts)

    def extract_markup_sources(self, sources: Mapping[str, str]) -> dict[str, Any]:
        """Merge the components, variables and hooks of every source."""

        merged = _FileResult()
        for name, text in sources.items():
            try:
                source = parse_source(name, text, cache=self._cache, language="tsx")
            except TsmetaError as exc:
                self._fail(name, str(exc))
                continue
            result = self._extract(source)
            for component, record in result.components.items():
                merged.components.setdefault(component, record)
            for variable, record in result.variables.items():
                if variable not in merged.components:
                    merged.variables.setdefault(variable, record)
            for hook, calls in result.hooks.items():
                merged.hooks.setdefault(hook, []).extend(calls)
        return {
            "components": merged.components,
            "variables": merged.variables,
            "hooks": merged.hooks,
        }

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------
    def _collect(self, source: SourceFile) -> tuple[list[_Candidate], list[Any]]:
        candidates: list[_Candidate] = []
        hook_calls: list[Any] = []
        stack: list[tuple[Any, int | None]] = [(source.root, None)]
        while stack:
            node, owner = stack.pop()
            scope = owner
            if node.type in {"function_declaration", "generator_function_declaration"}:
                name = child_by_field(node, "name")
                if name is not None:
                    candidates.append(
                        _Candidate(source.slice(name), "function", node, node, owner, node)
                    )
                    scope = len(candidates) - 1
            elif node.type in _CLASS_NODES:
                name = child_by_field(node, "name")
                if name is not None:
                    candidates.append(_Candidate(source.slice(name), "class", node, node, owner))
                    scope = len(candidates) - 1
            elif node.type == "variable_declarator":
                target = child_by_field(node, "name")
                value = unwrap_parens(child_by_field(node, "value"))
                if target is not None and target.type == "identifier":
                    function = None
                    kind = "variable"
                    if value is not None and value.type in _FUNCTION_VALUES:
                        function = value
                        kind = "arrow" if value.type == "arrow_function" else "function"
                    candidates.append(
                        _Candidate(
                            source.slice(target), kind, node, node.parent, owner, function
                        )
                    )
                    if function is not None:
                        scope = len(candidates) - 1
            elif node.type == "call_expression" and hook_name(node, source):
                hook_calls.append(node)
            stack.extend((child, scope) for child in reversed(node.children))
        return candidates, hook_calls

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------
    def _extract(self, source: SourceFile) -> _FileResult:
        candidates, hook_calls = self._collect(source)
        result = _FileResult()
        classified: set[str] = set()

        for candidate in candidates:
            candidate.component = self._is_component(candidate, source)

        for candidate in candidates:
            if candidate.name in classified:
                continue
            if candidate.component:
                classified.add(candidate.name)
                result.components[candidate.name] = self._component(candidate, source)
                continue
            if candidate.kind == "class" or self._inside_component(candidate, candidates):
                continue
            classified.add(candidate.name)
            value = child_by_field(candidate.node, "value")
            start = value.start_byte if value is not None else candidate.node.start_byte
            result.variables[candidate.name] = {
                "types": [_variable_type(value)],
                "value": source.data[start : candidate.node.end_byte].decode("utf-8", errors="replace"),
            }

        for call in hook_calls:
            name = hook_name(call, source)
            result.hooks.setdefault(name, []).append(self._hook(name, call, source))

        self._logger.debug(
            "markup-extracted",
            file=source.name,
            components=len(result.components),
            variables=len(result.variables),
            hooks=sum(len(calls) for calls in result.hooks.values()),
        )
        return result

    @staticmethod
    def _inside_component(candidate: _Candidate, candidates: list[_Candidate]) -> bool:
        parent = candidate.parent
        while parent is not None:
            if candidates[parent].component:
                return True
            parent = candidates[parent].parent
        return False

    @staticmethod
    def _is_component(candidate: _Candidate, source: SourceFile) -> bool:
        if candidate.kind == "class":
            return any(
                source.slice(child_by_field(method, "name")) == "render"
                and _returned_markup(method) is not None
                for method in _class_methods(candidate.node)
            )
        if candidate.function is None or not candidate.name[:1].isupper():
            return False
        return _returned_markup(candidate.function) is not None

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------
    def _component(self, candidate: _Candidate, source: SourceFile) -> dict[str, Any]:
        record: dict[str, Any] = {
            "name": candidate.name,
            "type": candidate.kind,
            "code": source.slice(candidate.statement),
            "returns": "",
            "states": [],
            "effects": [],
            "handlers": [],
            "methods": [],
            "inheritedFrom": None,
        }
        if candidate.kind == "class":
            self._class_component(candidate.node, record, source)
            return record

        function = candidate.function
        record["returns"] = source.slice(_returned_markup(function))
        body = child_by_field(function, "body")
        if body is None:
            return record
        for node in iter_nodes(body):
            if node.type == "call_expression":
                name = hook_name(node, source)
                if name == "useState":
                    self._state(node, record, source)
                elif name == "useEffect":
                    args = _arguments(node)
                    record["effects"].append(
                        {
                            "code": source.slice(node),
                            "dependencies": source.slice(args[1]) if len(args) > 1 else None,
                        }
                    )
            elif node.type == "variable_declarator":
                value = unwrap_parens(child_by_field(node, "value"))
                target = child_by_field(node, "name")
                if value is not None and value.type in _FUNCTION_VALUES and target is not None:
                    record["handlers"].append(
                        {"name": source.slice(target), "code": source.slice(node)}
                    )
        return record

    @staticmethod
    def _state(call: Any, record: dict[str, Any], source: SourceFile) -> None:
        declarator = call.parent
        while declarator is not None and declarator.type in {
            "parenthesized_expression",
            "as_expression",
        }:
            declarator = declarator.parent
        if declarator is None or declarator.type != "variable_declarator":
            return
        pattern = child_by_field(declarator, "name")
        if pattern is None or pattern.type != "array_pattern":
            return
        elements = named_children(pattern)
        args = _arguments(call)
        record["states"].append(
            {
                "name": source.slice(elements[0]) if elements else "",
                "initialValue": source.slice(args[0]) if args else None,
            }
        )

    @staticmethod
    def _class_component(node: Any, record: dict[str, Any], source: SourceFile) -> None:
        heritage = next(
            (child for child in node.children if child.type == "class_heritage"),
            None,
        )
        if heritage is not None:
            clauses = named_children(heritage)
            extends = clauses[0] if clauses else None
            if extends is not None and extends.type == "extends_clause":
                values = [
                    child for child in named_children(extends) if child.type != "type_arguments"
                ]
                extends = values[0] if values else None
            record["inheritedFrom"] = source.slice(extends) if extends is not None else None

        body = child_by_field(node, "body")
        for member in named_children(body) if body is not None else []:
            if member.type in {"public_field_definition", "field_definition"}:
                name = child_by_field(member, "name", "property")
                value = child_by_field(member, "value")
                if name is not None and source.slice(name) == "state" and value is not None:
                    record["states"].append({"name": "state", "initialValue": source.slice(value)})

        for method in _class_methods(node):
            name = source.slice(child_by_field(method, "name"))
            record["methods"].append({"name": name, "code": source.slice(method)})
            if name == "constructor":
                for inner in iter_nodes(method):
                    if inner.type != "assignment_expression":
                        continue
                    left = child_by_field(inner, "left")
                    if left is None or left.type != "member_expression":
                        continue
                    owner = child_by_field(left, "object")
                    prop = child_by_field(left, "property")
                    if (
                        owner is not None
                        and owner.type == "this"
                        and prop is not None
                        and source.slice(prop) == "state"
                    ):
                        record["states"].append(
                            {
                                "name": "state",
                                "initialValue": source.slice(child_by_field(inner, "right")),
                            }
                        )
            elif name in _LIFECYCLE_METHODS:
                record["effects"].append({"type": name, "code": source.slice(method)})
            elif name == "render":
                record["returns"] = source.slice(_returned_markup(method))

    @staticmethod
    def _hook(name: str, call: Any, source: SourceFile) -> dict[str, Any]:
        args = _arguments(call)
        first = args[0] if args else None
        second = args[1] if len(args) > 1 else None
        if name in {"useState", "useRef"}:
            kind = _literal_kind(first)
            if first is None and name == "useRef":
                kind = "null"
            entry: dict[str, Any] = {"type": kind}
            if first is not None:
                entry["initialValue"] = source.slice(first)
            return entry
        if name in {"useEffect", "useLayoutEffect", "useCallback", "useMemo"}:
            body_key = {
                "useCallback": "callbackBody",
                "useMemo": "factoryBody",
            }.get(name, "effectBody")
            entry = {"dependencies": _dependency_kind(second)}
            if first is not None:
                entry[body_key] = source.slice(first)
            return entry
        return {"arguments": [source.slice(arg) for arg in args]}

    def _fail(self, name: str, message: str) -> None:
        self._logger.info("parse-failed", file=name, message=message)
        self.failures.setdefault(name, message)
