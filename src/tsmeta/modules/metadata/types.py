"""Project-wide type inference over tree-sitter syntax trees.

There is no TypeScript checker in-process, so :class:`TypeSession` indexes
the top-level declarations of every file in a batch and
:class:`TypeResolver` answers type questions for one file against that
index. Annotations are rendered from source text; initializers are
inferred structurally; anything unresolvable degrades to the configured
default type (``"any"``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import re
from typing import Any, Iterable, Sequence

from .syntax import (
    SourceFile,
    child_by_field,
    collapse_whitespace,
    first_child_of_type,
    has_token,
    named_children,
    unwrap_parens,
)

__all__ = [
    "FUNCTION_NODE_TYPES",
    "TypeResolver",
    "TypeSession",
    "join_union",
    "parameter_nodes",
    "widen",
]

FUNCTION_NODE_TYPES = frozenset(
    {
        "arrow_function",
        "function",
        "function_expression",
        "generator_function",
    }
)

_NUMBER_RE = re.compile(r"^-?(\d[\d_]*\.?\d*(e[+-]?\d+)?|\.\d+|0x[0-9a-f]+|0b[01]+|0o[0-7]+)n?$", re.I)

_ARITHMETIC = frozenset({"-", "*", "/", "%", "**", "<<", ">>", ">>>", "&", "|", "^"})
_COMPARISON = frozenset(
    {"==", "===", "!=", "!==", "<", ">", "<=", ">=", "instanceof", "in"}
)
_LOGICAL = frozenset({"&&", "||", "??"})

_STRING_METHODS = frozenset(
    {
        "toString",
        "toFixed",
        "toUpperCase",
        "toLowerCase",
        "trim",
        "join",
        "charAt",
        "padStart",
        "padEnd",
        "repeat",
        "replace",
        "toISOString",
        "toLocaleString",
        "substring",
    }
)
_NUMBER_METHODS = frozenset({"indexOf", "lastIndexOf", "findIndex", "push", "charCodeAt", "getTime"})
_BOOLEAN_METHODS = frozenset({"includes", "startsWith", "endsWith", "some", "every", "has", "test", "isArray"})

_GLOBAL_CALLS = {
    "String": "string",
    "Number": "number",
    "Boolean": "boolean",
    "parseInt": "number",
    "parseFloat": "number",
    "isNaN": "boolean",
    "Symbol": "symbol",
    "BigInt": "bigint",
}

_GLOBAL_IDENTIFIERS = {
    "undefined": "undefined",
    "NaN": "number",
    "Infinity": "number",
}


def join_union(types: Iterable[str]) -> str:
    """Join distinct types with ``|`` preserving first-seen order."""

    unique = list(dict.fromkeys(t for t in types if t))
    if not unique:
        return ""
    if set(unique) == {"true", "false"}:
        return "boolean"
    return " | ".join(unique)


def _split_union(text: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    for char in text:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in "\"'`":
            quote = char
        elif char in "([{<":
            depth += 1
        elif char in ")]}>":
            depth -= 1
        elif char == "|" and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    parts.append("".join(current).strip())
    return [part for part in parts if part]


def widen(type_text: str, *, enums: Iterable[str] = ()) -> str:
    """Widen literal types the way mutable locations see them.

    Example:
        >>> widen('"hi" | 5 | true')
        'string | number | boolean'
    """

    enum_names = set(enums)
    widened: list[str] = []
    for part in _split_union(type_text):
        if part[:1] in {'"', "'", "`"}:
            widened.append("string")
        elif _NUMBER_RE.match(part):
            widened.append("bigint" if part.endswith("n") else "number")
        elif part in {"true", "false"}:
            widened.append("boolean")
        elif "." in part and part.split(".", 1)[0] in enum_names:
            widened.append(part.split(".", 1)[0])
        else:
            widened.append(part)
    return join_union(widened)


@dataclass(slots=True)
class _Symbol:
    source: SourceFile
    node: Any


@dataclass(slots=True)
class TypeSession:
    """Index of top-level declarations across every file in a batch."""

    default_type: str = "any"
    functions: dict[str, _Symbol] = field(default_factory=dict)
    variables: dict[str, _Symbol] = field(default_factory=dict)
    aliases: dict[str, _Symbol] = field(default_factory=dict)
    classes: set[str] = field(default_factory=set)
    interfaces: set[str] = field(default_factory=set)
    enums: set[str] = field(default_factory=set)
    _memo: dict[tuple[str, str], str] = field(default_factory=dict)
    _resolving: set[tuple[str, str]] = field(default_factory=set)

    def index(self, source: SourceFile) -> None:
        """Register the top-level declarations found in ``source``."""

        for statement in named_children(source.root):
            self._index_statement(source, statement)

    def _index_statement(self, source: SourceFile, node: Any) -> None:
        kind = node.type
        if kind in {"export_statement", "ambient_declaration"}:
            inner = child_by_field(node, "declaration")
            candidates = [inner] if inner is not None else named_children(node)
            for child in candidates:
                self._index_statement(source, child)
            return
        name_node = child_by_field(node, "name")
        name = source.slice(name_node)
        if kind in {
            "function_declaration",
            "generator_function_declaration",
            "function_signature",
        }:
            self.functions.setdefault(name, _Symbol(source, node))
        elif kind in {"lexical_declaration", "variable_declaration"}:
            for declarator in node.named_children:
                if declarator.type != "variable_declarator":
                    continue
                target = child_by_field(declarator, "name")
                if target is not None and target.type == "identifier":
                    self.variables.setdefault(
                        source.slice(target), _Symbol(source, declarator)
                    )
        elif kind in {"class_declaration", "abstract_class_declaration", "class"}:
            self.classes.add(name)
        elif kind == "interface_declaration":
            self.interfaces.add(name)
        elif kind == "enum_declaration":
            self.enums.add(name)
        elif kind == "type_alias_declaration":
            self.aliases.setdefault(name, _Symbol(source, node))

    def resolver(self, source: SourceFile) -> "TypeResolver":
        return TypeResolver(session=self, source=source)

    def alias_value(self, name: str) -> tuple[SourceFile, Any] | None:
        """Return the defining file and value node of type alias ``name``."""

        symbol = self.aliases.get(name)
        if symbol is None:
            return None
        value = child_by_field(symbol.node, "value")
        if value is None:
            return None
        return symbol.source, value

    def _guarded(self, key: tuple[str, str], compute: Any) -> str:
        if key in self._memo:
            return self._memo[key]
        if key in self._resolving:
            return self.default_type
        self._resolving.add(key)
        try:
            result = compute()
        finally:
            self._resolving.discard(key)
        self._memo[key] = result
        return result

    def variable_type(self, name: str) -> str | None:
        symbol = self.variables.get(name)
        if symbol is None:
            return None
        resolver = self.resolver(symbol.source)
        return self._guarded(
            ("variable", name),
            lambda: resolver.declarator_type(symbol.node),
        )

    def function_return_type(self, name: str) -> str | None:
        symbol = self.functions.get(name)
        if symbol is None:
            return None
        resolver = self.resolver(symbol.source)
        return self._guarded(
            ("function", name),
            lambda: resolver.return_type(symbol.node),
        )

    def function_signature(self, name: str) -> str | None:
        symbol = self.functions.get(name)
        if symbol is None:
            return None
        resolver = self.resolver(symbol.source)
        return self._guarded(
            ("signature", name),
            lambda: resolver.function_type(symbol.node),
        )


@dataclass(slots=True)
class TypeResolver:
    """Answers type questions for one :class:`SourceFile`."""

    session: TypeSession
    source: SourceFile

    @property
    def default(self) -> str:
        return self.session.default_type

    def text(self, node: Any | None) -> str:
        return self.source.slice(node)

    # ------------------------------------------------------------------
    # Annotations
    # ------------------------------------------------------------------
    def annotation(self, node: Any, field_name: str = "type") -> str | None:
        """Return the rendered annotation bound to ``field_name``."""

        annotated = child_by_field(node, field_name)
        if annotated is None:
            return None
        return self.type_text(annotated)

    def type_text(self, node: Any) -> str:
        """Render a type node (or ``type_annotation``) as type text."""

        if node.type in {
            "type_annotation",
            "opting_type_annotation",
            "omitting_type_annotation",
            "asserts_annotation",
        }:
            inner = named_children(node)
            if not inner:
                return self.default
            node = inner[0]
        if node.type == "object_type":
            return self._object_type_text(node)
        if node.type == "generic_type":
            name = self.text(child_by_field(node, "name"))
            arguments = child_by_field(node, "type_arguments")
            args = named_children(arguments) if arguments is not None else []
            if name == "Array" and len(args) == 1:
                element = self.type_text(args[0])
                if args[0].type in {"union_type", "function_type", "intersection_type"}:
                    element = f"({element})"
                return f"{element}[]"
        return collapse_whitespace(self.text(node))

    def _object_type_text(self, node: Any) -> str:
        members: list[str] = []
        for member in named_children(node):
            if member.type == "property_signature":
                name = self.text(child_by_field(member, "name"))
                optional = "?" if has_token(member, "?") else ""
                readonly = "readonly " if has_token(member, "readonly") else ""
                annotated = self.annotation(member) or self.default
                members.append(f"{readonly}{name}{optional}: {annotated};")
            elif member.type == "method_signature":
                name = self.text(child_by_field(member, "name"))
                params = self.parameter_list_text(member)
                returns = self.annotation(member, "return_type") or self.default
                members.append(f"{name}({params}): {returns};")
            else:
                members.append(collapse_whitespace(self.text(member)).rstrip(";,") + ";")
        if not members:
            return "{}"
        return "{ " + " ".join(members) + " }"

    def parameter_list_text(self, node: Any) -> str:
        params = child_by_field(node, "parameters")
        if params is None:
            return ""
        rendered: list[str] = []
        for param in named_children(params):
            pattern = child_by_field(param, "pattern", "name") or param
            name = collapse_whitespace(self.text(pattern))
            optional = "?" if param.type == "optional_parameter" else ""
            annotated = self.annotation(param) or self.default
            rendered.append(f"{name}{optional}: {annotated}")
        return ", ".join(rendered)

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------
    def declarator_type(self, declarator: Any) -> str:
        annotated = self.annotation(declarator)
        if annotated:
            return annotated
        value = child_by_field(declarator, "value")
        if value is None:
            return self.default
        return self.infer(value)

    def function_type(self, node: Any) -> str:
        """Render a function-like node as an arrow function type."""

        parameter = child_by_field(node, "parameter")
        if parameter is not None:
            params = f"{self.text(parameter)}: {self.default}"
        else:
            params = self.parameter_list_text(node)
        return f"({params}) => {self.return_type(node)}"

    def return_type(self, node: Any) -> str:
        """Return the annotated or inferred return type of a function node."""

        annotated = self.annotation(node, "return_type")
        if annotated:
            return annotated
        body = child_by_field(node, "body")
        is_async = has_token(node, "async")
        is_generator = has_token(node, "*") or node.type in {
            "generator_function",
            "generator_function_declaration",
        }
        if body is None:
            inferred = "void" if node.type not in {"function_signature", "method_signature"} else self.default
        elif body.type != "statement_block":
            inferred = widen(self.infer(body), enums=self.session.enums)
        elif is_generator:
            yields = [
                widen(self.infer(child_by_field(y, "argument") or y), enums=self.session.enums)
                if named_children(y)
                else "undefined"
                for y in self._scoped(body, {"yield_expression"})
            ]
            returned = self._returned(body) or "void"
            wrapper = "AsyncGenerator" if is_async else "Generator"
            return f"{wrapper}<{join_union(yields) or 'never'}, {returned}, unknown>"
        else:
            inferred = self._returned(body) or "void"
        if is_async:
            return f"Promise<{inferred}>"
        return inferred

    def _returned(self, body: Any) -> str:
        types: list[str] = []
        for statement in self._scoped(body, {"return_statement"}):
            values = named_children(statement)
            if not values:
                types.append("void")
                continue
            types.append(widen(self.infer(values[0]), enums=self.session.enums))
        non_void = [t for t in types if t != "void"]
        if not non_void:
            return "void" if types else ""
        if len(non_void) != len(types):
            non_void.append("undefined")
        return join_union(non_void)

    def _scoped(self, body: Any, kinds: set[str]) -> list[Any]:
        """Collect ``kinds`` nodes in ``body`` without entering nested functions."""

        found: list[Any] = []
        stack = list(reversed(body.children))
        while stack:
            node = stack.pop()
            if node.type in kinds:
                found.append(node)
            if node.type in FUNCTION_NODE_TYPES or node.type in {
                "function_declaration",
                "generator_function_declaration",
                "class_declaration",
                "class",
                "method_definition",
            }:
                continue
            stack.extend(reversed(node.children))
        return found

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------
    def infer(self, node: Any | None) -> str:
        """Infer the (unwidened) type of an expression node."""

        node = unwrap_parens(node)
        if node is None:
            return self.default
        kind = node.type
        handler = _INFER_DISPATCH.get(kind)
        if handler is not None:
            return handler(self, node)
        if kind.startswith("jsx_"):
            return "JSX.Element"
        return self.default

    def _infer_string(self, node: Any) -> str:
        raw = self.text(node)
        inner = raw[1:-1] if len(raw) >= 2 else ""
        return json.dumps(inner, ensure_ascii=False)

    def _infer_number(self, node: Any) -> str:
        return self.text(node)

    def _infer_keyword(self, node: Any) -> str:
        return self.text(node)

    def _infer_unary(self, node: Any) -> str:
        operator = self.text(child_by_field(node, "operator"))
        argument = child_by_field(node, "argument")
        if operator == "!":
            return "boolean"
        if operator == "typeof":
            return "string"
        if operator == "void":
            return "undefined"
        if operator == "-" and argument is not None and argument.type == "number":
            return f"-{self.text(argument)}"
        return "number"

    def _infer_array(self, node: Any) -> str:
        elements: list[str] = []
        for element in named_children(node):
            if element.type == "spread_element":
                elements.append(self.default)
                continue
            elements.append(widen(self.infer(element), enums=self.session.enums))
        element_type = join_union(elements) or self.default
        if " | " in element_type or "=>" in element_type:
            element_type = f"({element_type})"
        return f"{element_type}[]"

    def _infer_object(self, node: Any) -> str:
        members: list[str] = []
        for member in named_children(node):
            if member.type == "pair":
                key = self.text(child_by_field(member, "key"))
                value = widen(self.infer(child_by_field(member, "value")), enums=self.session.enums)
                members.append(f"{key}: {value};")
            elif member.type == "shorthand_property_identifier":
                name = self.text(member)
                members.append(f"{name}: {widen(self._identifier_type(name), enums=self.session.enums)};")
            elif member.type == "method_definition":
                name = self.text(child_by_field(member, "name"))
                params = self.parameter_list_text(member)
                members.append(f"{name}({params}): {self.return_type(member)};")
        if not members:
            return "{}"
        return "{ " + " ".join(members) + " }"

    def _infer_function(self, node: Any) -> str:
        return self.function_type(node)

    def _infer_new(self, node: Any) -> str:
        constructor = child_by_field(node, "constructor")
        name = self.text(constructor)
        arguments = child_by_field(node, "type_arguments")
        if arguments is not None:
            name += collapse_whitespace(self.text(arguments))
        return name or self.default

    def _infer_call(self, node: Any) -> str:
        callee = child_by_field(node, "function")
        if callee is None:
            return self.default
        if callee.type == "identifier":
            name = self.text(callee)
            if name in _GLOBAL_CALLS:
                return _GLOBAL_CALLS[name]
            returned = self.session.function_return_type(name)
            if returned is not None:
                return returned
            variable = self.session.variable_type(name)
            if variable and "=>" in variable:
                return variable.rsplit("=>", 1)[1].strip()
            return self.default
        if callee.type == "member_expression":
            owner = self.text(child_by_field(callee, "object"))
            method = self.text(child_by_field(callee, "property"))
            if owner == "Math":
                return "number"
            if owner == "JSON" and method == "stringify":
                return "string"
            if owner == "Object" and method == "keys":
                return "string[]"
            if method in _STRING_METHODS:
                return "string"
            if method in _NUMBER_METHODS:
                return "number"
            if method in _BOOLEAN_METHODS:
                return "boolean"
        return self.default

    def _identifier_type(self, name: str) -> str:
        if name in _GLOBAL_IDENTIFIERS:
            return _GLOBAL_IDENTIFIERS[name]
        variable = self.session.variable_type(name)
        if variable is not None:
            return variable
        signature = self.session.function_signature(name)
        if signature is not None:
            return signature
        if name in self.session.classes:
            return f"typeof {name}"
        return self.default

    def _infer_identifier(self, node: Any) -> str:
        return self._identifier_type(self.text(node))

    def _infer_member(self, node: Any) -> str:
        owner = self.text(child_by_field(node, "object"))
        prop = self.text(child_by_field(node, "property"))
        if owner in self.session.enums:
            return f"{owner}.{prop}"
        if prop == "length" or owner == "Math":
            return "number"
        return self.default

    def _infer_binary(self, node: Any) -> str:
        operator = self.text(child_by_field(node, "operator"))
        if operator in _COMPARISON:
            return "boolean"
        if operator in _ARITHMETIC:
            return "number"
        left = widen(self.infer(child_by_field(node, "left")), enums=self.session.enums)
        right = widen(self.infer(child_by_field(node, "right")), enums=self.session.enums)
        if operator == "+":
            if "string" in (left, right):
                return "string"
            if left == right == "number":
                return "number"
            return self.default
        if operator in _LOGICAL:
            return join_union([left, right]) or self.default
        return self.default

    def _infer_ternary(self, node: Any) -> str:
        branches = [
            self.infer(child_by_field(node, "consequence")),
            self.infer(child_by_field(node, "alternative")),
        ]
        return join_union(branches) or self.default

    def _infer_as(self, node: Any) -> str:
        children = named_children(node)
        target = children[-1] if len(children) > 1 else None
        if target is None or self.text(node).rstrip().endswith("as const"):
            return self.infer(children[0]) if children else self.default
        return self.type_text(target)

    def _infer_satisfies(self, node: Any) -> str:
        children = named_children(node)
        return self.infer(children[0]) if children else self.default

    def _infer_type_assertion(self, node: Any) -> str:
        arguments = first_child_of_type(node, "type_arguments")
        if arguments is not None and named_children(arguments):
            return self.type_text(named_children(arguments)[0])
        return self.default

    def _infer_non_null(self, node: Any) -> str:
        children = named_children(node)
        if not children:
            return self.default
        parts = [
            part
            for part in _split_union(self.infer(children[0]))
            if part not in {"null", "undefined"}
        ]
        return join_union(parts) or self.default

    def _infer_await(self, node: Any) -> str:
        children = named_children(node)
        inner = self.infer(children[0]) if children else self.default
        if inner.startswith("Promise<") and inner.endswith(">"):
            return inner[len("Promise<") : -1]
        return inner

    def _infer_assignment(self, node: Any) -> str:
        return self.infer(child_by_field(node, "right"))

    def _infer_template(self, node: Any) -> str:
        return "string"

    def _infer_regex(self, node: Any) -> str:
        return "RegExp"


_INFER_DISPATCH = {
    "string": TypeResolver._infer_string,
    "number": TypeResolver._infer_number,
    "true": TypeResolver._infer_keyword,
    "false": TypeResolver._infer_keyword,
    "null": TypeResolver._infer_keyword,
    "undefined": TypeResolver._infer_keyword,
    "unary_expression": TypeResolver._infer_unary,
    "array": TypeResolver._infer_array,
    "object": TypeResolver._infer_object,
    "arrow_function": TypeResolver._infer_function,
    "function": TypeResolver._infer_function,
    "function_expression": TypeResolver._infer_function,
    "generator_function": TypeResolver._infer_function,
    "new_expression": TypeResolver._infer_new,
    "call_expression": TypeResolver._infer_call,
    "identifier": TypeResolver._infer_identifier,
    "member_expression": TypeResolver._infer_member,
    "binary_expression": TypeResolver._infer_binary,
    "ternary_expression": TypeResolver._infer_ternary,
    "as_expression": TypeResolver._infer_as,
    "satisfies_expression": TypeResolver._infer_satisfies,
    "type_assertion": TypeResolver._infer_type_assertion,
    "non_null_expression": TypeResolver._infer_non_null,
    "await_expression": TypeResolver._infer_await,
    "assignment_expression": TypeResolver._infer_assignment,
    "template_string": TypeResolver._infer_template,
    "regex": TypeResolver._infer_regex,
}


def parameter_nodes(node: Any) -> Sequence[Any]:
    """Return the parameter nodes of a function-like ``node``."""

    params = child_by_field(node, "parameters")
    if params is not None:
        return named_children(params)
    single = child_by_field(node, "parameter")
    return [single] if single is not None else []
