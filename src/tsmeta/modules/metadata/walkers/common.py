"""Walk context and helpers shared by the declaration walkers."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import re
from typing import Any, Callable

from tsmeta.core.config import ExtractionSettings

from ..records import Decorator, Parameter
from ..syntax import (
    SourceFile,
    child_by_field,
    collapse_whitespace,
    first_child_of_type,
    has_token,
    named_children,
    unwrap_parens,
)
from ..tree import MetadataTree
from ..types import TypeResolver, parameter_nodes

__all__ = [
    "DeclarationFlags",
    "Walker",
    "WalkContext",
    "body_text",
    "declaration_name",
    "decorator_record",
    "literal_leaf",
    "materialize_object",
    "parse_decorators",
    "parse_parameter",
    "parse_parameters",
    "type_parameter_names",
    "unquote",
]

_LINE_BREAK = re.compile(r"\r?\n")

# Nodes whose statement blocks belong to a module scope, not a local one.
_MODULE_SCOPES = frozenset({"internal_module", "module", "ambient_declaration"})


@dataclass(frozen=True, slots=True)
class DeclarationFlags:
    """Modifiers contributed by wrappers such as ``export`` or ``declare``."""

    exported: bool = False
    default: bool = False
    declared: bool = False
    decorators: tuple[Decorator, ...] = ()


@dataclass(slots=True)
class WalkContext:
    """State threaded through every walker for one file."""

    source: SourceFile
    types: TypeResolver
    tree: MetadataTree
    root: MetadataTree
    settings: ExtractionSettings
    walk: Callable[..., None]
    ambient: bool = False
    module_member: bool = False
    local: bool = False
    scopes: list[tuple[Any, "WalkContext"]] = field(default_factory=list)

    def text(self, node: Any | None) -> str:
        return self.source.slice(node)

    @property
    def default_type(self) -> str:
        return self.settings.default_type

    def is_exported(self, flags: DeclarationFlags) -> bool:
        if self.local:
            return False
        return flags.exported or self.module_member

    def is_declared(self, flags: DeclarationFlags) -> bool:
        return flags.declared or self.ambient

    def nested(
        self,
        tree: MetadataTree,
        *,
        ambient: bool,
        module_member: bool = True,
    ) -> "WalkContext":
        """Return a context writing into ``tree`` (module or namespace body)."""

        return replace(
            self,
            tree=tree,
            ambient=ambient,
            module_member=module_member,
            local=False,
        )

    def defer_blocks(self, node: Any) -> None:
        """Queue statement blocks under ``node`` for a later local walk."""

        local = replace(self, local=True, module_member=False)
        stack = [node]
        while stack:
            current = stack.pop()
            if current.type == "statement_block" and current is not node:
                self.scopes.append((current, local))
                continue
            if current.type in _MODULE_SCOPES:
                continue
            stack.extend(reversed(current.children))


Walker = Callable[[Any, WalkContext, DeclarationFlags], None]


def unquote(text: str) -> str:
    """Strip one pair of matching quotes or backticks from ``text``."""

    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'`":
        return text[1:-1]
    return text


def declaration_name(node: Any, ctx: WalkContext, fallback: str = "default") -> str:
    name = child_by_field(node, "name")
    if name is None:
        return fallback
    return unquote(ctx.text(name))


def body_text(node: Any, ctx: WalkContext) -> str | None:
    """Return the body block text, CRLF-normalized when configured."""

    body = child_by_field(node, "body")
    if body is None:
        return None
    text = ctx.text(body)
    if ctx.settings.crlf_bodies:
        text = _LINE_BREAK.sub("\r\n", text)
    return text


def parse_decorators(node: Any, ctx: WalkContext) -> tuple[Decorator, ...]:
    """Collect ``decorator`` children of ``node``."""

    return tuple(
        decorator_record(child, ctx)
        for child in node.children
        if child.type == "decorator"
    )


def decorator_record(node: Any, ctx: WalkContext) -> Decorator:
    expressions = named_children(node)
    expression = expressions[0] if expressions else None
    if expression is None:
        return Decorator(name=ctx.text(node).lstrip("@"))
    if expression.type == "call_expression":
        callee = child_by_field(expression, "function")
        arguments = child_by_field(expression, "arguments")
        args = tuple(
            ctx.text(arg) for arg in named_children(arguments)
        ) if arguments is not None else ()
        return Decorator(name=ctx.text(callee), args=args)
    return Decorator(name=ctx.text(expression))


def type_parameter_names(node: Any, ctx: WalkContext) -> tuple[str, ...]:
    params = child_by_field(node, "type_parameters")
    if params is None:
        return ()
    names: list[str] = []
    for param in named_children(params):
        name = child_by_field(param, "name")
        names.append(ctx.text(name) if name is not None else ctx.text(param))
    return tuple(names)


def _parameter_name(pattern: Any, ctx: WalkContext) -> str:
    if pattern.type == "rest_pattern":
        inner = named_children(pattern)
        if inner:
            return ctx.text(inner[0])
    return collapse_whitespace(ctx.text(pattern))


def parse_parameter(
    node: Any,
    ctx: WalkContext,
    *,
    contextual: str | None = None,
) -> Parameter:
    if node.type == "identifier":
        return Parameter(name=ctx.text(node), type=contextual or ctx.default_type)
    pattern = child_by_field(node, "pattern", "name") or node
    annotated = ctx.types.annotation(node)
    value = child_by_field(node, "value")
    modifier = first_child_of_type(node, "accessibility_modifier")
    return Parameter(
        name=_parameter_name(pattern, ctx),
        type=annotated or contextual or ctx.default_type,
        optional=node.type == "optional_parameter",
        initializer=ctx.text(value) if value is not None else None,
        access_modifier=ctx.text(modifier) if modifier is not None else None,
        readonly=has_token(node, "readonly"),
        decorators=parse_decorators(node, ctx),
    )


def parse_parameters(
    node: Any,
    ctx: WalkContext,
    *,
    contextual: tuple[str, ...] = (),
) -> tuple[Parameter, ...]:
    """Parse the parameters of a function-like node.

    ``contextual`` supplies types for unannotated parameters, by position,
    when the function is assigned to a callable type.
    """

    parameters: list[Parameter] = []
    for index, param in enumerate(parameter_nodes(node)):
        if param.type == "comment":
            continue
        hint = contextual[index] if index < len(contextual) else None
        parameters.append(parse_parameter(param, ctx, contextual=hint))
    return tuple(parameters)


def literal_leaf(node: Any | None, ctx: WalkContext) -> dict[str, Any]:
    """Materialize a literal expression as ``{type, value}``."""

    node = unwrap_parens(node)
    if node is None:
        return {"type": "unknown", "value": None}
    kind = node.type
    if kind == "object":
        return {"type": "object", "value": materialize_object(node, ctx)}
    if kind == "string":
        return {"type": "string", "value": unquote(ctx.text(node))}
    if kind == "template_string" and not any(
        child.type == "template_substitution" for child in node.children
    ):
        return {"type": "string", "value": unquote(ctx.text(node))}
    if kind == "number":
        return {"type": "number", "value": ctx.text(node)}
    if kind == "unary_expression" and ctx.text(node).lstrip("-+").strip().replace(".", "", 1).isdigit():
        return {"type": "number", "value": ctx.text(node)}
    if kind in {"true", "false"}:
        return {"type": "boolean", "value": ctx.text(node)}
    return {"type": "unknown", "value": ctx.text(node)}


def materialize_object(node: Any, ctx: WalkContext) -> dict[str, Any]:
    """Turn an object literal into nested ``{key: {type, value}}`` leaves."""

    result: dict[str, Any] = {}
    for member in named_children(node):
        if member.type == "pair":
            key = unquote(ctx.text(child_by_field(member, "key")))
            result[key] = literal_leaf(child_by_field(member, "value"), ctx)
        elif member.type == "shorthand_property_identifier":
            name = ctx.text(member)
            result[name] = {"type": "unknown", "value": name}
        elif member.type == "method_definition":
            name = unquote(ctx.text(child_by_field(member, "name")))
            result[name] = {"type": "unknown", "value": ctx.text(member)}
    return result
