"""``var`` / ``let`` / ``const`` statements."""

from __future__ import annotations

from typing import Any

from ..records import FunctionVariableRecord, Parameter, TypeAssertion, VariableRecord
from ..syntax import (
    child_by_field,
    has_token,
    iter_nodes,
    named_children,
    strip_quotes,
    unwrap_parens,
)
from ..types import FUNCTION_NODE_TYPES, TypeResolver, parameter_nodes
from .common import (
    DeclarationFlags,
    WalkContext,
    materialize_object,
    parse_parameters,
)

__all__ = ["callable_signature", "walk_variables"]

_ASSERTIONS = frozenset({"as_expression", "satisfies_expression"})
_PATTERN_NAMES = frozenset({"identifier", "shorthand_property_identifier_pattern"})
_ALIAS_DEPTH = 8


def _declaration_kind(node: Any, ctx: WalkContext) -> str:
    if node.type == "variable_declaration":
        return "var"
    keyword = node.children[0] if node.children else None
    text = ctx.text(keyword) if keyword is not None else ""
    return text if text in {"const", "let"} else "var"


def _strip_assertions(node: Any | None) -> Any | None:
    node = unwrap_parens(node)
    while node is not None and node.type in _ASSERTIONS:
        inner = named_children(node)
        if not inner:
            break
        node = unwrap_parens(inner[0])
    return node


def _is_const_assertion(node: Any, ctx: WalkContext) -> bool:
    children = named_children(node)
    if len(children) == 1:
        return True
    return ctx.text(children[-1]) == "const"


def type_assertion(value: Any | None, ctx: WalkContext) -> TypeAssertion | None:
    """Describe an ``as`` / ``satisfies`` initializer, if there is one."""

    node = unwrap_parens(value)
    if node is None or node.type not in _ASSERTIONS:
        return None
    children = named_children(node)
    if not children:
        return None
    if node.type == "as_expression" and _is_const_assertion(node, ctx):
        asserted = "const"
    else:
        asserted = ctx.types.type_text(children[-1])
    return TypeAssertion(
        operator="as" if node.type == "as_expression" else "satisfies",
        type=asserted,
        original_expression=ctx.text(children[0]),
        full_expression=ctx.text(node),
    )


def _materialized_value(value: Any | None, ctx: WalkContext) -> Any:
    if value is None:
        return ""
    inner = _strip_assertions(value)
    if inner is not None and inner.type == "object":
        return materialize_object(inner, ctx)
    return strip_quotes(ctx.text(value))


# ----------------------------------------------------------------------
# Callable variables
# ----------------------------------------------------------------------


def _signature_parameters(node: Any, resolver: TypeResolver) -> tuple[Parameter, ...]:
    parameters: list[Parameter] = []
    for param in parameter_nodes(node):
        pattern = child_by_field(param, "pattern", "name") or param
        parameters.append(
            Parameter(
                name=resolver.text(pattern).lstrip("."),
                type=resolver.annotation(param) or resolver.default,
                optional=param.type == "optional_parameter",
            )
        )
    return tuple(parameters)


def callable_signature(
    type_node: Any | None,
    resolver: TypeResolver,
    *,
    depth: int = 0,
) -> tuple[tuple[Parameter, ...], str] | None:
    """Resolve a type node to ``(parameters, return_type)`` when callable.

    Follows type aliases across the batch, looks inside intersections and
    accepts object types carrying a call signature.
    """

    if type_node is None or depth > _ALIAS_DEPTH:
        return None
    if type_node.type == "type_annotation":
        inner = named_children(type_node)
        type_node = inner[0] if inner else None
    type_node = unwrap_parens(type_node)
    if type_node is None:
        return None

    kind = type_node.type
    if kind == "function_type":
        returned = child_by_field(type_node, "return_type")
        return_type = resolver.type_text(returned) if returned is not None else resolver.default
        return _signature_parameters(type_node, resolver), return_type
    if kind == "object_type":
        for member in named_children(type_node):
            if member.type == "call_signature":
                return_type = resolver.annotation(member, "return_type") or resolver.default
                return _signature_parameters(member, resolver), return_type
        return None
    if kind == "intersection_type":
        for member in named_children(type_node):
            found = callable_signature(member, resolver, depth=depth + 1)
            if found is not None:
                return found
        return None
    if kind in {"type_identifier", "generic_type"}:
        name_node = child_by_field(type_node, "name") if kind == "generic_type" else type_node
        alias = resolver.session.alias_value(resolver.text(name_node))
        if alias is None:
            return None
        source, value = alias
        return callable_signature(
            value,
            resolver.session.resolver(source),
            depth=depth + 1,
        )
    return None


def _function_variable(
    declarator: Any,
    name: str,
    variable_type: str,
    ctx: WalkContext,
    flags: DeclarationFlags,
) -> FunctionVariableRecord | None:
    value = _strip_assertions(child_by_field(declarator, "value"))
    signature = callable_signature(child_by_field(declarator, "type"), ctx.types)

    if value is not None and value.type in FUNCTION_NODE_TYPES:
        contextual = tuple(param.type for param in signature[0]) if signature else ()
        parameters = parse_parameters(value, ctx, contextual=contextual)
        return_type = ctx.types.annotation(value, "return_type")
        if return_type is None:
            return_type = signature[1] if signature else ctx.types.return_type(value)
        return FunctionVariableRecord(
            name=name,
            variable_type=variable_type,
            parameters=parameters,
            return_type=return_type,
            is_async=has_token(value, "async"),
            is_generator=has_token(value, "*") or value.type == "generator_function",
            is_exported=ctx.is_exported(flags),
            is_declared=ctx.is_declared(flags),
        )
    if signature is not None:
        parameters, return_type = signature
        return FunctionVariableRecord(
            name=name,
            variable_type=variable_type,
            parameters=parameters,
            return_type=return_type or "unknown",
            is_exported=ctx.is_exported(flags),
            is_declared=ctx.is_declared(flags),
        )
    return None


# ----------------------------------------------------------------------
# Walker
# ----------------------------------------------------------------------


def walk_variables(node: Any, ctx: WalkContext, flags: DeclarationFlags) -> None:
    kind = _declaration_kind(node, ctx)
    for declarator in named_children(node):
        if declarator.type != "variable_declarator":
            continue
        target = child_by_field(declarator, "name")
        if target is None:
            continue
        value = child_by_field(declarator, "value")
        initializer = ctx.text(value) if value is not None else None

        if target.type != "identifier":
            for binding in iter_nodes(target):
                if binding.type not in _PATTERN_NAMES:
                    continue
                ctx.tree.add_variable(
                    VariableRecord(
                        name=ctx.text(binding),
                        type=ctx.default_type,
                        declaration_kind=kind,
                        initializer=initializer,
                        is_exported=ctx.is_exported(flags),
                        is_declared=ctx.is_declared(flags),
                    ),
                    local=ctx.local,
                )
            continue

        name = ctx.text(target)
        variable_type = ctx.types.declarator_type(declarator)
        ctx.tree.add_variable(
            VariableRecord(
                name=name,
                type=variable_type,
                declaration_kind=kind,
                initializer=initializer,
                value=_materialized_value(value, ctx),
                type_assertion=type_assertion(value, ctx),
                is_exported=ctx.is_exported(flags),
                is_declared=ctx.is_declared(flags),
                is_default=flags.default,
            ),
            local=ctx.local,
        )

        callable_record = _function_variable(
            declarator, name, variable_type, ctx, flags
        )
        if callable_record is not None:
            ctx.tree.add_function_variable(callable_record, local=ctx.local)
