"""Interface declarations."""

from __future__ import annotations

from typing import Any

from ..records import InterfaceMethod, InterfaceProperty, InterfaceRecord
from ..syntax import child_by_field, collapse_whitespace, first_child_of_type, has_token, named_children
from .common import (
    DeclarationFlags,
    WalkContext,
    declaration_name,
    parse_parameters,
    type_parameter_names,
    unquote,
)

__all__ = ["walk_interface"]


def _extends(node: Any, ctx: WalkContext) -> tuple[str, ...]:
    clause = first_child_of_type(node, "extends_type_clause", "extends_clause")
    if clause is None:
        return ()
    return tuple(collapse_whitespace(ctx.text(child)) for child in named_children(clause))


def walk_interface(node: Any, ctx: WalkContext, flags: DeclarationFlags) -> None:
    properties: list[InterfaceProperty] = []
    methods: list[InterfaceMethod] = []

    body = child_by_field(node, "body")
    for member in named_children(body) if body is not None else []:
        if member.type == "property_signature":
            name = unquote(ctx.text(child_by_field(member, "name")))
            member_type = ctx.types.annotation(member) or ctx.default_type
            optional = has_token(member, "?")
            marker = "?" if optional else ""
            properties.append(
                InterfaceProperty(
                    name=name,
                    type=member_type,
                    optional=optional,
                    readonly=has_token(member, "readonly"),
                    type_string=f"{name}{marker}: {member_type}",
                )
            )
        elif member.type == "method_signature":
            methods.append(
                InterfaceMethod(
                    name=unquote(ctx.text(child_by_field(member, "name"))),
                    parameters=parse_parameters(member, ctx),
                    return_type=ctx.types.annotation(member, "return_type")
                    or ctx.default_type,
                    optional=has_token(member, "?"),
                )
            )

    ctx.tree.add_interface(
        InterfaceRecord(
            name=declaration_name(node, ctx),
            properties=tuple(properties),
            methods=tuple(methods),
            extends=_extends(node, ctx),
            type_parameters=type_parameter_names(node, ctx),
            is_exported=ctx.is_exported(flags),
            is_declared=ctx.is_declared(flags),
        ),
        local=ctx.local,
    )
