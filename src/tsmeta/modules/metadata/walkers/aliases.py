"""``type X = ...`` aliases and their shape classification."""

from __future__ import annotations

from typing import Any

from ..records import TypeAliasRecord
from ..syntax import child_by_field, collapse_whitespace, named_children, unwrap_parens
from .common import (
    DeclarationFlags,
    WalkContext,
    declaration_name,
    type_parameter_names,
    unquote,
)

__all__ = ["classify_alias", "walk_type_alias"]

_SIMPLE_KEYWORDS = frozenset({"string", "number", "boolean"})


def _signature_params(node: Any, ctx: WalkContext) -> list[dict[str, Any]]:
    params_node = child_by_field(node, "parameters")
    params: list[dict[str, Any]] = []
    for param in named_children(params_node) if params_node is not None else []:
        pattern = child_by_field(param, "pattern", "name") or param
        params.append(
            {
                "name": ctx.text(pattern).lstrip("."),
                "type": ctx.types.annotation(param) or ctx.default_type,
                "optional": param.type == "optional_parameter",
            }
        )
    return params


def _function_signature(node: Any, ctx: WalkContext) -> dict[str, Any]:
    returned = child_by_field(node, "return_type")
    return {
        "params": _signature_params(node, ctx),
        "returnType": ctx.types.type_text(returned) if returned is not None else ctx.default_type,
    }


def _literal_members(node: Any, ctx: WalkContext) -> tuple[list[dict[str, Any]], dict[str, str]]:
    """Split an object type into call signatures and member types."""

    calls: list[dict[str, Any]] = []
    properties: dict[str, str] = {}
    for member in named_children(node):
        if member.type == "call_signature":
            calls.append(
                {
                    "params": _signature_params(member, ctx),
                    "returnType": ctx.types.annotation(member, "return_type")
                    or ctx.default_type,
                }
            )
        elif member.type == "property_signature":
            name = unquote(ctx.text(child_by_field(member, "name")))
            properties[name] = ctx.types.annotation(member) or ctx.default_type
        elif member.type == "method_signature":
            name = unquote(ctx.text(child_by_field(member, "name")))
            rendered = ", ".join(
                f"{param['name']}: {param['type']}"
                for param in _signature_params(member, ctx)
            )
            returned = ctx.types.annotation(member, "return_type") or "void"
            properties[name] = f"({rendered}) => {returned}"
    return calls, properties


def _object_properties(node: Any, ctx: WalkContext) -> dict[str, str]:
    properties: dict[str, str] = {}
    for member in named_children(node):
        if member.type == "property_signature":
            name = unquote(ctx.text(child_by_field(member, "name")))
            properties[name] = ctx.types.annotation(member) or ctx.default_type
    return properties


def _union_member(node: Any, ctx: WalkContext) -> dict[str, Any]:
    if node.type == "literal_type":
        inner = named_children(node)
        literal = inner[0] if inner else node
        return {"type": "literal", "value": unquote(ctx.text(literal))}
    if node.type == "object_type":
        return {"type": "object", "properties": _object_properties(node, ctx)}
    if node.type in {"generic_type", "nested_type_identifier"}:
        name = child_by_field(node, "name")
        return {"type": "simple", "value": ctx.text(name) if name is not None else ctx.text(node)}
    return {"type": "simple", "value": ctx.types.type_text(node)}


def _union_members(node: Any) -> list[Any]:
    """Flatten a left-nested ``union_type`` into its members."""

    members: list[Any] = []
    for child in named_children(node):
        if child.type == "union_type":
            members.extend(_union_members(child))
        else:
            members.append(child)
    return members


def classify_alias(value: Any, ctx: WalkContext) -> dict[str, Any]:
    """Return the classification extras for an alias value node."""

    kind = value.type
    if kind == "union_type":
        return {
            "type": "combined",
            "possibleTypes": [_union_member(member, ctx) for member in _union_members(value)],
        }
    if kind == "intersection_type":
        properties: dict[str, str] = {}
        signature: dict[str, Any] | None = None
        for member in named_children(value):
            member = unwrap_parens(member)
            if member.type == "object_type":
                _, member_properties = _literal_members(member, ctx)
                properties.update(member_properties)
            elif member.type == "function_type":
                signature = _function_signature(member, ctx)
        if signature is None:
            return {}
        return {"type": "function", "properties": properties, **signature}
    if kind == "object_type":
        calls, properties = _literal_members(value, ctx)
        if calls:
            shape: dict[str, Any] = {"type": "function", "properties": properties}
            if calls[0]["params"]:
                shape["params"] = calls[0]["params"]
            shape["returnType"] = calls[0]["returnType"]
            return shape
        return {"type": "object", "properties": _object_properties(value, ctx)}
    if kind == "function_type":
        return {"type": "function", **_function_signature(value, ctx)}
    if kind in {"generic_type", "type_identifier", "nested_type_identifier"}:
        return {"type": "simple"}
    if kind == "predefined_type" and ctx.text(value) in _SIMPLE_KEYWORDS:
        return {"type": "simple"}
    return {}


def walk_type_alias(node: Any, ctx: WalkContext, flags: DeclarationFlags) -> None:
    value = child_by_field(node, "value")
    if value is None:
        return
    if value.type in {"union_type", "generic_type", "type_identifier", "nested_type_identifier"}:
        definition = collapse_whitespace(ctx.text(value))
    else:
        definition = ctx.types.type_text(value)
    ctx.tree.add_type(
        TypeAliasRecord(
            name=declaration_name(node, ctx),
            definition=definition,
            value=definition,
            shape=classify_alias(value, ctx),
            type_parameters=type_parameter_names(node, ctx),
            is_exported=ctx.is_exported(flags),
            is_declared=ctx.is_declared(flags),
        ),
        local=ctx.local,
    )
