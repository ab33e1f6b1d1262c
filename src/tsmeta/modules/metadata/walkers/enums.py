"""Enum declarations with constant folding of member values."""

from __future__ import annotations

import json
import operator
from typing import Any, Callable

from ..records import EnumMember, EnumRecord
from ..syntax import child_by_field, has_token, named_children, unwrap_parens
from .common import DeclarationFlags, WalkContext, declaration_name, unquote

__all__ = ["fold_constant", "walk_enum"]

Number = int | float

_BINARY: dict[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "%": operator.mod,
    "**": operator.pow,
    "|": lambda a, b: int(a) | int(b),
    "&": lambda a, b: int(a) & int(b),
    "^": lambda a, b: int(a) ^ int(b),
    "<<": lambda a, b: int(a) << int(b),
    ">>": lambda a, b: int(a) >> int(b),
}

_UNARY: dict[str, Callable[[Any], Any]] = {
    "-": operator.neg,
    "+": operator.pos,
    "~": lambda a: ~int(a),
}


def _number(text: str) -> Number | None:
    cleaned = text.replace("_", "")
    try:
        if cleaned.lower().startswith(("0x", "0o", "0b")):
            return int(cleaned, 0)
        return _normalize(float(cleaned))
    except ValueError:
        return None


def _normalize(value: Number) -> Number:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def fold_constant(
    node: Any | None,
    ctx: WalkContext,
    known: dict[str, Any],
    enum_name: str,
) -> Any:
    """Evaluate a constant enum initializer, or return ``None``.

    Numbers fold through unary and binary arithmetic and may reference
    earlier members either bare or qualified with the enum name. String
    literals evaluate to themselves.
    """

    node = unwrap_parens(node)
    if node is None:
        return None
    kind = node.type
    if kind == "number":
        return _number(ctx.text(node))
    if kind == "string" or (
        kind == "template_string"
        and not any(child.type == "template_substitution" for child in node.children)
    ):
        return unquote(ctx.text(node))
    if kind == "identifier":
        return known.get(ctx.text(node))
    if kind == "member_expression":
        owner = child_by_field(node, "object")
        prop = child_by_field(node, "property")
        if owner is not None and ctx.text(owner) == enum_name and prop is not None:
            return known.get(ctx.text(prop))
        return None
    if kind == "unary_expression":
        op = child_by_field(node, "operator")
        argument = fold_constant(child_by_field(node, "argument"), ctx, known, enum_name)
        handler = _UNARY.get(ctx.text(op)) if op is not None else None
        if handler is None or not isinstance(argument, (int, float)):
            return None
        return _normalize(handler(argument))
    if kind == "binary_expression":
        op = child_by_field(node, "operator")
        left = fold_constant(child_by_field(node, "left"), ctx, known, enum_name)
        right = fold_constant(child_by_field(node, "right"), ctx, known, enum_name)
        symbol = ctx.text(op) if op is not None else ""
        if symbol == "+" and isinstance(left, str) and isinstance(right, str):
            return left + right
        handler = _BINARY.get(symbol)
        if handler is None or not isinstance(left, (int, float)) or not isinstance(right, (int, float)):
            return None
        try:
            return _normalize(handler(left, right))
        except (ZeroDivisionError, ValueError, OverflowError):
            return None
    return None


def _serialize(value: Any) -> Any:
    if isinstance(value, str):
        return json.dumps(value)
    return value


def walk_enum(node: Any, ctx: WalkContext, flags: DeclarationFlags) -> None:
    name = declaration_name(node, ctx)
    members: list[EnumMember] = []
    known: dict[str, Any] = {}
    previous: Any = -1

    body = child_by_field(node, "body")
    for member in named_children(body) if body is not None else []:
        if member.type == "enum_assignment":
            member_name = unquote(ctx.text(child_by_field(member, "name")))
            value = fold_constant(child_by_field(member, "value"), ctx, known, name)
        elif member.type in {"property_identifier", "string", "number"}:
            member_name = unquote(ctx.text(member))
            value = previous + 1 if isinstance(previous, (int, float)) else None
        else:
            continue
        known[member_name] = value
        previous = value
        members.append(EnumMember(name=member_name, value=_serialize(value)))

    ctx.tree.add_enum(
        EnumRecord(
            name=name,
            members=tuple(members),
            is_const=has_token(node, "const"),
            is_exported=ctx.is_exported(flags),
            is_declared=ctx.is_declared(flags),
        ),
        local=ctx.local,
    )
