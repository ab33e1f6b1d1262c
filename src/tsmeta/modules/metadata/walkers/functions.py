"""Function declarations, overload signatures and property assignments."""

from __future__ import annotations

from typing import Any

from ..records import FunctionRecord
from ..syntax import child_by_field, has_token, named_children, unwrap_parens
from .common import (
    DeclarationFlags,
    WalkContext,
    body_text,
    declaration_name,
    literal_leaf,
    parse_parameters,
    type_parameter_names,
)

__all__ = ["function_record", "walk_assignment", "walk_function"]


def function_record(
    node: Any,
    ctx: WalkContext,
    flags: DeclarationFlags,
    *,
    name: str | None = None,
) -> FunctionRecord:
    """Build the canonical record for a function declaration or signature."""

    return FunctionRecord(
        name=name or declaration_name(node, ctx),
        parameters=parse_parameters(node, ctx),
        return_type=ctx.types.return_type(node),
        body=body_text(node, ctx),
        is_async=has_token(node, "async"),
        is_generator=has_token(node, "*")
        or node.type in {"generator_function_declaration", "generator_function"},
        is_default=flags.default,
        is_exported=ctx.is_exported(flags),
        is_declared=ctx.is_declared(flags),
        decorators=flags.decorators,
        type_parameters=type_parameter_names(node, ctx),
    )


def walk_function(node: Any, ctx: WalkContext, flags: DeclarationFlags) -> None:
    ctx.tree.add_function(function_record(node, ctx, flags), local=ctx.local)


def walk_assignment(node: Any, ctx: WalkContext, flags: DeclarationFlags) -> None:
    """Fold ``fn.prop = value`` statements into the function entry."""

    expressions = named_children(node)
    if not expressions:
        return
    expression = unwrap_parens(expressions[0])
    if expression is None or expression.type != "assignment_expression":
        return
    left = child_by_field(expression, "left")
    if left is None or left.type != "member_expression":
        return
    owner = child_by_field(left, "object")
    prop = child_by_field(left, "property")
    if owner is None or prop is None or owner.type != "identifier":
        return
    leaf = literal_leaf(child_by_field(expression, "right"), ctx)
    ctx.tree.fold_assignment(ctx.text(owner), ctx.text(prop), leaf)
