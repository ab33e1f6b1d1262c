"""Namespaces, ambient modules and ``declare`` wrappers."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from ..syntax import child_by_field, first_child_of_type, has_token, named_children
from ..tree import MetadataTree
from .common import DeclarationFlags, WalkContext, unquote
from .functions import walk_assignment

__all__ = ["walk_ambient", "walk_expression", "walk_module"]


def walk_module(node: Any, ctx: WalkContext, flags: DeclarationFlags) -> None:
    """Walk ``namespace X {}``, ``module X {}`` or ``declare module "x" {}``."""

    name_node = child_by_field(node, "name")
    if name_node is None:
        return
    declared = ctx.is_declared(flags)
    tree = MetadataTree(nested=True)
    body = child_by_field(node, "body")
    if body is not None:
        ctx.walk(named_children(body), ctx.nested(tree, ambient=declared))
    ctx.tree.add_module(
        unquote(ctx.text(name_node)),
        tree,
        namespace=node.type == "internal_module" or name_node.type != "string",
        declared=declared,
        exported=ctx.is_exported(flags),
    )


def walk_ambient(node: Any, ctx: WalkContext, flags: DeclarationFlags) -> None:
    """Walk a ``declare ...`` statement, including ``declare global {}``."""

    declared = replace(flags, declared=True)
    if has_token(node, "global"):
        block = first_child_of_type(node, "statement_block")
        if block is None:
            return
        tree = MetadataTree(nested=True)
        ctx.walk(named_children(block), ctx.nested(tree, ambient=True, module_member=False))
        ctx.root.splice_global(tree)
        return
    declaration = child_by_field(node, "declaration")
    targets = [declaration] if declaration is not None else named_children(node)
    ctx.walk(targets, ctx, declared)


def walk_expression(node: Any, ctx: WalkContext, flags: DeclarationFlags) -> None:
    expressions = named_children(node)
    if expressions and expressions[0].type == "internal_module":
        walk_module(expressions[0], ctx, flags)
        return
    walk_assignment(node, ctx, flags)
