"""Declaration walkers dispatched by tree-sitter node type."""

from __future__ import annotations

from typing import Any, Iterable

from tsmeta.core.config import ExtractionSettings

from ..syntax import SourceFile, named_children
from ..tree import MetadataTree
from ..types import TypeSession
from .aliases import walk_type_alias
from .classes import walk_class
from .common import DeclarationFlags, Walker, WalkContext
from .enums import walk_enum
from .functions import walk_function
from .imports import walk_export, walk_import
from .interfaces import walk_interface
from .modules import walk_ambient, walk_expression, walk_module
from .variables import walk_variables

__all__ = ["DISPATCH", "DeclarationFlags", "WalkContext", "walk_file", "walk_statements"]

DISPATCH: dict[str, Walker] = {
    "function_declaration": walk_function,
    "generator_function_declaration": walk_function,
    "function_signature": walk_function,
    "lexical_declaration": walk_variables,
    "variable_declaration": walk_variables,
    "class_declaration": walk_class,
    "abstract_class_declaration": walk_class,
    "interface_declaration": walk_interface,
    "type_alias_declaration": walk_type_alias,
    "enum_declaration": walk_enum,
    "import_statement": walk_import,
    "export_statement": walk_export,
    "ambient_declaration": walk_ambient,
    "internal_module": walk_module,
    "module": walk_module,
    "expression_statement": walk_expression,
}

_NO_FLAGS = DeclarationFlags()


def walk_statements(
    nodes: Iterable[Any],
    ctx: WalkContext,
    flags: DeclarationFlags | None = None,
) -> None:
    """Dispatch each statement to its walker.

    Statement-level calls (``flags is None``) also queue the nested blocks
    of every statement so local declarations are walked after the
    enclosing scope.
    """

    for node in nodes:
        walker = DISPATCH.get(node.type)
        if walker is not None:
            walker(node, ctx, flags or _NO_FLAGS)
        if flags is None:
            ctx.defer_blocks(node)


def walk_file(
    source: SourceFile,
    session: TypeSession,
    settings: ExtractionSettings,
    *,
    tree: MetadataTree | None = None,
) -> MetadataTree:
    """Walk ``source`` top-down, then its nested scopes breadth-first.

    Passing ``tree`` accumulates into an existing tree instead of a new one.
    """

    if tree is None:
        tree = MetadataTree()
    ctx = WalkContext(
        source=source,
        types=session.resolver(source),
        tree=tree,
        root=tree,
        settings=settings,
        walk=walk_statements,
    )
    walk_statements(named_children(source.root), ctx)

    index = 0
    while index < len(ctx.scopes):
        block, local = ctx.scopes[index]
        index += 1
        walk_statements(named_children(block), local)
    return tree
