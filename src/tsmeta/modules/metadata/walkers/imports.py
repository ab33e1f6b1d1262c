"""Import and export statements."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from ..records import ImportRecord
from ..syntax import (
    child_by_field,
    first_child_of_type,
    has_token,
    named_children,
    unwrap_parens,
)
from ..types import FUNCTION_NODE_TYPES
from .classes import class_record
from .common import DeclarationFlags, WalkContext, parse_decorators, unquote
from .functions import function_record

__all__ = ["walk_export", "walk_import"]

_ANONYMOUS_CLASSES = frozenset({"class", "class_expression"})


def _specifier(node: Any, ctx: WalkContext) -> tuple[str, str | None]:
    """Return ``(name, alias)`` for an import or export specifier."""

    name = child_by_field(node, "name")
    alias = child_by_field(node, "alias")
    if name is None:
        parts = named_children(node)
        name = parts[0] if parts else node
        alias = parts[1] if len(parts) > 1 else None
    return unquote(ctx.text(name)), unquote(ctx.text(alias)) if alias is not None else None


def walk_import(node: Any, ctx: WalkContext, flags: DeclarationFlags) -> None:
    source = child_by_field(node, "source")
    default_import: str | None = None
    named: list[tuple[str, str | None]] = []
    namespace_import: str | None = None

    require = first_child_of_type(node, "import_require_clause")
    if require is not None:
        # import x = require("y")
        parts = named_children(require)
        if parts:
            default_import = ctx.text(parts[0])
        source = child_by_field(require, "source") or (parts[-1] if len(parts) > 1 else None)

    if source is None:
        return

    clause = first_child_of_type(node, "import_clause")
    for child in named_children(clause) if clause is not None else []:
        if child.type == "identifier":
            default_import = ctx.text(child)
        elif child.type == "namespace_import":
            inner = named_children(child)
            if inner:
                namespace_import = ctx.text(inner[-1])
        elif child.type == "named_imports":
            for spec in named_children(child):
                if spec.type != "import_specifier":
                    continue
                imported, local = _specifier(spec, ctx)
                # Keyed by the local binding; ``alias`` names the imported symbol.
                if local is not None:
                    named.append((local, imported))
                else:
                    named.append((imported, None))

    ctx.tree.add_import(
        ImportRecord(
            module=unquote(ctx.text(source)),
            default_import=default_import,
            named_imports=tuple(named),
            namespace_import=namespace_import,
            type_only=has_token(node, "type"),
        )
    )


def _walk_default_value(value: Any, ctx: WalkContext, flags: DeclarationFlags) -> None:
    value = unwrap_parens(value)
    if value is None:
        return
    if value.type == "identifier":
        name = ctx.text(value)
        if not ctx.tree.mark_default(name):
            ctx.tree.set_default_export(name)
        return
    if value.type in FUNCTION_NODE_TYPES:
        name_node = child_by_field(value, "name")
        name = ctx.text(name_node) if name_node is not None else "default"
        ctx.tree.add_function(function_record(value, ctx, flags, name=name))
        return
    if value.type in _ANONYMOUS_CLASSES:
        ctx.tree.add_class(class_record(value, ctx, flags))
        return
    ctx.tree.set_default_export(ctx.text(value))


def walk_export(node: Any, ctx: WalkContext, flags: DeclarationFlags) -> None:
    is_default = has_token(node, "default")
    merged = replace(
        flags,
        exported=True,
        default=is_default,
        decorators=flags.decorators + parse_decorators(node, ctx),
    )

    declaration = child_by_field(node, "declaration")
    if declaration is not None:
        ctx.walk([declaration], ctx, merged)
        return

    source = child_by_field(node, "source")
    source_text = unquote(ctx.text(source)) if source is not None else None

    clause = first_child_of_type(node, "export_clause")
    if clause is not None:
        for spec in named_children(clause):
            if spec.type != "export_specifier":
                continue
            local, exported = _specifier(spec, ctx)
            if exported is not None:
                ctx.tree.add_named_export(exported, local, source_text)
            else:
                ctx.tree.add_named_export(local, None, source_text)
        return

    if has_token(node, "*") or first_child_of_type(node, "namespace_export") is not None:
        if source_text is not None:
            namespace = first_child_of_type(node, "namespace_export")
            alias = None
            if namespace is not None:
                inner = named_children(namespace)
                alias = unquote(ctx.text(inner[0])) if inner else None
            ctx.tree.add_reexport(source_text, alias)
        return

    value = child_by_field(node, "value")
    if value is None:
        expressions = [
            child for child in named_children(node) if child.type != "decorator"
        ]
        value = expressions[-1] if expressions else None
    if value is None:
        return
    if has_token(node, "="):
        ctx.tree.set_export_equals(ctx.text(value))
        return
    if is_default:
        _walk_default_value(value, ctx, merged)
