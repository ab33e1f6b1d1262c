"""Class declarations: members, constructors and heritage."""

from __future__ import annotations

from typing import Any

from ..records import (
    ClassRecord,
    ConstructorRecord,
    Decorator,
    MethodRecord,
    PropertyRecord,
)
from ..syntax import (
    child_by_field,
    collapse_whitespace,
    first_child_of_type,
    has_token,
    named_children,
)
from .common import (
    DeclarationFlags,
    WalkContext,
    body_text,
    declaration_name,
    decorator_record,
    parse_decorators,
    parse_parameters,
    unquote,
)

__all__ = ["class_record", "walk_class"]

_METHOD_NODES = frozenset(
    {"method_definition", "method_signature", "abstract_method_signature"}
)
_FIELD_NODES = frozenset({"public_field_definition", "field_definition"})


def _access_modifier(node: Any, ctx: WalkContext) -> str:
    modifier = first_child_of_type(node, "accessibility_modifier")
    if modifier is not None:
        return ctx.text(modifier)
    name = child_by_field(node, "name", "property")
    if name is not None and name.type == "private_property_identifier":
        return "private"
    return "public"


def _is_override(node: Any) -> bool:
    return has_token(node, "override_modifier", "override")


def _heritage(node: Any, ctx: WalkContext) -> tuple[tuple[str, ...], tuple[str, ...], tuple[str, ...]]:
    """Return ``(extends, extends_raw, implements)`` for a class node."""

    extends: list[str] = []
    raw: list[str] = []
    implements: list[str] = []
    heritage = first_child_of_type(node, "class_heritage")
    clauses = named_children(heritage) if heritage is not None else []
    for clause in clauses:
        if clause.type == "extends_clause":
            for child in named_children(clause):
                if child.type == "type_arguments":
                    if raw:
                        raw[-1] += collapse_whitespace(ctx.text(child))
                    continue
                extends.append(ctx.text(child))
                raw.append(collapse_whitespace(ctx.text(child)))
        elif clause.type == "implements_clause":
            implements.extend(
                collapse_whitespace(ctx.text(child)) for child in named_children(clause)
            )
        elif clause.type not in {"comment"}:
            # Plain JavaScript heritage: ``class A extends B``.
            extends.append(ctx.text(clause))
            raw.append(collapse_whitespace(ctx.text(clause)))
    return tuple(extends), tuple(raw), tuple(implements)


def _property(
    node: Any,
    ctx: WalkContext,
    pending: tuple[Decorator, ...],
) -> PropertyRecord:
    name = unquote(ctx.text(child_by_field(node, "name", "property")))
    value = child_by_field(node, "value")
    annotated = ctx.types.annotation(node)
    if annotated is None:
        annotated = ctx.types.infer(value) if value is not None else ctx.default_type
    return PropertyRecord(
        name=name,
        type=annotated,
        initializer=ctx.text(value) if value is not None else None,
        access_modifier=_access_modifier(node, ctx),
        is_static=has_token(node, "static"),
        is_readonly=has_token(node, "readonly"),
        is_abstract=has_token(node, "abstract"),
        is_override=_is_override(node),
        is_optional=has_token(node, "?"),
        decorators=pending + parse_decorators(node, ctx),
    )


def _method_kind(node: Any) -> str:
    if has_token(node, "get"):
        return "get"
    if has_token(node, "set"):
        return "set"
    return "method"


def _method(
    node: Any,
    ctx: WalkContext,
    flags: DeclarationFlags,
    pending: tuple[Decorator, ...],
) -> MethodRecord:
    return MethodRecord(
        name=unquote(ctx.text(child_by_field(node, "name"))),
        parameters=parse_parameters(node, ctx),
        return_type=ctx.types.return_type(node),
        body=body_text(node, ctx),
        access_modifier=_access_modifier(node, ctx),
        kind=_method_kind(node),
        is_static=has_token(node, "static"),
        is_readonly=has_token(node, "readonly"),
        is_abstract=node.type == "abstract_method_signature" or has_token(node, "abstract"),
        is_async=has_token(node, "async"),
        is_override=_is_override(node),
        is_generator=has_token(node, "*"),
        is_exported=ctx.is_exported(flags),
        is_declared=ctx.is_declared(flags),
        decorators=pending + parse_decorators(node, ctx),
    )


def class_record(
    node: Any,
    ctx: WalkContext,
    flags: DeclarationFlags,
) -> ClassRecord:
    properties: list[PropertyRecord] = []
    methods: list[MethodRecord] = []
    constructor: ConstructorRecord | None = None
    signatures: list[ConstructorRecord] = []
    pending: list[Decorator] = []

    body = child_by_field(node, "body")
    members = body.children if body is not None else []
    for member in members:
        if member.type == "decorator":
            pending.append(decorator_record(member, ctx))
            continue
        decorators = tuple(pending)
        if member.type in _METHOD_NODES:
            pending.clear()
            name = ctx.text(child_by_field(member, "name"))
            if name == "constructor":
                record = ConstructorRecord(
                    parameters=parse_parameters(member, ctx),
                    body=body_text(member, ctx),
                )
                if record.body is None:
                    signatures.append(record)
                else:
                    constructor = record
                    properties.extend(
                        PropertyRecord(
                            name=param.name,
                            type=param.type,
                            initializer=param.initializer,
                            access_modifier=param.access_modifier or "public",
                            is_readonly=param.readonly,
                            decorators=param.decorators,
                        )
                        for param in record.parameters
                        if param.is_property
                    )
                continue
            methods.append(_method(member, ctx, flags, decorators))
        elif member.type in _FIELD_NODES:
            pending.clear()
            properties.append(_property(member, ctx, decorators))
        elif member.is_named and member.type != "comment":
            pending.clear()

    extends, raw, implements = _heritage(node, ctx)
    return ClassRecord(
        name=declaration_name(node, ctx),
        properties=tuple(properties),
        methods=tuple(methods),
        constructor=constructor,
        constructor_signatures=tuple(signatures),
        extends=extends,
        extends_raw=raw,
        implements=implements,
        is_exported=ctx.is_exported(flags),
        is_declared=ctx.is_declared(flags),
        is_abstract=node.type == "abstract_class_declaration" or has_token(node, "abstract"),
        is_default=flags.default,
        decorators=flags.decorators + parse_decorators(node, ctx),
    )


def walk_class(node: Any, ctx: WalkContext, flags: DeclarationFlags) -> None:
    ctx.tree.add_class(class_record(node, ctx, flags), local=ctx.local)
