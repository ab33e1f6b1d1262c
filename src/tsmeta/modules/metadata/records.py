"""Canonical declaration records produced by the walkers.

Walkers build these immutable records; :mod:`.projection` turns each one
into the JSON-compatible mapping that carries both the current and the
legacy field names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

__all__ = [
    "ACCESS_MODIFIERS",
    "ClassRecord",
    "ConstructorRecord",
    "Decorator",
    "EnumMember",
    "EnumRecord",
    "FunctionRecord",
    "FunctionVariableRecord",
    "ImportRecord",
    "InterfaceMethod",
    "InterfaceProperty",
    "InterfaceRecord",
    "MethodRecord",
    "Parameter",
    "PropertyRecord",
    "TypeAliasRecord",
    "TypeAssertion",
    "VariableRecord",
]

ACCESS_MODIFIERS = ("public", "private", "protected")


@dataclass(frozen=True, slots=True)
class Decorator:
    """``@name(args...)`` attached to a class, member or parameter."""

    name: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Parameter:
    name: str
    type: str
    optional: bool = False
    initializer: str | None = None
    access_modifier: str | None = None
    readonly: bool = False
    decorators: tuple[Decorator, ...] = ()

    @property
    def is_property(self) -> bool:
        """Constructor parameter that also declares a class property."""

        return self.access_modifier is not None or self.readonly


@dataclass(frozen=True, slots=True)
class FunctionRecord:
    name: str
    parameters: tuple[Parameter, ...]
    return_type: str
    body: str | None = None
    is_async: bool = False
    is_generator: bool = False
    is_default: bool = False
    is_exported: bool = False
    is_declared: bool = False
    decorators: tuple[Decorator, ...] = ()
    type_parameters: tuple[str, ...] = ()

    @property
    def is_signature(self) -> bool:
        return self.body is None


@dataclass(frozen=True, slots=True)
class FunctionVariableRecord:
    """A variable whose value (or declared type) is callable."""

    name: str
    variable_type: str
    parameters: tuple[Parameter, ...]
    return_type: str
    is_async: bool = False
    is_generator: bool = False
    is_exported: bool = False
    is_declared: bool = False


@dataclass(frozen=True, slots=True)
class TypeAssertion:
    operator: str
    type: str
    original_expression: str
    full_expression: str


@dataclass(frozen=True, slots=True)
class VariableRecord:
    name: str
    type: str
    declaration_kind: str
    initializer: str | None = None
    value: Any = ""
    type_assertion: TypeAssertion | None = None
    is_exported: bool = False
    is_declared: bool = False
    is_default: bool = False

    @property
    def is_const(self) -> bool:
        return self.declaration_kind == "const"


@dataclass(frozen=True, slots=True)
class PropertyRecord:
    name: str
    type: str
    initializer: str | None = None
    access_modifier: str = "public"
    is_static: bool = False
    is_readonly: bool = False
    is_abstract: bool = False
    is_override: bool = False
    is_optional: bool = False
    decorators: tuple[Decorator, ...] = ()


@dataclass(frozen=True, slots=True)
class MethodRecord:
    name: str
    parameters: tuple[Parameter, ...]
    return_type: str
    body: str | None = None
    access_modifier: str = "public"
    kind: str = "method"
    is_static: bool = False
    is_readonly: bool = False
    is_abstract: bool = False
    is_async: bool = False
    is_override: bool = False
    is_generator: bool = False
    is_exported: bool = False
    is_declared: bool = False
    decorators: tuple[Decorator, ...] = ()


@dataclass(frozen=True, slots=True)
class ConstructorRecord:
    parameters: tuple[Parameter, ...]
    body: str | None = None


@dataclass(frozen=True, slots=True)
class ClassRecord:
    name: str
    properties: tuple[PropertyRecord, ...] = ()
    methods: tuple[MethodRecord, ...] = ()
    constructor: ConstructorRecord | None = None
    constructor_signatures: tuple[ConstructorRecord, ...] = ()
    extends: tuple[str, ...] = ()
    extends_raw: tuple[str, ...] = ()
    implements: tuple[str, ...] = ()
    is_exported: bool = False
    is_declared: bool = False
    is_abstract: bool = False
    is_default: bool = False
    decorators: tuple[Decorator, ...] = ()


@dataclass(frozen=True, slots=True)
class InterfaceProperty:
    name: str
    type: str
    optional: bool = False
    readonly: bool = False
    type_string: str = ""


@dataclass(frozen=True, slots=True)
class InterfaceMethod:
    name: str
    parameters: tuple[Parameter, ...]
    return_type: str
    optional: bool = False


@dataclass(frozen=True, slots=True)
class InterfaceRecord:
    name: str
    properties: tuple[InterfaceProperty, ...] = ()
    methods: tuple[InterfaceMethod, ...] = ()
    extends: tuple[str, ...] = ()
    type_parameters: tuple[str, ...] = ()
    is_exported: bool = False
    is_declared: bool = False


@dataclass(frozen=True, slots=True)
class TypeAliasRecord:
    """A ``type X = ...`` alias.

    ``shape`` holds the classification extras (``type``, ``possibleTypes``,
    ``properties``, ``params``, ``returnType``) already in output form.
    """

    name: str
    definition: str
    value: str
    shape: Mapping[str, Any] = field(default_factory=dict)
    type_parameters: tuple[str, ...] = ()
    is_exported: bool = False
    is_declared: bool = False


@dataclass(frozen=True, slots=True)
class EnumMember:
    name: str
    value: Any


@dataclass(frozen=True, slots=True)
class EnumRecord:
    name: str
    members: tuple[EnumMember, ...] = ()
    is_const: bool = False
    is_exported: bool = False
    is_declared: bool = False


@dataclass(frozen=True, slots=True)
class ImportRecord:
    module: str
    default_import: str | None = None
    named_imports: tuple[tuple[str, str | None], ...] = ()
    namespace_import: str | None = None
    type_only: bool = False
