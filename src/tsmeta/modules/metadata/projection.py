"""Project canonical records into the dual current/legacy output schema.

Every record is projected exactly once, when it enters a
:class:`~tsmeta.modules.metadata.tree.MetadataTree`. The legacy fields
(``params`` with list-typed entries, ``returnResult``, ``types``, per-member
class keys) are derived here from the same canonical values as the current
ones, so the two views cannot drift apart.
"""

from __future__ import annotations

from typing import Any

from .records import (
    ClassRecord,
    ConstructorRecord,
    Decorator,
    EnumRecord,
    FunctionRecord,
    FunctionVariableRecord,
    ImportRecord,
    InterfaceRecord,
    MethodRecord,
    Parameter,
    PropertyRecord,
    TypeAliasRecord,
    VariableRecord,
)

__all__ = [
    "CLASS_RESERVED_KEYS",
    "project_class",
    "project_enum",
    "project_function",
    "project_function_variable",
    "project_import",
    "project_interface",
    "project_overload",
    "project_type_alias",
    "project_variable",
]

CLASS_RESERVED_KEYS = frozenset(
    {
        "name",
        "properties",
        "methods",
        "isExported",
        "isDeclared",
        "isAbstract",
        "isDefault",
        "decorators",
        "extends",
        "implements",
        "extendedClasses",
        "constructor",
    }
)


def _decorators(decorators: tuple[Decorator, ...]) -> list[dict[str, Any]]:
    return [{"name": item.name, "args": list(item.args)} for item in decorators]


def _with_decorators(
    payload: dict[str, Any],
    decorators: tuple[Decorator, ...],
) -> dict[str, Any]:
    if decorators:
        payload["decorators"] = _decorators(decorators)
    return payload


def _parameter(param: Parameter) -> dict[str, Any]:
    return {
        "name": param.name,
        "type": param.type,
        "optional": param.optional,
        "initializer": param.initializer,
    }


def _legacy_parameter(param: Parameter, types: list[str]) -> dict[str, Any]:
    return {
        "name": param.name,
        "type": types,
        "optional": param.optional,
        "initializer": param.initializer,
    }


def _parameter_decorators(
    parameters: tuple[Parameter, ...],
) -> list[dict[str, Any]]:
    return [
        {
            "index": index,
            "name": param.name,
            "decorators": _decorators(param.decorators),
        }
        for index, param in enumerate(parameters)
        if param.decorators
    ]


def _legacy_types(
    parameters: tuple[Parameter, ...],
    type_parameters: tuple[str, ...],
) -> list[list[str]]:
    """Return legacy per-parameter type lists.

    For generic functions an array parameter ``E[]`` is also attached to
    every callback parameter whose type mentions ``E``, so graders can see
    the element/callback relation in the legacy view.
    """

    types = [[param.type] for param in parameters]
    if not type_parameters:
        return types
    for index, param in enumerate(parameters):
        if not param.type.endswith("[]"):
            continue
        element = param.type[:-2].strip("() ")
        for other, candidate in enumerate(parameters):
            if other == index:
                continue
            text = candidate.type
            if "=>" in text and "(" in text and element and element in text:
                if param.type not in types[other]:
                    types[other].append(param.type)
    return types


def project_function(record: FunctionRecord) -> dict[str, Any]:
    legacy = _legacy_types(record.parameters, record.type_parameters)
    payload: dict[str, Any] = {
        "name": record.name,
        "parameters": [_parameter(param) for param in record.parameters],
        "params": [
            _legacy_parameter(param, types)
            for param, types in zip(record.parameters, legacy)
        ],
        "returnType": record.return_type,
        "returnResult": [record.return_type],
        "isAsync": record.is_async,
        "isGenerator": record.is_generator,
        "isDefault": record.is_default,
        "isExported": record.is_exported,
        "isDeclared": record.is_declared,
    }
    _with_decorators(payload, record.decorators)
    if record.type_parameters:
        payload["genericsTypes"] = list(record.type_parameters)
    payload["body"] = record.body
    return payload


def project_overload(record: FunctionRecord) -> dict[str, Any]:
    """Project a body-less signature stored under an ``overloadK`` key."""

    payload: dict[str, Any] = {
        "name": record.name,
        "parameters": [_parameter(param) for param in record.parameters],
        "params": [
            {
                "name": param.name,
                "type": param.type,
                "optional": param.optional,
                "defaultValue": param.initializer,
            }
            for param in record.parameters
        ],
        "returnType": record.return_type,
        "returnResult": [record.return_type],
    }
    if record.type_parameters:
        payload["genericsTypes"] = list(record.type_parameters)
    payload["body"] = None
    return payload


def project_function_variable(record: FunctionVariableRecord) -> dict[str, Any]:
    param_types = [param.type for param in record.parameters]
    return {
        "name": record.name,
        "parameters": [
            {"name": param.name, "type": param.type, "optional": param.optional}
            for param in record.parameters
        ],
        "returnType": record.return_type,
        "isAsync": record.is_async,
        "isGenerator": record.is_generator,
        "isExported": record.is_exported,
        "isDeclared": record.is_declared,
        "types": [record.variable_type, *param_types, record.return_type],
        "params": [
            {"name": param.name, "type": [param.type]}
            for param in record.parameters
        ],
        "returnResult": [record.return_type],
    }


def project_variable(record: VariableRecord) -> dict[str, Any]:
    assertion = None
    if record.type_assertion is not None:
        assertion = {
            "operator": record.type_assertion.operator,
            "type": record.type_assertion.type,
            "originalExpression": record.type_assertion.original_expression,
            "fullExpression": record.type_assertion.full_expression,
        }
    return {
        "name": record.name,
        "type": record.type,
        "isConst": record.is_const,
        "declarationType": record.declaration_kind,
        "hasInitializer": record.initializer is not None,
        "initializerValue": record.initializer,
        "typeAssertion": assertion,
        "isExported": record.is_exported,
        "isDeclared": record.is_declared,
        "isDefault": record.is_default,
        "types": [record.type],
        "value": record.value,
    }


def _legacy_modifier(prop: PropertyRecord) -> str:
    if prop.access_modifier in {"private", "protected"}:
        return prop.access_modifier
    if prop.is_readonly:
        return "readonly"
    return "opened"


def _strip_quotes(text: str | None) -> str | None:
    if text is None:
        return None
    return text.replace('"', "").replace("'", "")


def _project_property(prop: PropertyRecord) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": prop.name,
        "type": prop.type,
        "isStatic": prop.is_static,
        "isReadonly": prop.is_readonly,
        "accessModifier": prop.access_modifier,
        "isAbstract": prop.is_abstract,
        "isOverride": prop.is_override,
        "isOptional": prop.is_optional,
    }
    _with_decorators(payload, prop.decorators)
    payload["initializer"] = prop.initializer
    return payload


def _project_method(method: MethodRecord) -> dict[str, Any]:
    legacy = _legacy_types(method.parameters, ())
    payload: dict[str, Any] = {
        "name": method.name,
        "parameters": [_parameter(param) for param in method.parameters],
        "params": [
            _legacy_parameter(param, types)
            for param, types in zip(method.parameters, legacy)
        ],
        "returnType": method.return_type,
        "returnResult": [method.return_type],
        "kind": method.kind,
        "isExported": method.is_exported,
        "isDeclared": method.is_declared,
        "isAbstract": method.is_abstract,
        "isStatic": method.is_static,
        "isReadonly": method.is_readonly,
        "isAsync": method.is_async,
        "isOverride": method.is_override,
        "isDefault": False,
        "isConst": False,
        "isGenerator": method.is_generator,
        "accessModifier": method.access_modifier,
    }
    _with_decorators(payload, method.decorators)
    parameter_decorators = _parameter_decorators(method.parameters)
    if parameter_decorators:
        payload["parameterDecorators"] = parameter_decorators
    payload["body"] = method.body
    return payload


def _project_constructor(ctor: ConstructorRecord) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "params": [
            {
                param.name: {
                    "types": [param.type],
                    "defaultValue": _strip_quotes(param.initializer),
                }
            }
            for param in ctor.parameters
        ]
    }
    parameter_decorators = _parameter_decorators(ctor.parameters)
    if parameter_decorators:
        payload["parameterDecorators"] = parameter_decorators
    return payload


def project_class(record: ClassRecord) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": record.name,
        "properties": {},
        "methods": {},
        "isExported": record.is_exported,
        "isDeclared": record.is_declared,
        "isAbstract": record.is_abstract,
        "isDefault": record.is_default,
    }
    _with_decorators(payload, record.decorators)
    if record.extends:
        payload["extends"] = list(record.extends)
    if record.implements:
        payload["implements"] = list(record.implements)
    if record.extends_raw:
        payload["extendedClasses"] = list(record.extends_raw)

    if record.constructor is not None:
        ctor = _project_constructor(record.constructor)
        ctor["body"] = record.constructor.body
        payload["constructor"] = ctor
    for index, signature in enumerate(record.constructor_signatures):
        payload[f"constructorSignature{index}"] = _project_constructor(signature)

    for prop in record.properties:
        payload["properties"].setdefault(prop.name, _project_property(prop))
        if prop.name not in CLASS_RESERVED_KEYS:
            payload.setdefault(
                prop.name,
                {
                    "types": [prop.type],
                    "modificator": _legacy_modifier(prop),
                    "value": _strip_quotes(prop.initializer) or "",
                },
            )
    for method in record.methods:
        if method.body is None and method.name in payload["methods"]:
            continue
        payload["methods"][method.name] = _project_method(method)
        if method.name not in CLASS_RESERVED_KEYS:
            payload[method.name] = {"body": method.body}
    return payload


def project_interface(record: InterfaceRecord) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": record.name,
        "properties": {prop.name: prop.type for prop in record.properties},
        "propertyDetails": [
            {
                "name": prop.name,
                "type": prop.type,
                "optional": prop.optional,
                "readonly": prop.readonly,
                "typeString": prop.type_string,
            }
            for prop in record.properties
        ],
        "methods": {},
        "isExported": record.is_exported,
        "isDeclared": record.is_declared,
    }
    for method in record.methods:
        payload["methods"][method.name] = {
            "name": method.name,
            "parameters": [_parameter(param) for param in method.parameters],
            "params": [
                _legacy_parameter(param, [param.type])
                for param in method.parameters
            ],
            "returnType": method.return_type,
            "returnResult": [method.return_type],
            "optional": method.optional,
        }
    if record.type_parameters:
        payload["genericsTypes"] = list(record.type_parameters)
    if record.extends:
        payload["extends"] = list(record.extends)
        payload["extendedBy"] = list(record.extends)
    return payload


def project_type_alias(record: TypeAliasRecord) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": record.name,
        "definition": record.definition,
        "value": record.value,
        "isExported": record.is_exported,
        "isDeclared": record.is_declared,
    }
    if record.type_parameters:
        payload["genericsTypes"] = list(record.type_parameters)
    payload.update(record.shape)
    return payload


def project_enum(record: EnumRecord) -> dict[str, Any]:
    return {
        "name": record.name,
        "isConst": record.is_const,
        "members": [
            {"name": member.name, "value": member.value}
            for member in record.members
        ],
        "isExported": record.is_exported,
        "isDeclared": record.is_declared,
    }


def project_import(record: ImportRecord) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "module": record.module,
        "defaultImport": record.default_import,
        "namedImports": [
            {"name": name, "alias": alias}
            for name, alias in record.named_imports
        ],
    }
    if record.namespace_import is not None:
        payload["namespaceImport"] = record.namespace_import
    if record.type_only:
        payload["typeOnly"] = True
    return payload
