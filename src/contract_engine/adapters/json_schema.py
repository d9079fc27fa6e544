# contract_engine/adapters/json_schema.py
"""
OpenAPI 3 / JSON-Schema documents built from contract attribute registries.
Read-only: nothing here changes a contract class.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from contract_engine.errors import ContractDefinitionError
from contract_engine.registry import AttributeDescriptor, ContractRef, Kind, OneOf

if TYPE_CHECKING:
    from contract_engine.contract import Contract

COMPONENTS_PREFIX = "#/components/schemas/"

TYPE_MAP: dict[Kind, dict[str, str]] = {
    Kind.STRING: {"type": "string"},
    Kind.INTEGER: {"type": "integer"},
    Kind.BIG_INTEGER: {"type": "integer"},
    Kind.FLOAT: {"type": "number"},
    Kind.DECIMAL: {"type": "number"},
    Kind.BOOLEAN: {"type": "boolean"},
    Kind.DATE: {"type": "string", "format": "date"},
    Kind.DATETIME: {"type": "string", "format": "date-time"},
    Kind.TIME: {"type": "string", "format": "time"},
}


def ref_path(ref: ContractRef) -> str:
    return COMPONENTS_PREFIX + ref.name.rpartition(".")[2]


def _scalar_schema(kind: Kind | None) -> dict[str, Any]:
    if kind is None or kind not in TYPE_MAP:
        return {"type": "string"}
    return dict(TYPE_MAP[kind])


def _contract_schema(contract: ContractRef | OneOf | None) -> dict[str, Any]:
    if isinstance(contract, OneOf):
        return {"oneOf": [{"$ref": ref_path(candidate)} for candidate in contract.candidates]}
    if contract is None:
        return {"type": "object"}
    return {"$ref": ref_path(contract)}


def _type_schema(descriptor: AttributeDescriptor) -> dict[str, Any]:
    kind = descriptor.kind
    if kind is Kind.CONTRACT:
        return _contract_schema(descriptor.contract)
    if kind is Kind.ARRAY:
        return {"type": "array", "items": _scalar_schema(descriptor.element_kind)}
    if kind is Kind.PERMISSIVE_ARRAY:
        return {"type": "array", "items": {}}
    if kind is Kind.PERMISSIVE_HASH:
        return {"type": "object"}
    return _scalar_schema(kind)


def property_schema(descriptor: AttributeDescriptor) -> dict[str, Any]:
    prop = _type_schema(descriptor)
    if descriptor.description:
        prop["description"] = descriptor.description
    if descriptor.is_computed:
        prop["readOnly"] = True
    return prop


def open_api_schema(contract_type: type[Contract]) -> dict[str, Any]:
    registry = contract_type.attribute_registry()
    schema: dict[str, Any] = {
        "type": "object",
        "properties": {descriptor.name: property_schema(descriptor) for descriptor in registry},
    }
    required = registry.required_names()
    if required:
        schema["required"] = required
    return schema


def open_api_components(*contract_types: type[Contract]) -> dict[str, dict[str, Any]]:
    """
    `components.schemas` for the given contracts and every contract they
    reference, directly or through one-of candidates. Two distinct classes
    sharing a name cannot both be components.
    """
    components: dict[str, dict[str, Any]] = {}
    seen: dict[str, type[Contract]] = {}
    pending = list(contract_types)
    while pending:
        contract_type = pending.pop(0)
        name = contract_type.__name__
        if name in seen:
            if seen[name] is not contract_type:
                raise ContractDefinitionError(
                    f"component name {name!r} is used by both "
                    f"{seen[name].__module__}.{seen[name].__qualname__} and "
                    f"{contract_type.__module__}.{contract_type.__qualname__}"
                )
            continue
        seen[name] = contract_type
        components[name] = open_api_schema(contract_type)
        for descriptor in contract_type.attribute_registry():
            if descriptor.contract is None:
                continue
            refs = (
                descriptor.contract.candidates
                if isinstance(descriptor.contract, OneOf)
                else (descriptor.contract,)
            )
            pending.extend(contract_type.resolve_contract(ref) for ref in refs)
    return components
