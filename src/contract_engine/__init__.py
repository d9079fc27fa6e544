# src/contract_engine/__init__.py
"""
Typed, validated, immutable data-transfer contracts.

Declare attributes on a `Contract` subclass; instances coerce raw input,
report shape problems through `schema_errors()` / `schema_validate()` and
value problems through `errors()` / `is_valid()`.
"""
from __future__ import annotations

from contract_engine.adapters.json_schema import open_api_components, open_api_schema
from contract_engine.adapters.params import Params, contract_to_params, params_to_mapping
from contract_engine.config import DEFAULT_CONFIG, ContractConfig
from contract_engine.contract import ROOT_KEY, Contract, PassthroughView
from contract_engine.errors import (
    ContractDefinitionError,
    ContractEngineError,
    ContractResolutionError,
    FrozenWriteError,
    InvalidContractError,
    MissingAttributeError,
    UnexpectedAttributeError,
)
from contract_engine.fields import attribute, computed, normalizes, one_of
from contract_engine.registry import (
    AttributeDescriptor,
    AttributeRegistry,
    ContractRef,
    DeferredRef,
    DirectRef,
    Kind,
    OneOf,
)
from contract_engine.validation import (
    BASE,
    ContractErrors,
    ErrorDetail,
    after_validation,
    before_validation,
    validates,
)

__all__ = [
    "AttributeDescriptor",
    "AttributeRegistry",
    "BASE",
    "Contract",
    "ContractConfig",
    "ContractDefinitionError",
    "ContractEngineError",
    "ContractErrors",
    "ContractRef",
    "ContractResolutionError",
    "DEFAULT_CONFIG",
    "DeferredRef",
    "DirectRef",
    "ErrorDetail",
    "FrozenWriteError",
    "InvalidContractError",
    "Kind",
    "MissingAttributeError",
    "OneOf",
    "Params",
    "PassthroughView",
    "ROOT_KEY",
    "UnexpectedAttributeError",
    "after_validation",
    "attribute",
    "before_validation",
    "computed",
    "contract_to_params",
    "normalizes",
    "one_of",
    "open_api_components",
    "open_api_schema",
    "params_to_mapping",
    "validates",
]
