# contract_engine/schema.py
"""
Structural (shape) validation: required attributes present, no undeclared
attributes, one-of attributes resolved, and the same for every nested
contract. Value validation lives in `contract_engine.validation`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from contract_engine.config import ContractConfig
from contract_engine.errors import (
    ContractEngineError,
    MissingAttributeError,
    UnexpectedAttributeError,
)

if TYPE_CHECKING:
    from contract_engine.contract import Contract

MISSING_MESSAGE = "is missing"
UNEXPECTED_MESSAGE = "is unexpected"
UNMATCHED_MESSAGE = "does not match any candidate"


@dataclass(frozen=True)
class StructuralPolicy:
    suppress_unexpected: bool = False

    @classmethod
    def for_config(cls, config: ContractConfig) -> StructuralPolicy:
        return PERMISSIVE_POLICY if config.permissive else STRICT_POLICY


STRICT_POLICY = StructuralPolicy()
PERMISSIVE_POLICY = StructuralPolicy(suppress_unexpected=True)


def missing_attribute_names(contract: Contract) -> list[str]:
    provided = contract.provided_keys
    return [name for name in type(contract).attribute_registry().required_names() if name not in provided]


def schema_errors(contract: Contract, policy: StructuralPolicy) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for name in missing_attribute_names(contract):
        errors[name] = [MISSING_MESSAGE]
    if not policy.suppress_unexpected:
        for name in contract.unexpected_attributes:
            errors[name] = [UNEXPECTED_MESSAGE]
    for name in contract.unmatched_one_of:
        errors[name] = [UNMATCHED_MESSAGE]
    return errors


def structural_failure(contract: Contract, policy: StructuralPolicy) -> ContractEngineError | None:
    """
    The error `schema_validate` would raise, or None when the shape is valid.

    Missing attributes are reported before unexpected ones. Nested contracts
    are checked last, in declaration order, and the first nested failure is
    returned unchanged.
    """
    missing = missing_attribute_names(contract)
    if missing:
        return MissingAttributeError(attributes=missing)

    if not policy.suppress_unexpected and contract.unexpected_attributes:
        return UnexpectedAttributeError(attributes=list(contract.unexpected_attributes))

    unmatched = next(iter(contract.unmatched_one_of.values()), None)
    if unmatched is not None:
        return UnexpectedAttributeError(
            f"No matching contract for one_of: {list(unmatched.candidates)!r}",
            attributes=unmatched.keys,
        )

    for _, nested in contract.nested_contracts():
        failure = nested.structural_failure()
        if failure is not None:
            return failure
    return None


def schema_validate(contract: Contract, policy: StructuralPolicy) -> None:
    failure = structural_failure(contract, policy)
    if failure is not None:
        raise failure
