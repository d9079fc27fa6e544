# contract_engine/errors.py
from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from contract_engine.contract import Contract


class ContractEngineError(Exception):
    """Base class for every error raised by the contract engine."""


class MissingAttributeError(ContractEngineError):
    """Raised when one or more required attributes are absent from the input."""

    def __init__(self, message: str | None = None, *, attributes: Iterable[str] = ()) -> None:
        self.attributes: tuple[str, ...] = tuple(attributes)
        super().__init__(message or f"Missing required attribute(s): {', '.join(self.attributes)}")


class UnexpectedAttributeError(ContractEngineError):
    """
    Raised when undeclared attributes are present, or when a one-of attribute
    matched none of its candidates.
    """

    def __init__(self, message: str | None = None, *, attributes: Iterable[Any] = ()) -> None:
        self.attributes: tuple[Any, ...] = tuple(attributes)
        super().__init__(message or f"Unexpected attribute(s): {', '.join(map(str, self.attributes))}")


class InvalidContractError(ContractEngineError):
    """
    Raised when the shape is structurally correct but value validation failed.
    The failing instance is kept on `contract` for introspection.
    """

    def __init__(self, message: str | None = None, *, contract: Contract | None = None) -> None:
        self.contract = contract
        super().__init__(message or "Contract validation failed")


class FrozenWriteError(ContractEngineError, AttributeError):
    """Raised on any attribute write against a read-only contract."""


class ContractDefinitionError(ContractEngineError, TypeError):
    """Raised at class-creation time for declarations the engine cannot accept."""


class ContractResolutionError(ContractEngineError, NameError):
    """Raised when a deferred contract reference does not name a contract class."""
