# contract_engine/validation.py
"""
Value-validation boundary.

The engine does not ship a rule language. It runs three things and collects
their output into a `ContractErrors`: the coercion-fallback messages recorded
at construction, methods registered with `@validates`, and the value errors
of nested contracts (under composite keys). `@before_validation` and
`@after_validation` hooks run around them.
"""
from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from contract_engine.contract import Contract

BASE = "base"

_VALIDATES_MARKER = "__contract_validates__"
_HOOK_MARKER = "__contract_validation_hook__"

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class ErrorDetail:
    attribute: str
    message: str

    @property
    def full_message(self) -> str:
        return f"{self.attribute} {self.message}"


class ContractErrors:
    """Ordered (attribute, message) pairs produced by one validation run."""

    def __init__(self) -> None:
        self._details: list[ErrorDetail] = []

    def add(self, attribute: str, message: str) -> None:
        self._details.append(ErrorDetail(attribute, message))

    def messages_for(self, attribute: str) -> list[str]:
        return [d.message for d in self._details if d.attribute == attribute]

    def attributes(self) -> list[str]:
        return list(dict.fromkeys(d.attribute for d in self._details))

    def to_dict(self) -> dict[str, list[str]]:
        out: dict[str, list[str]] = {}
        for detail in self._details:
            out.setdefault(detail.attribute, []).append(detail.message)
        return out

    def full_messages(self) -> list[str]:
        return [d.full_message for d in self._details]

    def __iter__(self) -> Iterator[ErrorDetail]:
        return iter(self._details)

    def __len__(self) -> int:
        return len(self._details)

    def __bool__(self) -> bool:
        return bool(self._details)

    def __contains__(self, attribute: object) -> bool:
        return any(d.attribute == attribute for d in self._details)

    def __repr__(self) -> str:
        return f"ContractErrors({self.to_dict()!r})"


# ------------------------------------------------------------------------------
# Registration
# ------------------------------------------------------------------------------


def validates(*attribute_names: str) -> Callable[[F], F]:
    """
    Register a method as a value check.

    With attribute names the method is called once per attribute with that
    attribute's value; without names it is called with no arguments and its
    messages are reported under "base". Raise ValueError to report a message.
    """

    def decorator(func: F) -> F:
        setattr(func, _VALIDATES_MARKER, tuple(attribute_names))
        return func

    return decorator


def before_validation(func: F) -> F:
    setattr(func, _HOOK_MARKER, "before")
    return func


def after_validation(func: F) -> F:
    setattr(func, _HOOK_MARKER, "after")
    return func


@dataclass(frozen=True)
class ValidationHooks:
    validators: tuple[tuple[str, tuple[str, ...]], ...] = ()
    before: tuple[str, ...] = ()
    after: tuple[str, ...] = ()

    def extended_with(self, namespace: dict[str, Any]) -> ValidationHooks:
        """Hooks of a subclass: the inherited ones plus those declared in `namespace`."""
        validators = dict(self.validators)
        before = list(self.before)
        after = list(self.after)
        for method_name, member in namespace.items():
            names = getattr(member, _VALIDATES_MARKER, None)
            if names is not None:
                validators[method_name] = names
            hook = getattr(member, _HOOK_MARKER, None)
            if hook == "before" and method_name not in before:
                before.append(method_name)
            elif hook == "after" and method_name not in after:
                after.append(method_name)
        return ValidationHooks(tuple(validators.items()), tuple(before), tuple(after))


# ------------------------------------------------------------------------------
# Running
# ------------------------------------------------------------------------------


def _report(errors: ContractErrors, attribute: str, check: Callable[..., Any], *args: Any) -> None:
    try:
        check(*args)
    except ValueError as exc:
        errors.add(attribute, str(exc))


def propagate_nested_errors(contract: Contract, errors: ContractErrors) -> None:
    separator = type(contract).contract_config.error_key_separator
    for name, nested in contract.nested_contracts():
        for detail in nested.errors():
            errors.add(f"{name}{separator}{detail.attribute}", detail.message)


def run_validations(contract: Contract) -> ContractErrors:
    errors = ContractErrors()
    hooks = type(contract).validation_hooks()

    for method_name in hooks.before:
        getattr(contract, method_name)(errors)

    for attribute, messages in contract.coercion_messages().items():
        for message in messages:
            errors.add(attribute, message)

    for method_name, attribute_names in hooks.validators:
        check = getattr(contract, method_name)
        if not attribute_names:
            _report(errors, BASE, check)
        for attribute in attribute_names:
            _report(errors, attribute, check, getattr(contract, attribute))

    propagate_nested_errors(contract, errors)

    for method_name in hooks.after:
        getattr(contract, method_name)(errors)
    return errors
