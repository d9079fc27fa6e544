# contract_engine/fields.py
from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from contract_engine.errors import ContractDefinitionError
from contract_engine.registry import (
    SCALAR_KINDS,
    AttributeDescriptor,
    ContractRef,
    Kind,
    OneOf,
    as_contract_ref,
    declared_in,
    kind_for,
)

_MISSING: Any = object()
_NORMALIZES_MARKER = "__contract_normalizes__"

F = TypeVar("F", bound=Callable[..., Any])


def _is_contract_class(value: Any) -> bool:
    from contract_engine.contract import Contract

    return isinstance(value, type) and issubclass(value, Contract)


class Field:
    """
    Class-body declaration of one attribute. The owning contract class turns it
    into an AttributeDescriptor when the class is created; on instances it
    reads the attribute value.
    """

    def __init__(
        self,
        kind: Any = Kind.VALUE,
        *,
        optional: bool = False,
        default: Any = _MISSING,
        default_factory: Callable[[], Any] | None = None,
        description: str | None = None,
        array: Any = None,
        contract: ContractRef | OneOf | type | str | None = None,
        permissive: bool = False,
        compute: Callable[[Any], Any] | str | None = None,
    ) -> None:
        if default is not _MISSING and default_factory is not None:
            raise ContractDefinitionError("cannot specify both default and default_factory")
        self.kind = kind
        self.optional = optional
        self.default = default
        self.default_factory = default_factory
        self.description = description
        self.array = array
        self.contract = contract
        self.permissive = permissive
        self.compute = compute
        self.name: str | None = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance._read_attribute(self.name)

    def _resolve_kind(self) -> tuple[Kind, Kind | None, ContractRef | OneOf | None]:
        if self.compute is not None or self.kind in (Kind.COMPUTED, Kind.COMPUTED.value):
            if self.compute is None:
                raise ContractDefinitionError("computed attributes need a callable or method name")
            return Kind.COMPUTED, None, None

        if self.contract is not None:
            if isinstance(self.contract, OneOf):
                return Kind.CONTRACT, None, self.contract
            return Kind.CONTRACT, None, as_contract_ref(self.contract)

        if isinstance(self.kind, OneOf):
            return Kind.CONTRACT, None, self.kind
        if _is_contract_class(self.kind):
            return Kind.CONTRACT, None, as_contract_ref(self.kind)

        if self.array is not None:
            if self.array in ("permissive", Kind.PERMISSIVE_ARRAY):
                return Kind.PERMISSIVE_ARRAY, None, None
            element_kind = kind_for(self.array)
            if element_kind not in SCALAR_KINDS:
                raise ContractDefinitionError(f"arrays cannot hold elements of kind {element_kind}")
            return Kind.ARRAY, element_kind, None

        kind = kind_for(self.kind)
        if kind is Kind.ARRAY:
            raise ContractDefinitionError("typed arrays are declared with array=<element kind>")
        if kind is Kind.CONTRACT:
            raise ContractDefinitionError("contract attributes are declared with contract=<reference>")
        return kind, None, None

    def build(self, name: str, module: str) -> AttributeDescriptor:
        """Descriptor for `name`, with deferred references bound to the declaring `module`."""
        kind, element_kind, contract = self._resolve_kind()
        has_default = self.default is not _MISSING or self.default_factory is not None
        return AttributeDescriptor(
            name=name,
            kind=kind,
            optional=self.optional,
            has_default=has_default and kind is not Kind.COMPUTED,
            default=None if self.default is _MISSING else self.default,
            default_factory=self.default_factory,
            description=self.description,
            element_kind=element_kind,
            contract=declared_in(contract, module),
            permissive=self.permissive,
            compute=self.compute,
        )

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, kind={self.kind!r})"


def attribute(
    kind: Any = Kind.VALUE,
    *,
    optional: bool = False,
    default: Any = _MISSING,
    default_factory: Callable[[], Any] | None = None,
    description: str | None = None,
    array: Any = None,
    contract: ContractRef | OneOf | type | str | None = None,
    permissive: bool = False,
) -> Any:
    """
    Declare a typed attribute on a contract class.

    `kind` is a Kind, its name ("integer"), a Python type (`int`, `date`, ...)
    or a contract class. Typed arrays use `array=<element kind>` and untyped
    ones `array="permissive"`. Nested contracts use `contract=<class or name>`
    or `contract=one_of(...)`; `permissive=True` on a one-of keeps the raw
    mapping when no candidate matches.
    """
    return Field(
        kind,
        optional=optional,
        default=default,
        default_factory=default_factory,
        description=description,
        array=array,
        contract=contract,
        permissive=permissive,
    )


def computed(
    compute: Callable[[Any], Any] | str | None = None,
    *,
    description: str | None = None,
) -> Any:
    """
    Declare a value derived from other attributes when the contract is rendered.
    Usable as `@computed`, `@computed(description=...)`, `computed(lambda self: ...)`
    or `computed("method_name")`.
    """
    if compute is None:
        return lambda func: Field(Kind.COMPUTED, compute=func, description=description)
    return Field(Kind.COMPUTED, compute=compute, description=description)


def one_of(*candidates: ContractRef | type | str) -> OneOf:
    return OneOf.of(*candidates)


def normalizes(*attribute_names: str) -> Callable[[F], F]:
    """Register a function(value) -> value applied to the named attributes after coercion."""
    if not attribute_names:
        raise ContractDefinitionError("normalizes requires at least one attribute name")

    def decorator(func: F) -> F:
        target = func.__func__ if isinstance(func, staticmethod) else func
        setattr(target, _NORMALIZES_MARKER, tuple(attribute_names))
        return func

    return decorator


def collect_normalizers(
    namespace: dict[str, Any],
    inherited: dict[str, Callable[[Any], Any]],
) -> dict[str, Callable[[Any], Any]]:
    normalizers = dict(inherited)
    for member in namespace.values():
        func = getattr(member, "__func__", member)
        for name in getattr(func, _NORMALIZES_MARKER, ()):
            normalizers[name] = func
    return normalizers
