# contract_engine/registry.py
from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, replace
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from contract_engine.errors import ContractDefinitionError


class Kind(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    BIG_INTEGER = "big_integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    VALUE = "value"
    ARRAY = "array"
    PERMISSIVE_ARRAY = "permissive_array"
    PERMISSIVE_HASH = "permissive_hash"
    CONTRACT = "contract"
    COMPUTED = "computed"

    def __str__(self) -> str:
        return self.value


NUMERIC_KINDS = frozenset({Kind.INTEGER, Kind.BIG_INTEGER, Kind.FLOAT, Kind.DECIMAL})
TEMPORAL_KINDS = frozenset({Kind.DATE, Kind.DATETIME, Kind.TIME})
PASSTHROUGH_KINDS = frozenset({Kind.STRING, Kind.VALUE})

# Kinds usable as the element kind of a typed array.
SCALAR_KINDS = NUMERIC_KINDS | TEMPORAL_KINDS | PASSTHROUGH_KINDS | {Kind.BOOLEAN}

_PYTHON_TYPE_KINDS: dict[Any, Kind] = {
    str: Kind.STRING,
    int: Kind.INTEGER,
    float: Kind.FLOAT,
    Decimal: Kind.DECIMAL,
    bool: Kind.BOOLEAN,
    date: Kind.DATE,
    datetime: Kind.DATETIME,
    time: Kind.TIME,
    list: Kind.PERMISSIVE_ARRAY,
    dict: Kind.PERMISSIVE_HASH,
    object: Kind.VALUE,
    Any: Kind.VALUE,
}


def kind_for(value: Kind | str | type | Any) -> Kind:
    """Map a declared kind (enum member, its string value, or a Python type) to a Kind."""
    if isinstance(value, Kind):
        return value
    if isinstance(value, str):
        try:
            return Kind(value)
        except ValueError:
            raise ContractDefinitionError(f"unknown attribute kind: {value!r}") from None
    try:
        return _PYTHON_TYPE_KINDS[value]
    except (KeyError, TypeError):
        raise ContractDefinitionError(f"unsupported attribute type: {value!r}") from None


# ------------------------------------------------------------------------------
# Contract references
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class DirectRef:
    contract_type: type

    @property
    def name(self) -> str:
        return self.contract_type.__name__


@dataclass(frozen=True)
class DeferredRef:
    """
    A contract named by string, resolved lazily through a ResolutionCache.
    `module` is the module of the class that declared the reference; its
    namespace is searched first, so subclasses in other modules resolve the
    name the same way the declaring class does.
    """

    name: str
    module: str | None = None


ContractRef = Union[DirectRef, DeferredRef]


def as_contract_ref(value: ContractRef | type | str) -> ContractRef:
    if isinstance(value, (DirectRef, DeferredRef)):
        return value
    if isinstance(value, str):
        if not value.strip():
            raise ContractDefinitionError("contract reference name must not be blank")
        return DeferredRef(value.strip())
    if isinstance(value, type):
        return DirectRef(value)
    raise ContractDefinitionError(f"contract reference must be a class or a name, got {value!r}")


@dataclass(frozen=True)
class OneOf:
    """
    Ordered candidates for a polymorphic nested attribute.
    The first candidate that is structurally valid for the input wins.
    """

    candidates: tuple[ContractRef, ...]

    @classmethod
    def of(cls, *candidates: ContractRef | type | str) -> OneOf:
        if not candidates:
            raise ContractDefinitionError("one_of requires at least one candidate contract")
        return cls(tuple(as_contract_ref(candidate) for candidate in candidates))

    @property
    def names(self) -> list[str]:
        return [candidate.name for candidate in self.candidates]


def _bind_module(ref: ContractRef, module: str) -> ContractRef:
    if isinstance(ref, DeferredRef) and ref.module is None:
        return replace(ref, module=module)
    return ref


def declared_in(ref: ContractRef | OneOf | None, module: str) -> ContractRef | OneOf | None:
    """Bind unbound deferred references to the module that declares them."""
    if ref is None:
        return None
    if isinstance(ref, OneOf):
        return OneOf(tuple(_bind_module(candidate, module) for candidate in ref.candidates))
    return _bind_module(ref, module)


# ------------------------------------------------------------------------------
# Attribute descriptors
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class AttributeDescriptor:
    name: str
    kind: Kind
    optional: bool = False
    has_default: bool = False
    default: Any = None
    default_factory: Callable[[], Any] | None = None
    description: str | None = None
    element_kind: Kind | None = None
    contract: ContractRef | OneOf | None = None
    permissive: bool = False
    compute: Callable[[Any], Any] | str | None = None

    @property
    def is_computed(self) -> bool:
        return self.kind is Kind.COMPUTED

    @property
    def is_contract(self) -> bool:
        return self.kind is Kind.CONTRACT

    @property
    def is_one_of(self) -> bool:
        return isinstance(self.contract, OneOf)

    @property
    def is_required(self) -> bool:
        return not (self.optional or self.has_default or self.is_computed)

    def default_value(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        return copy.deepcopy(self.default)


class AttributeRegistry:
    """Ordered catalog of the attribute descriptors declared on one contract class."""

    def __init__(self, descriptors: Iterable[AttributeDescriptor] = ()) -> None:
        self._descriptors: dict[str, AttributeDescriptor] = {}
        for descriptor in descriptors:
            self.declare(descriptor)

    def declare(self, descriptor: AttributeDescriptor) -> None:
        # Redeclaring a name replaces the descriptor but keeps its original position.
        self._descriptors[descriptor.name] = descriptor

    def inherit(self) -> AttributeRegistry:
        return AttributeRegistry(copy.deepcopy(d) for d in self._descriptors.values())

    def get(self, name: str) -> AttributeDescriptor | None:
        return self._descriptors.get(name)

    def __getitem__(self, name: str) -> AttributeDescriptor:
        return self._descriptors[name]

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def __iter__(self) -> Iterator[AttributeDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)

    def declared_names(self) -> list[str]:
        return list(self._descriptors)

    def required_names(self) -> list[str]:
        return [d.name for d in self._descriptors.values() if d.is_required]

    def computed_names(self) -> list[str]:
        return [d.name for d in self._descriptors.values() if d.is_computed]

    def stored(self) -> list[AttributeDescriptor]:
        """Descriptors whose values come from input (everything but computed)."""
        return [d for d in self._descriptors.values() if not d.is_computed]

    def __repr__(self) -> str:
        return f"AttributeRegistry({self.declared_names()!r})"
