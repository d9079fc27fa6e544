# contract_engine/contract.py
from __future__ import annotations

import copy
import json
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any, ClassVar

import structlog
from typing_extensions import Self

from contract_engine.adapters.json_schema import open_api_schema
from contract_engine.adapters.params import Params, contract_to_params, params_to_mapping
from contract_engine.coercion import canonical_key, cast_value, coercion_errors, deep_canonical_keys
from contract_engine.config import DEFAULT_CONFIG, ContractConfig
from contract_engine.errors import (
    ContractDefinitionError,
    ContractEngineError,
    FrozenWriteError,
    InvalidContractError,
)
from contract_engine.fields import Field, collect_normalizers
from contract_engine.registry import AttributeDescriptor, AttributeRegistry, ContractRef, as_contract_ref
from contract_engine.resolution import ResolutionCache, UnmatchedOneOf, instantiate_nested
from contract_engine.schema import (
    STRICT_POLICY,
    StructuralPolicy,
    schema_errors,
    schema_validate,
    structural_failure,
)
from contract_engine.serialization import deep_camelize_keys, deep_underscore_keys, to_jsonable
from contract_engine.validation import ContractErrors, ValidationHooks, run_validations

logger = structlog.get_logger(__name__)

# Key under which non-mapping constructor input is kept as an unexpected attribute.
ROOT_KEY = "__root__"

READ_ONLY_MESSAGE = "can't modify read-only contract"


def _normalize_input(data: Any, overrides: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    root: dict[str, Any] = {}
    items: Mapping[Any, Any] = {}
    if data is not None:
        try:
            mapping = params_to_mapping(data)
        except (TypeError, ValueError):
            mapping = None
        if mapping is None:
            root[ROOT_KEY] = data
        else:
            items = mapping
    raw = {canonical_key(key): value for key, value in items.items()}
    raw.update(overrides)
    return raw, root


def _deep_merge(base: Mapping[str, Any], other: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, new_value in other.items():
        old_value = merged.get(key)
        if isinstance(old_value, Mapping) and isinstance(new_value, Mapping):
            merged[key] = _deep_merge(old_value, new_value)
        else:
            merged[key] = new_value
    return merged


def _invalid_contract(contract: Contract, messages: list[str]) -> InvalidContractError:
    logger.debug("contract_validation_failed", contract=type(contract).__qualname__, errors=messages)
    return InvalidContractError(f"Contract validation failed: {', '.join(messages)}", contract=contract)


def _ensure_valid(contract: Contract) -> None:
    errors = contract.errors()
    if errors:
        raise _invalid_contract(contract, errors.full_messages())


class Contract:
    """
    Base class for typed, immutable data-transfer objects.

    Subclasses declare attributes with `attribute()` / `computed()`. Building
    an instance never raises on bad input: shape problems are reported by
    `schema_errors()` / `schema_validate()`, value problems by `errors()` /
    `is_valid()`. Instances are read-only; `clone`, `mutate` and `merge`
    return new instances and `dup` returns a writable copy.
    """

    contract_config: ClassVar[ContractConfig] = DEFAULT_CONFIG

    _attribute_registry: ClassVar[AttributeRegistry] = AttributeRegistry()
    _normalizers: ClassVar[dict[str, Callable[[Any], Any]]] = {}
    _validation_hooks: ClassVar[ValidationHooks] = ValidationHooks()
    _structural_policy: ClassVar[StructuralPolicy] = STRICT_POLICY
    _resolution_cache: ClassVar[ResolutionCache]

    _read_only: bool = False
    _values: dict[str, Any]
    _provided: frozenset[str]
    _unexpected: Mapping[str, Any]
    _raw: Mapping[str, Any]
    _coercion: Mapping[str, tuple[str, ...]]
    _unmatched: Mapping[str, UnmatchedOneOf]

    def __init_subclass__(cls, *, permissive: bool | None = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        namespace = dict(vars(cls))

        config = cls.contract_config
        if isinstance(config, Mapping):
            config = ContractConfig.model_validate(dict(config))
        if permissive is not None:
            config = config.merged(permissive=permissive)
        cls.contract_config = config

        registry = cls._attribute_registry.inherit()
        for name, member in namespace.items():
            if not isinstance(member, Field):
                continue
            if name in _RESERVED_NAMES or name.startswith("_"):
                raise ContractDefinitionError(f"{cls.__qualname__}: {name!r} cannot be used as an attribute name")
            registry.declare(member.build(name, cls.__module__))
        cls._attribute_registry = registry

        normalizers = collect_normalizers(namespace, cls._normalizers)
        for name in normalizers:
            descriptor = registry.get(name)
            if descriptor is None or descriptor.is_computed:
                raise ContractDefinitionError(f"{cls.__qualname__}: cannot normalize undeclared attribute {name!r}")
        cls._normalizers = normalizers

        cls._validation_hooks = cls._validation_hooks.extended_with(namespace)
        cls._structural_policy = StructuralPolicy.for_config(config)
        cls._resolution_cache = ResolutionCache(owner=cls, base=Contract)

    # --------------------------------------------------------------------------
    # Construction
    # --------------------------------------------------------------------------

    def __init__(self, data: Any = None, /, **attributes: Any) -> None:
        cls = type(self)
        registry = cls._attribute_registry
        raw_input, unexpected = _normalize_input(data, attributes)

        known: dict[str, Any] = {}
        for key, value in raw_input.items():
            descriptor = registry.get(key)
            if descriptor is None:
                unexpected[key] = value
            elif descriptor.is_computed:
                continue
            elif value is None and descriptor.has_default:
                continue
            else:
                known[key] = value

        values: dict[str, Any] = {}
        coercion: dict[str, tuple[str, ...]] = {}
        for descriptor in registry.stored():
            name = descriptor.name
            if name in known:
                values[name] = cast_value(descriptor, known[name])
                messages = self._judge_cast(descriptor, known[name], values[name])
                if messages:
                    coercion[name] = messages
            elif descriptor.has_default:
                values[name] = cast_value(descriptor, descriptor.default_value())
            else:
                values[name] = None

        unmatched: dict[str, UnmatchedOneOf] = {}
        for descriptor in registry.stored():
            if not descriptor.is_contract:
                continue
            nested, miss = instantiate_nested(cls._resolution_cache, descriptor, values[descriptor.name])
            values[descriptor.name] = nested
            if miss is not None:
                unmatched[descriptor.name] = miss

        for descriptor in registry.stored():
            normalizer = cls._normalizers.get(descriptor.name)
            if normalizer is not None and values[descriptor.name] is not None:
                values[descriptor.name] = normalizer(values[descriptor.name])

        self._set_state(
            values=values,
            provided=frozenset(known),
            unexpected=unexpected,
            raw=known,
            coercion=coercion,
            unmatched=unmatched,
            read_only=True,
        )

    def _set_state(
        self,
        *,
        values: dict[str, Any],
        provided: frozenset[str],
        unexpected: dict[str, Any],
        raw: dict[str, Any],
        coercion: dict[str, tuple[str, ...]],
        unmatched: dict[str, UnmatchedOneOf],
        read_only: bool,
    ) -> None:
        object.__setattr__(self, "_values", values)
        object.__setattr__(self, "_provided", provided)
        object.__setattr__(self, "_unexpected", MappingProxyType(unexpected))
        object.__setattr__(self, "_raw", MappingProxyType(raw))
        object.__setattr__(self, "_coercion", MappingProxyType(coercion))
        object.__setattr__(self, "_unmatched", MappingProxyType(unmatched))
        object.__setattr__(self, "_read_only", read_only)

    def _judge_cast(self, descriptor: AttributeDescriptor, raw: Any, cast: Any) -> tuple[str, ...]:
        messages = coercion_errors(descriptor, raw, cast)
        if descriptor.is_contract and raw is not None and not isinstance(raw, (Mapping, Contract)):
            messages.append(f"is not a valid contract: {raw!r}")
        return tuple(messages)

    # --------------------------------------------------------------------------
    # Class-level metadata
    # --------------------------------------------------------------------------

    @classmethod
    def attribute_registry(cls) -> AttributeRegistry:
        return cls._attribute_registry

    @classmethod
    def validation_hooks(cls) -> ValidationHooks:
        return cls._validation_hooks

    @classmethod
    def required_attribute_names(cls) -> list[str]:
        return cls._attribute_registry.required_names()

    @classmethod
    def declared_attribute_names(cls) -> list[str]:
        return cls._attribute_registry.declared_names()

    @classmethod
    def computed_attribute_names(cls) -> list[str]:
        return cls._attribute_registry.computed_names()

    @classmethod
    def resolve_contract(cls, reference: ContractRef | type | str) -> type[Contract]:
        return cls._resolution_cache.resolve(as_contract_ref(reference))

    @classmethod
    def open_api_schema(cls) -> dict[str, Any]:
        return open_api_schema(cls)

    # --------------------------------------------------------------------------
    # Attribute access
    # --------------------------------------------------------------------------

    def _read_attribute(self, name: str) -> Any:
        descriptor = type(self)._attribute_registry[name]
        if descriptor.is_computed:
            return self._evaluate_computed(descriptor)
        return self._values[name]

    def _evaluate_computed(self, descriptor: AttributeDescriptor) -> Any:
        compute = descriptor.compute
        if isinstance(compute, str):
            return getattr(self, compute)()
        if compute is None:
            return None
        return compute(self)

    def __setattr__(self, name: str, value: Any) -> None:
        if self._read_only:
            raise FrozenWriteError(READ_ONLY_MESSAGE)
        descriptor = type(self)._attribute_registry.get(name)
        if descriptor is None or descriptor.is_computed:
            raise AttributeError(f"{type(self).__name__!r} object has no writable attribute {name!r}")
        self._write_attribute(descriptor, value)

    def __delattr__(self, name: str) -> None:
        if self._read_only:
            raise FrozenWriteError(READ_ONLY_MESSAGE)
        raise AttributeError(f"cannot delete attribute {name!r} of {type(self).__name__!r}")

    def _write_attribute(self, descriptor: AttributeDescriptor, raw: Any) -> None:
        name = descriptor.name
        cast = cast_value(descriptor, raw)
        messages = self._judge_cast(descriptor, raw, cast)
        miss = None
        if descriptor.is_contract:
            cast, miss = instantiate_nested(type(self)._resolution_cache, descriptor, cast)
        normalizer = type(self)._normalizers.get(name)
        if normalizer is not None and cast is not None:
            cast = normalizer(cast)

        self._values[name] = cast
        coercion = {k: v for k, v in self._coercion.items() if k != name}
        if messages:
            coercion[name] = messages
        unmatched = {k: v for k, v in self._unmatched.items() if k != name}
        if miss is not None:
            unmatched[name] = miss
        self._set_state(
            values=self._values,
            provided=self._provided | {name},
            unexpected=dict(self._unexpected),
            raw={**self._raw, name: raw},
            coercion=coercion,
            unmatched=unmatched,
            read_only=False,
        )

    # --------------------------------------------------------------------------
    # Introspection
    # --------------------------------------------------------------------------

    @property
    def read_only(self) -> bool:
        return self._read_only

    @property
    def provided_keys(self) -> frozenset[str]:
        return self._provided

    def is_provided(self, name: str) -> bool:
        return canonical_key(name) in self._provided

    @property
    def unexpected_attributes(self) -> Mapping[str, Any]:
        return self._unexpected

    @property
    def permissive_attributes(self) -> Mapping[str, Any]:
        return self._unexpected

    @property
    def raw_attributes(self) -> Mapping[str, Any]:
        return self._raw

    @property
    def unmatched_one_of(self) -> Mapping[str, UnmatchedOneOf]:
        return self._unmatched

    def coercion_messages(self) -> dict[str, tuple[str, ...]]:
        return dict(self._coercion)

    def has_key(self, key: Any) -> bool:
        key = canonical_key(key)
        return key in type(self)._attribute_registry or key in self._unexpected

    def is_declared_attribute(self, key: Any) -> bool:
        return canonical_key(key) in type(self)._attribute_registry

    def nested_contracts(self) -> list[tuple[str, Contract]]:
        return [
            (descriptor.name, self._values[descriptor.name])
            for descriptor in type(self)._attribute_registry.stored()
            if descriptor.is_contract and isinstance(self._values[descriptor.name], Contract)
        ]

    # --------------------------------------------------------------------------
    # Structural validation
    # --------------------------------------------------------------------------

    def schema_errors(self) -> dict[str, list[str]]:
        return schema_errors(self, type(self)._structural_policy)

    def is_schema_valid(self) -> bool:
        return not self.schema_errors()

    def structural_failure(self) -> ContractEngineError | None:
        return structural_failure(self, type(self)._structural_policy)

    def schema_validate(self) -> None:
        schema_validate(self, type(self)._structural_policy)

    # --------------------------------------------------------------------------
    # Value validation
    # --------------------------------------------------------------------------

    def errors(self) -> ContractErrors:
        return run_validations(self)

    def is_valid(self) -> bool:
        return not self.errors()

    # --------------------------------------------------------------------------
    # Canonical representation
    # --------------------------------------------------------------------------

    def attribute_names(self) -> list[str]:
        return [d.name for d in type(self)._attribute_registry.stored()]

    def values(self) -> list[Any]:
        return [self._values[name] for name in self.attribute_names()]

    def to_dict(self) -> dict[str, Any]:
        cls = type(self)
        omit_none = cls.contract_config.omit_none_optionals
        out: dict[str, Any] = {}
        for descriptor in cls._attribute_registry:
            if descriptor.is_computed:
                continue
            value = self._values[descriptor.name]
            if omit_none and descriptor.optional and value is None:
                continue
            out[descriptor.name] = value.to_dict() if isinstance(value, Contract) else value
        for descriptor in cls._attribute_registry:
            if descriptor.is_computed:
                out[descriptor.name] = self._evaluate_computed(descriptor)
        return out

    def dig(self, *path: Any) -> Any:
        current: Any = self.to_dict()
        for key in path:
            if isinstance(current, Mapping):
                current = current[key] if key in current else current.get(canonical_key(key))
            elif isinstance(current, (list, tuple)) and isinstance(key, int):
                current = current[key] if -len(current) <= key < len(current) else None
            else:
                return None
            if current is None:
                return None
        return current

    def with_passthrough_attributes(self) -> PassthroughView:
        return PassthroughView(self)

    # --------------------------------------------------------------------------
    # Serialization
    # --------------------------------------------------------------------------

    def _ensure_serializable(self) -> None:
        schema = self.schema_errors()
        if schema:
            raise _invalid_contract(
                self, [f"{name} {message}" for name, messages in schema.items() for message in messages]
            )
        _ensure_valid(self)

    def as_json(self, *, permissive: bool = False) -> dict[str, Any]:
        self._ensure_serializable()
        payload: dict[str, Any] = to_jsonable(self.to_dict())
        if permissive:
            payload.update(to_jsonable(dict(self._unexpected)))
        return payload

    def to_json(self, **dumps_kwargs: Any) -> str:
        return json.dumps(self.as_json(), **dumps_kwargs)

    def as_camelcase_json(self) -> dict[str, Any]:
        self._ensure_serializable()
        return deep_camelize_keys(to_jsonable(self.to_dict()))

    def to_params(self) -> Params:
        return contract_to_params(self)

    @classmethod
    def from_params(cls, params: Any) -> Self:
        instance = cls(params)
        instance.schema_validate()
        _ensure_valid(instance)
        return instance

    @classmethod
    def from_json(cls, text: str | bytes) -> Self:
        return cls.from_params(json.loads(text))

    @classmethod
    def from_camelized_json(cls, text: str | bytes) -> Self:
        return cls.from_params(deep_underscore_keys(json.loads(text)))

    # --------------------------------------------------------------------------
    # Mutation
    # --------------------------------------------------------------------------

    def clone(self, **changes: Any) -> Self:
        instance = type(self)({**self.to_dict(), **changes})
        instance.schema_validate()
        return instance

    def mutate(self, **changes: Any) -> Self:
        if not changes:
            raise ValueError("must provide at least one attribute to change")
        return self.clone(**changes)

    def dup(self) -> Self:
        duplicate = object.__new__(type(self))
        duplicate._set_state(
            values=copy.deepcopy(self._values),
            provided=self._provided,
            unexpected=dict(self._unexpected),
            raw=dict(self._raw),
            coercion=dict(self._coercion),
            unmatched=dict(self._unmatched),
            read_only=False,
        )
        return duplicate

    def merge(self, other: Contract | Mapping[Any, Any], *, strict: bool = True, validate: bool = True) -> Self:
        if isinstance(other, Contract):
            other_map = other.to_dict()
        elif isinstance(other, Mapping):
            other_map = deep_canonical_keys(other)
        else:
            raise TypeError(f"cannot merge {type(other).__name__!r} into {type(self).__name__!r}")

        instance = type(self)(_deep_merge(self.to_dict(), other_map))
        if strict:
            instance.schema_validate()
        if validate:
            _ensure_valid(instance)
        return instance

    def __copy__(self) -> Self:
        return self if self._read_only else self.dup()

    def __deepcopy__(self, memo: dict[int, Any]) -> Self:
        return self if self._read_only else self.dup()

    # --------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Contract) or type(other) is not type(self):
            return NotImplemented
        return self._values == other._values and self._unexpected == other._unexpected

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        fields = ", ".join(f"{name}={value!r}" for name, value in self._values.items())
        return f"{type(self).__name__}({fields})"


class PassthroughView:
    """Declared attributes plus the undeclared ones a permissive contract kept."""

    def __init__(self, contract: Contract) -> None:
        self._contract = contract

    def to_dict(self) -> dict[str, Any]:
        return {**self._contract.to_dict(), **self._contract.permissive_attributes}


_RESERVED_NAMES = frozenset(name for name in dir(Contract) if not name.startswith("_"))

Contract._resolution_cache = ResolutionCache(owner=Contract, base=Contract)

__all__ = ["Contract", "PassthroughView", "ROOT_KEY"]
