# contract_engine/resolution.py
from __future__ import annotations

import importlib
import sys
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Union

import structlog

from contract_engine.coercion import canonical_key
from contract_engine.errors import ContractEngineError, ContractResolutionError
from contract_engine.registry import AttributeDescriptor, ContractRef, DirectRef, OneOf

if TYPE_CHECKING:
    from contract_engine.contract import Contract

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class UnmatchedOneOf:
    """A one-of attribute whose input matched none of the candidates."""

    attribute: str
    candidates: tuple[str, ...]
    keys: tuple[str, ...]


# ------------------------------------------------------------------------------
# Deferred reference resolution
# ------------------------------------------------------------------------------


class ResolutionCache:
    """
    Per-class memo of deferred contract names. A name is looked up in the
    module that declared the attribute (the owner's module when unbound), so
    inherited attributes resolve where they were written. Lookups are pure, so
    concurrent callers that race on one name converge on the same class;
    entries are never invalidated.
    """

    def __init__(self, owner: type, base: type) -> None:
        self._owner = owner
        self._base = base
        self._resolved: dict[tuple[str, str], type] = {}
        self._lock = threading.RLock()

    def resolve(self, ref: ContractRef) -> type[Contract]:
        if isinstance(ref, DirectRef):
            return ref.contract_type

        module = ref.module or self._owner.__module__
        with self._lock:
            resolved = self._resolved.get((module, ref.name))
            if resolved is None:
                resolved = self._lookup(ref.name, module)
                self._resolved[(module, ref.name)] = resolved
                logger.debug(
                    "contract_reference_resolved",
                    owner=self._owner.__qualname__,
                    name=ref.name,
                    module=module,
                    resolved=f"{resolved.__module__}.{resolved.__qualname__}",
                )
            return resolved

    def cached_names(self) -> list[str]:
        with self._lock:
            return list(dict.fromkeys(name for _, name in self._resolved))

    def _lookup(self, name: str, module: str) -> type:
        candidate = self._from_module(name, module)
        if candidate is None:
            candidate = self._from_import_path(name)
        if candidate is None:
            candidate = self._from_subclasses(name)
        if candidate is None:
            raise ContractResolutionError(
                f"cannot resolve contract {name!r} referenced from {self._owner.__qualname__}"
            )
        if not (isinstance(candidate, type) and issubclass(candidate, self._base)):
            raise ContractResolutionError(f"{name!r} does not name a contract class: {candidate!r}")
        return candidate

    def _from_module(self, name: str, module: str) -> Any:
        target: Any = sys.modules.get(module)
        for part in name.split("."):
            if target is None:
                return None
            target = getattr(target, part, None)
        return target

    def _from_import_path(self, name: str) -> Any:
        module_name, _, attr = name.rpartition(".")
        if not module_name:
            return None
        try:
            module = importlib.import_module(module_name)
        except ImportError:
            return None
        return getattr(module, attr, None)

    def _from_subclasses(self, name: str) -> type | None:
        matches: list[type] = []
        pending = list(self._base.__subclasses__())
        while pending:
            cls = pending.pop()
            if cls.__qualname__ == name or cls.__name__ == name:
                matches.append(cls)
            pending.extend(cls.__subclasses__())

        unique = list(dict.fromkeys(matches))
        if len(unique) > 1:
            found = ", ".join(sorted(f"{c.__module__}.{c.__qualname__}" for c in unique))
            raise ContractResolutionError(f"contract name {name!r} is ambiguous: {found}")
        return unique[0] if unique else None


# ------------------------------------------------------------------------------
# One-of probing
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class Match:
    instance: Contract


@dataclass(frozen=True)
class NoMatch:
    contract_type: type
    failure: ContractEngineError


ProbeResult = Union[Match, NoMatch]


def try_construct(contract_type: type[Contract], data: Mapping[str, Any]) -> ProbeResult:
    instance = contract_type(data)
    failure = instance.structural_failure()
    if failure is None:
        return Match(instance)
    return NoMatch(contract_type, failure)


def resolve_one_of(cache: ResolutionCache, one_of: OneOf, data: Mapping[str, Any]) -> Optional[Contract]:
    """First candidate, in declaration order, that is structurally valid for `data`."""
    for ref in one_of.candidates:
        result = try_construct(cache.resolve(ref), data)
        if isinstance(result, Match):
            return result.instance
        logger.debug(
            "one_of_candidate_rejected",
            candidate=result.contract_type.__qualname__,
            reason=str(result.failure),
        )
    return None


def instantiate_nested(
    cache: ResolutionCache,
    descriptor: AttributeDescriptor,
    value: Any,
) -> tuple[Any, Optional[UnmatchedOneOf]]:
    """
    Replace a mapping value on a contract attribute with the nested contract
    it describes. Values that are not mappings are returned unchanged.
    """
    if not isinstance(value, Mapping) or descriptor.contract is None:
        return value, None

    ref = descriptor.contract
    if not isinstance(ref, OneOf):
        return cache.resolve(ref)(value), None

    matched = resolve_one_of(cache, ref, value)
    if matched is not None:
        return matched, None

    fallback = dict(value)
    if descriptor.permissive:
        return fallback, None

    logger.info("one_of_unmatched", attribute=descriptor.name, candidates=ref.names)
    unmatched = UnmatchedOneOf(
        attribute=descriptor.name,
        candidates=tuple(ref.names),
        keys=tuple(canonical_key(key) for key in value),
    )
    return fallback, unmatched
