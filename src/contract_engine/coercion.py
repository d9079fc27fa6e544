# contract_engine/coercion.py
"""
Casting of raw input into typed attribute values.

Casts never raise. Where input cannot be parsed the caster substitutes the
kind's fallback (zero, False or None), the way naive form-parameter casters
do; `coercion_errors` then compares the raw text with the cast result and
reports every such substitution so it surfaces as a value error instead of
passing silently as valid data.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import TypeAdapter, ValidationError

from contract_engine.registry import (
    NUMERIC_KINDS,
    PASSTHROUGH_KINDS,
    TEMPORAL_KINDS,
    AttributeDescriptor,
    Kind,
)

_ADAPTERS: dict[Kind, TypeAdapter[Any]] = {
    Kind.INTEGER: TypeAdapter(int),
    Kind.BIG_INTEGER: TypeAdapter(int),
    Kind.FLOAT: TypeAdapter(float),
    Kind.DECIMAL: TypeAdapter(Decimal),
    Kind.BOOLEAN: TypeAdapter(bool),
    Kind.DATE: TypeAdapter(date),
    Kind.DATETIME: TypeAdapter(datetime),
    Kind.TIME: TypeAdapter(time),
}

_ZERO_VALUES: dict[Kind, Any] = {
    Kind.INTEGER: 0,
    Kind.BIG_INTEGER: 0,
    Kind.FLOAT: 0.0,
    Kind.DECIMAL: Decimal("0"),
}

_BUILTIN_CASTERS: dict[Kind, Any] = {
    Kind.INTEGER: int,
    Kind.BIG_INTEGER: int,
    Kind.FLOAT: float,
    Kind.DECIMAL: Decimal,
}

# Compared case-insensitively.
BOOLEAN_TOKENS = frozenset({"true", "false", "1", "0", "t", "f", "yes", "no", "y", "n"})

_ZERO_TEXT = re.compile(r"\s*[+-]?0+(?:\.0*)?\s*")


# ------------------------------------------------------------------------------
# Key normalization
# ------------------------------------------------------------------------------


def canonical_key(key: Any) -> str:
    if isinstance(key, Enum):
        key = key.value
    return key if type(key) is str else str(key)


def deep_canonical_keys(mapping: Mapping[Any, Any]) -> dict[str, Any]:
    return {
        canonical_key(key): deep_canonical_keys(value) if isinstance(value, Mapping) else value
        for key, value in mapping.items()
    }


# ------------------------------------------------------------------------------
# Casting
# ------------------------------------------------------------------------------


def _fallback(kind: Kind, raw: Any) -> Any:
    text = isinstance(raw, str)
    if kind in NUMERIC_KINDS:
        if text:
            return _ZERO_VALUES[kind]
        try:
            return _BUILTIN_CASTERS[kind](raw)
        except (TypeError, ValueError, ArithmeticError):
            return None
    if kind is Kind.BOOLEAN:
        return False if text else bool(raw)
    return None


def cast_scalar(kind: Kind, raw: Any) -> Any:
    if raw is None or kind is Kind.VALUE:
        return raw
    if kind is Kind.STRING:
        return raw if isinstance(raw, str) else str(raw)

    adapter = _ADAPTERS.get(kind)
    if adapter is None:
        return raw

    if isinstance(raw, str):
        raw_text = raw.strip()
        if not raw_text:
            return None
        candidate: Any = raw_text
    else:
        candidate = raw

    try:
        return adapter.validate_python(candidate)
    except ValidationError:
        return _fallback(kind, raw)


def cast_value(descriptor: AttributeDescriptor, raw: Any) -> Any:
    """Cast one raw attribute value according to its descriptor."""
    if raw is None:
        return None

    kind = descriptor.kind
    if kind is Kind.ARRAY:
        if not isinstance(raw, (list, tuple)):
            return raw
        element_kind = descriptor.element_kind or Kind.VALUE
        return [cast_scalar(element_kind, element) for element in raw]
    if kind is Kind.PERMISSIVE_ARRAY:
        if isinstance(raw, list):
            return raw
        return list(raw) if isinstance(raw, tuple) else [raw]
    if kind is Kind.PERMISSIVE_HASH:
        return deep_canonical_keys(raw) if isinstance(raw, Mapping) else raw
    if kind in (Kind.CONTRACT, Kind.COMPUTED):
        return raw
    return cast_scalar(kind, raw)


# ------------------------------------------------------------------------------
# Fallback detection
# ------------------------------------------------------------------------------


def is_genuine_cast(raw: Any, cast: Any, kind: Kind) -> bool:
    """
    Whether casting `raw` to `cast` was a real coercion rather than a silent
    fallback. Only text input can fall back; anything else is accepted.
    """
    if not isinstance(raw, str) or kind in PASSTHROUGH_KINDS:
        return True

    if kind in NUMERIC_KINDS:
        if cast is None or isinstance(cast, bool) or cast != 0:
            return True
        return _ZERO_TEXT.fullmatch(raw) is not None

    if kind is Kind.BOOLEAN:
        return raw.lower() in BOOLEAN_TOKENS

    if kind in TEMPORAL_KINDS:
        return cast is not None or not raw.strip()

    return True


def coercion_errors(descriptor: AttributeDescriptor, raw: Any, cast: Any) -> list[str]:
    """Messages for every fallback cast of one provided attribute."""
    kind = descriptor.kind

    if kind in (Kind.ARRAY, Kind.PERMISSIVE_ARRAY):
        if raw is None and descriptor.optional:
            return []
        if not isinstance(raw, (list, tuple)):
            return [f"is not a valid array: {raw!r}"]
        if kind is Kind.PERMISSIVE_ARRAY or descriptor.element_kind is None:
            return []
        if not isinstance(cast, list):
            return []
        element_kind = descriptor.element_kind
        return [
            f"element at index {index} is not a valid {element_kind}: {raw_element!r}"
            for index, (raw_element, cast_element) in enumerate(zip(raw, cast))
            if not is_genuine_cast(raw_element, cast_element, element_kind)
        ]

    if kind is Kind.PERMISSIVE_HASH:
        if (raw is None and descriptor.optional) or isinstance(raw, Mapping):
            return []
        return [f"is not a valid permissive_hash: {raw!r}"]

    if kind in (Kind.CONTRACT, Kind.COMPUTED):
        return []

    if is_genuine_cast(raw, cast, kind):
        return []
    return [f"is not a valid {kind}: {raw!r}"]
