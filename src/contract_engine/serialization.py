# contract_engine/serialization.py
from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic_core import to_jsonable_python

from contract_engine.coercion import canonical_key

_CAMEL_BOUNDARY = re.compile(r"_([a-z\d])")
_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")


def camelize_key(key: Any) -> str:
    return _CAMEL_BOUNDARY.sub(lambda m: m.group(1).upper(), canonical_key(key))


def underscore_key(key: Any) -> str:
    text = _ACRONYM_BOUNDARY.sub(r"\1_\2", canonical_key(key))
    return _WORD_BOUNDARY.sub(r"\1_\2", text).lower()


def _transform_keys(obj: Any, convert: Any) -> Any:
    if isinstance(obj, Mapping):
        return {convert(key): _transform_keys(value, convert) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_transform_keys(item, convert) for item in obj]
    return obj


def deep_camelize_keys(obj: Any) -> Any:
    return _transform_keys(obj, camelize_key)


def deep_underscore_keys(obj: Any) -> Any:
    return _transform_keys(obj, underscore_key)


def deep_stringify_keys(obj: Any) -> Any:
    return _transform_keys(obj, canonical_key)


def _jsonable_fallback(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_jsonable(obj: Any) -> Any:
    """
    JSON-ready rendering: dates and times become ISO strings, decimals become
    strings, mapping keys become strings.
    """
    return to_jsonable_python(deep_stringify_keys(obj), fallback=_jsonable_fallback)
