# contract_engine/adapters/params.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from contract_engine.coercion import canonical_key

if TYPE_CHECKING:
    from contract_engine.contract import Contract


@dataclass(frozen=True)
class Params:
    """
    Host-side parameter payload rendered from a contract. `permitted` is set
    when the contract was structurally valid, so the host may pass `data` on
    without filtering it again.
    """

    data: dict[str, Any] = field(default_factory=dict)
    permitted: bool = False

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        return _convert(self.data)


def params_to_mapping(params: Any) -> Mapping[Any, Any] | None:
    """
    Plain mapping view of a host parameter object: mappings as-is, objects
    exposing `to_unsafe_dict()`, `model_dump()` or `to_dict()` (request
    params, pydantic models, contracts), then anything with `items()`.
    None when nothing fits.
    """
    if isinstance(params, Mapping):
        return params
    if isinstance(params, (str, bytes, type)):
        return None
    for method_name in ("to_unsafe_dict", "model_dump", "to_dict"):
        method = getattr(params, method_name, None)
        if callable(method):
            result = method()
            if isinstance(result, Mapping):
                return result
    items = getattr(params, "items", None)
    if callable(items):
        return dict(items())
    return None


def _convert(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {canonical_key(key): _convert(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_convert(item) for item in value]
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return _convert(to_dict())
    return value


def contract_to_params(contract: Contract) -> Params:
    return Params(data=_convert(contract.to_dict()), permitted=contract.is_schema_valid())
