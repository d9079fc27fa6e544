# contract_engine/config.py
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

_IMMUTABLE_CONFIG = ConfigDict(
    extra="forbid",
    frozen=True,
)


class ContractConfig(BaseModel):
    """
    Per-class behaviour switches, declared as `contract_config = ContractConfig(...)`
    on a contract class and inherited by its subclasses.
    """

    model_config = _IMMUTABLE_CONFIG

    # Accept and round-trip undeclared keys instead of reporting them as unexpected.
    permissive: bool = False
    error_key_separator: str = Field(default=".", min_length=1)
    omit_none_optionals: bool = True

    def merged(self, **overrides: object) -> ContractConfig:
        if not overrides:
            return self
        return self.model_validate({**self.model_dump(), **overrides})


DEFAULT_CONFIG = ContractConfig()
