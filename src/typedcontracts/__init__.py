"""
typedcontracts distribution import namespace.

Re-exports the core `contract_engine` package so applications can import
everything from the distribution name.
"""

from importlib.metadata import PackageNotFoundError, version

# src/typedcontracts/__init__.py
from contract_engine import *  # noqa: F401,F403
from contract_engine import __all__ as _engine_all

try:
    __version__ = version("typedcontracts")
except PackageNotFoundError:  # pragma: no cover - source checkout without install metadata
    __version__ = "0+unknown"

__all__ = [*_engine_all, "__version__"]
