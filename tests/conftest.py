from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import date
from typing import Any, TypedDict

import pytest
from structlog.testing import capture_logs
from typing_extensions import Unpack

from contract_engine import Contract, attribute


class PostalAddress(Contract):
    street = attribute(str)
    city = attribute(str)
    postcode = attribute(str, optional=True)


class Customer(Contract):
    name = attribute(str)
    age = attribute(int)
    joined_on = attribute(date, optional=True)
    tier = attribute(str, default="standard")
    address = attribute(contract=PostalAddress, optional=True)


class _CustomerKwargs(TypedDict, total=False):
    name: Any
    age: Any
    joined_on: Any
    tier: Any
    address: Any


@pytest.fixture
def customer_type() -> type[Customer]:
    return Customer


@pytest.fixture
def address_type() -> type[PostalAddress]:
    return PostalAddress


@pytest.fixture
def make_customer() -> Callable[..., Customer]:
    def _make_customer(**overrides: Unpack[_CustomerKwargs]) -> Customer:
        data: dict[str, Any] = {
            "name": "Ada",
            "age": "36",
            "address": {"street": "1 Analytical Way", "city": "London"},
        }
        data.update(overrides)
        return Customer(data)

    return _make_customer


@pytest.fixture
def log_events() -> Iterator[list[dict[str, Any]]]:
    with capture_logs() as events:
        yield events
