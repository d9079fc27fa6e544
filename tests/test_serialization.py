from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal

import pytest

from contract_engine import Contract, InvalidContractError, MissingAttributeError, attribute
from contract_engine.serialization import camelize_key, deep_camelize_keys, underscore_key


class LineItem(Contract):
    sku_code = attribute(str)
    unit_price = attribute(Decimal)


class PurchaseOrder(Contract):
    order_number = attribute(str)
    placed_at = attribute(datetime)
    due_on = attribute(date, optional=True)
    line_item = attribute(contract=LineItem)
    extra_data = attribute(dict, optional=True)


ORDER = {
    "order_number": "PO-1",
    "placed_at": "2024-05-01T09:30:00",
    "line_item": {"sku_code": "A-1", "unit_price": "19.99"},
}


def test_as_json_renders_json_ready_values() -> None:
    payload = PurchaseOrder(ORDER).as_json()

    assert payload == {
        "order_number": "PO-1",
        "placed_at": "2024-05-01T09:30:00",
        "line_item": {"sku_code": "A-1", "unit_price": "19.99"},
    }
    json.dumps(payload)


def test_to_json_produces_a_json_string() -> None:
    text = PurchaseOrder(ORDER).to_json(sort_keys=True)

    assert json.loads(text)["line_item"]["sku_code"] == "A-1"


def test_camelcase_json_converts_nested_keys() -> None:
    order = PurchaseOrder({**ORDER, "extra_data": {"gift_wrap": True}})

    assert order.as_camelcase_json() == {
        "orderNumber": "PO-1",
        "placedAt": "2024-05-01T09:30:00",
        "lineItem": {"skuCode": "A-1", "unitPrice": "19.99"},
        "extraData": {"giftWrap": True},
    }


def test_from_camelized_json_round_trips() -> None:
    order = PurchaseOrder(ORDER)
    restored = PurchaseOrder.from_camelized_json(json.dumps(order.as_camelcase_json()))

    assert restored == order
    assert restored.line_item.unit_price == Decimal("19.99")


def test_from_json_validates_structure_and_values() -> None:
    assert PurchaseOrder.from_json(json.dumps(ORDER)).order_number == "PO-1"

    with pytest.raises(MissingAttributeError):
        PurchaseOrder.from_json(json.dumps({"order_number": "PO-1"}))

    broken = {**ORDER, "placed_at": "yesterday"}
    with pytest.raises(InvalidContractError, match="placed_at is not a valid datetime"):
        PurchaseOrder.from_json(json.dumps(broken))


def test_from_json_rejects_malformed_text() -> None:
    with pytest.raises(json.JSONDecodeError):
        PurchaseOrder.from_json("{not json")


def test_from_params_accepts_plain_mappings() -> None:
    order = PurchaseOrder.from_params(ORDER)

    assert order.placed_at == datetime(2024, 5, 1, 9, 30)
    assert order.due_on is None


def test_key_case_helpers() -> None:
    assert camelize_key("home_address_line_1") == "homeAddressLine1"
    assert underscore_key("homeAddress") == "home_address"
    assert underscore_key("HTTPStatusCode") == "http_status_code"
    assert deep_camelize_keys([{"a_b": [{"c_d": 1}]}]) == [{"aB": [{"cD": 1}]}]
