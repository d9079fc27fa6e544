from __future__ import annotations

from collections.abc import Callable
from datetime import date
from types import SimpleNamespace
from typing import Any

from pydantic import BaseModel

from contract_engine import ROOT_KEY, Contract, attribute


class Shipment(Contract):
    reference = attribute(str)
    weight = attribute(float)
    fragile = attribute(bool, default=False)
    shipped_on = attribute(date, optional=True)
    labels = attribute(array=str, default_factory=list)


class ShipmentForm(BaseModel):
    reference: str
    weight: str


def test_construction_casts_declared_attributes() -> None:
    shipment = Shipment({"reference": "SH-1", "weight": "2.5", "fragile": "yes", "shipped_on": "2024-03-01"})

    assert shipment.reference == "SH-1"
    assert shipment.weight == 2.5
    assert shipment.fragile is True
    assert shipment.shipped_on == date(2024, 3, 1)
    assert shipment.labels == []
    assert shipment.is_valid()
    assert shipment.is_schema_valid()


def test_keyword_arguments_override_mapping_input() -> None:
    shipment = Shipment({"reference": "SH-1", "weight": 1}, weight="4")

    assert shipment.weight == 4.0
    assert shipment.provided_keys == frozenset({"reference", "weight"})


def test_non_string_keys_are_canonicalized() -> None:
    class Keyed(Contract):
        code = attribute(str)

    keyed = Keyed({"code": "a", 1: "b"})

    assert keyed.code == "a"
    assert dict(keyed.unexpected_attributes) == {"1": "b"}


class BrokenItems:
    def items(self) -> int:
        return 5


class FailingExport:
    def to_dict(self) -> dict[str, Any]:
        raise ValueError("export failed")


def test_construction_never_raises_on_bad_input() -> None:
    for payload in (None, [], "text", 42, {"weight": object()}, {"extra": 1}):
        shipment = Shipment(payload)
        assert isinstance(shipment, Shipment)


def test_classes_and_broken_host_objects_are_kept_under_root_key() -> None:
    malformed_items = SimpleNamespace(items=lambda: [("a",)])
    for payload in (ShipmentForm, Shipment, BrokenItems(), FailingExport(), malformed_items):
        shipment = Shipment(payload)

        assert dict(shipment.unexpected_attributes) == {ROOT_KEY: payload}
        assert not shipment.is_schema_valid()


def test_non_mapping_input_is_kept_under_root_key() -> None:
    shipment = Shipment(["not", "a", "mapping"])

    assert dict(shipment.unexpected_attributes) == {ROOT_KEY: ["not", "a", "mapping"]}
    assert shipment.schema_errors()[ROOT_KEY] == ["is unexpected"]


def test_none_for_defaulted_attribute_applies_default_and_is_not_provided() -> None:
    shipment = Shipment({"reference": "SH-1", "weight": 1, "fragile": None})

    assert shipment.fragile is False
    assert not shipment.is_provided("fragile")
    assert "fragile" not in shipment.raw_attributes


def test_raw_attributes_snapshot_pre_cast_values() -> None:
    shipment = Shipment({"reference": "SH-1", "weight": "3"})

    assert shipment.raw_attributes["weight"] == "3"
    assert shipment.weight == 3.0


def test_provided_and_unexpected_sets_do_not_overlap_declared() -> None:
    shipment = Shipment({"reference": "SH-1", "weight": 1, "colour": "red"})
    declared = set(Shipment.declared_attribute_names())

    assert shipment.provided_keys <= declared
    assert not declared & set(shipment.unexpected_attributes)


def test_absent_attributes_are_none() -> None:
    shipment = Shipment({})

    assert shipment.reference is None
    assert shipment.shipped_on is None


def test_coercion_fallback_is_a_value_error_not_a_schema_error() -> None:
    shipment = Shipment({"reference": "SH-1", "weight": "heavy"})

    assert shipment.weight == 0.0
    assert shipment.is_schema_valid()
    assert not shipment.is_valid()
    assert shipment.errors().messages_for("weight") == ["is not a valid float: 'heavy'"]


def test_defaults_are_not_shared_between_instances() -> None:
    first = Shipment({"reference": "a", "weight": 1})
    second = Shipment({"reference": "b", "weight": 1})

    assert first.labels is not second.labels


def test_pydantic_models_and_objects_with_items_are_accepted() -> None:
    from_model = Shipment(ShipmentForm(reference="SH-2", weight="1.5"))
    from_items = Shipment(SimpleNamespace(items=lambda: [("reference", "SH-3"), ("weight", 2)]))

    assert from_model.weight == 1.5
    assert from_items.reference == "SH-3"


def test_contract_instances_can_seed_new_contracts(
    make_customer: Callable[..., Contract], customer_type: type[Contract]
) -> None:
    customer = make_customer()
    copied = customer_type(customer)

    assert copied == customer
    assert copied.address is not None
    assert copied.address.city == "London"


def test_canonical_map_and_dig(make_customer: Callable[..., Any]) -> None:
    customer = make_customer()

    assert customer.to_dict() == {
        "name": "Ada",
        "age": 36,
        "tier": "standard",
        "address": {"street": "1 Analytical Way", "city": "London"},
    }
    assert customer.attribute_names() == ["name", "age", "joined_on", "tier", "address"]
    assert customer.values()[:2] == ["Ada", 36]
    assert customer.dig("address", "city") == "London"
    assert customer.dig("address", "missing", "deeper") is None
    assert customer.dig("name", "first") is None


def test_dig_indexes_into_lists() -> None:
    shipment = Shipment({"reference": "SH-1", "weight": 1, "labels": ["a", "b"]})

    assert shipment.dig("labels", 1) == "b"
    assert shipment.dig("labels", 5) is None


def test_equality_compares_values_and_unexpected_attributes() -> None:
    assert Shipment({"reference": "a", "weight": 1}) == Shipment({"reference": "a", "weight": "1"})
    assert Shipment({"reference": "a", "weight": 1}) != Shipment({"reference": "a", "weight": 1, "x": 1})
    assert "Shipment(reference='a'" in repr(Shipment({"reference": "a", "weight": 1}))


def test_equality_with_other_types_is_false() -> None:
    class ExpressShipment(Shipment):
        pass

    shipment = Shipment({"reference": "a", "weight": 1})

    assert shipment != {"reference": "a", "weight": 1.0}
    assert shipment != ExpressShipment({"reference": "a", "weight": 1})
    assert shipment.__eq__(object()) is NotImplemented
