from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from contract_engine import (
    AttributeRegistry,
    Contract,
    ContractDefinitionError,
    DeferredRef,
    DirectRef,
    Kind,
    attribute,
    computed,
    one_of,
)
from contract_engine.registry import AttributeDescriptor, as_contract_ref, kind_for


class Badge(Contract):
    label = attribute(str)


class Member(Contract):
    handle = attribute(str)
    score = attribute(Kind.INTEGER, default=10)
    nickname = attribute("string", optional=True)
    tags = attribute(array=str, default_factory=list)
    badge = attribute(contract=Badge, optional=True)
    display = computed(lambda self: f"@{self.handle}")


class SeniorMember(Member):
    score = attribute(int, default=100)
    since = attribute(date)


def test_kind_for_accepts_enum_values_strings_and_python_types() -> None:
    assert kind_for(Kind.FLOAT) is Kind.FLOAT
    assert kind_for("big_integer") is Kind.BIG_INTEGER
    assert kind_for(Decimal) is Kind.DECIMAL
    assert kind_for(datetime) is Kind.DATETIME
    assert kind_for(dict) is Kind.PERMISSIVE_HASH
    assert kind_for(list) is Kind.PERMISSIVE_ARRAY
    assert kind_for(object) is Kind.VALUE


def test_kind_for_rejects_unknown_declarations() -> None:
    with pytest.raises(ContractDefinitionError):
        kind_for("money")
    with pytest.raises(ContractDefinitionError):
        kind_for(complex)


def test_required_names_exclude_optional_defaulted_and_computed() -> None:
    assert Member.required_attribute_names() == ["handle"]
    assert Member.declared_attribute_names() == ["handle", "score", "nickname", "tags", "badge", "display"]
    assert Member.computed_attribute_names() == ["display"]


def test_descriptors_record_declaration_details() -> None:
    registry = Member.attribute_registry()

    assert registry["tags"].kind is Kind.ARRAY
    assert registry["tags"].element_kind is Kind.STRING
    assert registry["badge"].contract == DirectRef(Badge)
    assert registry["score"].has_default
    assert registry["display"].is_computed
    assert "missing" not in registry
    assert len(registry) == 6


def test_subclass_override_keeps_position_and_does_not_touch_parent() -> None:
    assert SeniorMember.declared_attribute_names() == [
        "handle",
        "score",
        "nickname",
        "tags",
        "badge",
        "display",
        "since",
    ]
    assert SeniorMember.attribute_registry()["score"].default == 100
    assert Member.attribute_registry()["score"].default == 10
    assert "since" not in Member.attribute_registry()
    assert SeniorMember.required_attribute_names() == ["handle", "since"]


def test_inherit_returns_independent_copies() -> None:
    original = AttributeRegistry([AttributeDescriptor(name="x", kind=Kind.VALUE, default=[1])])
    copied = original.inherit()
    copied.declare(AttributeDescriptor(name="y", kind=Kind.STRING))

    assert original.declared_names() == ["x"]
    assert copied.declared_names() == ["x", "y"]
    assert copied["x"] is not original["x"]
    assert copied["x"].default == [1]


def test_default_value_is_copied_per_instance() -> None:
    descriptor = AttributeDescriptor(name="x", kind=Kind.VALUE, has_default=True, default={"a": []})
    first = descriptor.default_value()
    first["a"].append(1)

    assert descriptor.default_value() == {"a": []}


def test_string_references_become_deferred() -> None:
    assert as_contract_ref("Badge") == DeferredRef("Badge")
    assert as_contract_ref(Badge) == DirectRef(Badge)
    assert one_of(Badge, "Member").names == ["Badge", "Member"]


def test_one_of_requires_candidates() -> None:
    with pytest.raises(ContractDefinitionError):
        one_of()


def test_attribute_names_cannot_shadow_contract_methods() -> None:
    with pytest.raises(ContractDefinitionError, match="to_dict"):

        class Broken(Contract):
            to_dict = attribute(str)


def test_typed_arrays_need_scalar_elements() -> None:
    with pytest.raises(ContractDefinitionError):

        class Broken(Contract):
            items = attribute(array=dict)


def test_bare_array_and_contract_kinds_are_rejected() -> None:
    with pytest.raises(ContractDefinitionError):

        class BareArray(Contract):
            items = attribute(Kind.ARRAY)

    with pytest.raises(ContractDefinitionError):

        class BareContract(Contract):
            child = attribute(Kind.CONTRACT)


def test_default_and_default_factory_are_exclusive() -> None:
    with pytest.raises(ContractDefinitionError):
        attribute(list, default=[], default_factory=list)
