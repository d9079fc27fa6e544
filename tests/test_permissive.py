from __future__ import annotations

import pytest

from contract_engine import (
    Contract,
    ContractConfig,
    MissingAttributeError,
    PassthroughView,
    attribute,
)


class Webhook(Contract, permissive=True):
    event = attribute(str)
    payload = attribute(dict, optional=True)


class ConfiguredWebhook(Contract):
    contract_config = ContractConfig(permissive=True)

    event = attribute(str)


class StrictWebhook(Webhook, permissive=False):
    pass


def test_permissive_contracts_accept_unknown_keys() -> None:
    hook = Webhook({"event": "push", "repository": "core", "sender": {"login": "ada"}})

    assert hook.is_schema_valid()
    hook.schema_validate()
    assert dict(hook.permissive_attributes) == {"repository": "core", "sender": {"login": "ada"}}


def test_permissive_contracts_still_require_declared_attributes() -> None:
    hook = Webhook({"repository": "core"})

    assert hook.schema_errors() == {"event": ["is missing"]}
    with pytest.raises(MissingAttributeError):
        hook.schema_validate()


def test_permissive_keys_round_trip_through_json_on_request() -> None:
    hook = Webhook({"event": "push", "repository": "core"})

    assert hook.as_json() == {"event": "push"}
    assert hook.as_json(permissive=True) == {"event": "push", "repository": "core"}


def test_passthrough_view_merges_declared_and_extra_attributes() -> None:
    view = Webhook({"event": "push", "ref": "main"}).with_passthrough_attributes()

    assert isinstance(view, PassthroughView)
    assert view.to_dict() == {"event": "push", "ref": "main"}


def test_has_key_and_declared_attribute_checks() -> None:
    hook = Webhook({"event": "push", "ref": "main"})

    assert hook.has_key("ref")
    assert hook.has_key("payload")
    assert not hook.has_key("missing")
    assert hook.is_declared_attribute("event")
    assert not hook.is_declared_attribute("ref")


def test_configuration_object_and_class_keyword_are_equivalent() -> None:
    assert Webhook.contract_config.permissive
    assert ConfiguredWebhook.contract_config.permissive
    assert ConfiguredWebhook({"event": "x", "extra": 1}).is_schema_valid()


def test_subclasses_can_switch_permissiveness_off() -> None:
    hook = StrictWebhook({"event": "push", "ref": "main"})

    assert hook.schema_errors() == {"ref": ["is unexpected"]}
    assert Webhook.contract_config.permissive


def test_contract_config_is_frozen() -> None:
    config = ContractConfig()

    with pytest.raises(ValueError):
        config.permissive = True  # type: ignore[misc]
    with pytest.raises(ValueError):
        ContractConfig(error_key_separator="")
