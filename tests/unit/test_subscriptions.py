from __future__ import annotations

import pytest

from notifyconf.core.errors import InvalidSelectorSyntax
from notifyconf.core.selectors import parse_selector
from notifyconf.core.subscriptions import Subscription, SubscriptionTable


@pytest.mark.parametrize("trigger", ["on-sync-failed", "on-created", "", "anything.else"])
def test_subscription_without_triggers_matches_every_trigger(trigger: str) -> None:
    subscription = Subscription.decode("", [], ["slack:ops"])
    assert subscription.matches_trigger(trigger)


def test_subscription_matches_trigger_by_exact_name() -> None:
    subscription = Subscription.decode("", ["on-sync"], ["slack:ops"])

    assert subscription.matches_trigger("on-sync")
    assert not subscription.matches_trigger("on-sync-failed")
    assert not subscription.matches_trigger("on-*")


def test_subscription_decode_rejects_malformed_selector() -> None:
    with pytest.raises(InvalidSelectorSyntax):
        Subscription.decode("env in (", ["on-sync"], ["slack:ops"])


def test_subscription_validation_rejects_malformed_selector() -> None:
    with pytest.raises(InvalidSelectorSyntax):
        Subscription.model_validate({"recipients": ["a"], "selector": "tier notin web"})


def test_subscription_accepts_capitalized_fields() -> None:
    subscription = Subscription.model_validate(
        {"Recipients": ["email:dev@example.com"], "Triggers": ["on-sync"], "Selector": "env=prod"}
    )

    assert subscription.recipients == ["email:dev@example.com"]
    assert subscription.triggers == ["on-sync"]
    assert subscription.selector == parse_selector("env=prod")


def test_subscription_encode_returns_canonical_selector() -> None:
    assert Subscription.decode("tier in (b,a)").encode() == "tier in (a,b)"
    assert Subscription.decode("").encode() == ""
    assert Subscription.model_validate({"recipients": ["a"]}).encode() == ""


def test_subscription_round_trips_through_encode() -> None:
    original = Subscription.decode("env!=dev,team in (core)", ["on-sync"], ["slack:core"])
    restored = Subscription.decode(original.encode(), original.triggers, original.recipients)
    assert restored == original


def test_subscription_dump_renders_selector_text() -> None:
    subscription = Subscription.decode("env=prod", ["t1"], ["b"])
    assert subscription.model_dump() == {
        "recipients": ["b"],
        "triggers": ["t1"],
        "selector": "env=prod",
    }


def test_get_recipients_routes_by_trigger_and_selector() -> None:
    table = SubscriptionTable.model_validate(
        [
            {"recipients": ["a"], "triggers": [], "selector": ""},
            {"recipients": ["b"], "triggers": ["t1"], "selector": "env=prod"},
        ]
    )

    assert table.get_recipients("t1", {"env": "prod"}) == ["a", "b"]
    assert table.get_recipients("t2", {"env": "dev"}) == ["a"]
    assert table.get_recipients("t1", {"env": "dev"}) == ["a"]


def test_get_recipients_preserves_duplicates_and_order() -> None:
    table = SubscriptionTable.model_validate(
        [
            {"recipients": ["slack:ops", "email:ops@example.com"]},
            {"recipients": ["slack:ops"], "selector": "team=core"},
        ]
    )

    assert table.get_recipients("on-sync", {"team": "core"}) == [
        "slack:ops",
        "email:ops@example.com",
        "slack:ops",
    ]


def test_get_recipients_without_labels_only_matches_label_free_selectors() -> None:
    table = SubscriptionTable.model_validate(
        [
            {"recipients": ["a"]},
            {"recipients": ["b"], "selector": "env=prod"},
            {"recipients": ["c"], "selector": "!env"},
        ]
    )

    assert table.get_recipients("on-sync") == ["a", "c"]
    assert table.get_recipients("on-sync", None) == ["a", "c"]


def test_empty_table() -> None:
    table = SubscriptionTable()
    assert len(table) == 0
    assert table.get_recipients("on-sync", {"env": "prod"}) == []
