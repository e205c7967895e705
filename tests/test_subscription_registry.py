from concurrent.futures import ThreadPoolExecutor

import pytest

from maintdesk.notifications.registry import SubscriptionEntry, SubscriptionRegistry


def _entry(owner: str, endpoint: str) -> SubscriptionEntry:
    return SubscriptionEntry(owner=owner, endpoint=endpoint, keys={"p256dh": "key", "auth": "secret"})


def test_same_endpoint_registered_once():
    registry = SubscriptionRegistry()

    assert registry.register("u1", _entry("u1", "https://push.example/a")) is True
    assert registry.register("u1", _entry("u1", "https://push.example/a")) is False

    assert len(registry.list_for("u1")) == 1


def test_distinct_endpoints_are_kept_per_owner():
    registry = SubscriptionRegistry()
    registry.register("u1", _entry("u1", "https://push.example/a"))
    registry.register("u1", _entry("u1", "https://push.example/b"))
    registry.register("u2", _entry("u2", "https://push.example/a"))

    assert [e.endpoint for e in registry.list_for("u1")] == ["https://push.example/a", "https://push.example/b"]
    assert len(registry.list_for("u2")) == 1
    assert registry.list_for("nobody") == ()
    assert len(registry) == 3


def test_owner_mismatch_is_rejected():
    registry = SubscriptionRegistry()
    with pytest.raises(ValueError):
        registry.register("u1", _entry("u2", "https://push.example/a"))


def test_concurrent_registration_of_same_endpoint_stores_one_entry():
    registry = SubscriptionRegistry()
    entry = _entry("u1", "https://push.example/a")

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: registry.register("u1", entry), range(32)))

    assert results.count(True) == 1
    assert len(registry.list_for("u1")) == 1


def test_subscription_info_shape():
    entry = SubscriptionEntry(owner="u1", endpoint="https://push.example/a", keys={"auth": "x"}, expiration_time=5)
    assert entry.subscription_info() == {
        "endpoint": "https://push.example/a",
        "keys": {"auth": "x"},
        "expirationTime": 5,
    }
