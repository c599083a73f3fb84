"""Tests for the subscription registry and its reverse indexes."""

from __future__ import annotations

from typing import Any

from topicbus.indexes import CallbackIndex, ScopeIndex
from topicbus.models import Scope, SubscriptionToken
from topicbus.registry import SubscriptionRegistry
from topicbus.topics import normalize


def _handler(topic: str, data: Any) -> None:
    return None


def _other_handler(topic: str, data: Any) -> None:
    return None


def _token(key: str = "k", scope: Scope | None = None) -> SubscriptionToken:
    return SubscriptionToken(
        scope=scope or Scope(), key=key, callback=_handler, _release=lambda token: False
    )


def test_registry_groups_tokens_by_key() -> None:
    registry = SubscriptionRegistry()
    topic = normalize("a")
    first, second = _token(topic.key), _token(topic.key)

    registry.add(topic.key, topic.predicate, first, _handler)
    registry.add(topic.key, topic.predicate, second, _other_handler)

    entry = registry.get(topic.key)
    assert entry is not None
    assert list(entry.callbacks.items()) == [(first, _handler), (second, _other_handler)]
    assert registry.count() == 1
    assert registry.topics() == {"a": 2}


def test_registry_keeps_first_predicate() -> None:
    registry = SubscriptionRegistry()

    registry.add("k", lambda topic: True, _token(), _handler)
    registry.add("k", lambda topic: False, _token(), _handler)

    entry = registry.get("k")
    assert entry is not None
    assert entry.predicate("anything") is True


def test_registry_removes_empty_entries() -> None:
    registry = SubscriptionRegistry()
    token = _token()
    registry.add("k", lambda topic: True, token, _handler)

    assert registry.remove("k", token) is True
    assert registry.exists("k") is False
    assert registry.count() == 0
    assert registry.remove("k", token) is False


def test_registry_for_each_visits_in_insertion_order() -> None:
    registry = SubscriptionRegistry()
    for key in ("b", "a", "c"):
        registry.add(key, lambda topic: True, _token(key), _handler)
    visited: list[str] = []

    registry.for_each(lambda key, entry: visited.append(key))

    assert visited == ["b", "a", "c"]


def test_callback_index_prunes_bottom_up() -> None:
    index = CallbackIndex()
    first, second = _token("a"), _token("b")
    index.record(_handler, "a", first)
    index.record(_handler, "b", second)

    lookup = index.lookup(_handler)
    assert lookup is not None
    assert set(lookup) == {"a", "b"}

    index.forget(_handler, "a", first)
    assert set(index.lookup(_handler) or {}) == {"b"}

    index.forget(_handler, "b", second)
    assert index.exists(_handler) is False
    assert len(index) == 0


def test_callback_index_forget_unknown_is_noop() -> None:
    index = CallbackIndex()

    index.forget(_handler, "a", _token())

    assert index.lookup(_handler) is None


def test_scope_index_prunes_empty_scopes() -> None:
    index = ScopeIndex()
    scope = Scope()
    token = _token(scope=scope)
    index.record(scope, token)

    assert index.lookup(scope) == {token}

    index.forget(scope, token)
    assert index.lookup(scope) is None
    assert len(index) == 0
    index.forget(scope, token)
