"""Tests for the visitor session store and its key/value backends."""

import re
from datetime import timedelta

from conftest import FakeClock, FakeRedis

from chatwidget.widget.errors import StorageError
from chatwidget.widget.session_store import SessionStore
from chatwidget.widget.storage import KeyValueStore, MemoryKeyValueStore, RedisKeyValueStore, scoped_key


class BrokenStore(KeyValueStore):
    def get(self, key):
        raise StorageError("storage disabled")

    def set(self, key, value):
        raise StorageError("storage disabled")

    def remove(self, key):
        raise StorageError("storage disabled")


def make_store(clock=None, storage=None):
    return SessionStore(
        storage if storage is not None else MemoryKeyValueStore(),
        inactivity_window=timedelta(minutes=60),
        away_window=timedelta(minutes=15),
        clock=clock or FakeClock(),
    )


def test_new_visitor_gets_a_session_id():
    clock = FakeClock()
    store = make_store(clock)

    session_id = store.resolve_session("acme")

    assert re.fullmatch(r"session_\d+_[a-z0-9]{9}", session_id)
    assert session_id.startswith(f"session_{int(clock.now * 1000)}_")
    assert store.current_session("acme") == session_id


def test_session_is_stable_within_both_windows():
    clock = FakeClock()
    store = make_store(clock)
    first = store.resolve_session("acme")

    for _ in range(5):
        clock.advance(minutes=10)
        assert store.resolve_session("acme") == first


def test_idle_expiry_rotates_session():
    clock = FakeClock()
    store = make_store(clock)
    session_a = store.resolve_session("acme")

    clock.advance(minutes=61)

    assert store.resolve_session("acme") != session_a


def test_inactivity_window_boundary_is_exclusive():
    clock = FakeClock()
    store = make_store(clock)
    session_a = store.resolve_session("acme")

    clock.advance(minutes=60)

    assert store.resolve_session("acme") == session_a


def test_tab_away_expiry_rotates_session():
    clock = FakeClock()
    store = make_store(clock)
    session_b = store.resolve_session("acme")
    store.record_departure("acme")

    clock.advance(minutes=16)

    assert store.expiry_reason("acme") == "away"
    assert store.resolve_session("acme") != session_b


def test_short_absence_keeps_session_and_clears_departure():
    clock = FakeClock()
    storage = MemoryKeyValueStore()
    store = make_store(clock, storage)
    session_id = store.resolve_session("acme")
    store.record_departure("acme")

    clock.advance(minutes=10)

    assert store.resolve_session("acme") == session_id
    assert storage.get(scoped_key("left_at", "acme")) is None


def test_recorded_activity_extends_inactivity_window():
    clock = FakeClock()
    store = make_store(clock)
    session_id = store.resolve_session("acme")

    clock.advance(minutes=50)
    store.record_activity("acme")
    clock.advance(minutes=50)

    assert store.resolve_session("acme") == session_id


def test_inactivity_reported_before_away():
    clock = FakeClock()
    store = make_store(clock)
    store.resolve_session("acme")
    store.record_departure("acme")

    clock.advance(minutes=90)

    assert store.expiry_reason("acme") == "inactive"


def test_is_expired_does_not_touch_storage():
    clock = FakeClock()
    storage = MemoryKeyValueStore()
    store = make_store(clock, storage)
    store.resolve_session("acme")
    stamped = storage.get(scoped_key("last_activity", "acme"))

    clock.advance(minutes=61)

    assert store.is_expired("acme") is True
    assert storage.get(scoped_key("last_activity", "acme")) == stamped


def test_corrupt_timestamps_mint_a_new_session():
    storage = MemoryKeyValueStore({
        scoped_key("session", "acme"): "session_1_abcdefghi",
        scoped_key("last_activity", "acme"): "not-a-number",
    })
    store = make_store(storage=storage)

    session_id = store.resolve_session("acme")

    assert session_id != "session_1_abcdefghi"
    assert storage.get(scoped_key("last_activity", "acme")).isdigit()


def test_unavailable_storage_never_raises():
    store = make_store(storage=BrokenStore())

    first = store.resolve_session("acme")
    store.record_activity("acme")
    store.record_departure("acme")

    assert first.startswith("session_")
    assert store.is_expired("acme") is False


def test_sessions_are_scoped_per_tenant():
    store = make_store()

    assert store.resolve_session("acme") != store.resolve_session("globex")


def test_redis_store_is_shared_between_windows():
    redis_client = FakeRedis()
    clock = FakeClock()
    first_tab = make_store(clock, RedisKeyValueStore(redis_client))
    second_tab = make_store(clock, RedisKeyValueStore(redis_client))

    session_id = first_tab.resolve_session("acme")

    assert second_tab.resolve_session("acme") == session_id
    assert redis_client.get("widget-storage:botsy_session_acme") == session_id
