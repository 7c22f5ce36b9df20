"""
Tests for the session store and its persistence backends.
"""

import pytest
from hypothesis import given, settings as hypothesis_settings, strategies as st

from shared.infrastructure.events import LocalChangeBus
from shared.infrastructure.store import InMemoryBackend, SessionStore, SqlBackend, StoreBackendError
from shared.infrastructure.store.backends import QuotaExceededError


json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text() | st.floats(allow_nan=False, allow_infinity=False),
    lambda children: st.lists(children, max_size=5) | st.dictionaries(st.text(max_size=10), children, max_size=5),
    max_leaves=20,
)


class FailingBackend(InMemoryBackend):
    """Backend whose every operation fails."""

    def get(self, key):
        raise StoreBackendError("backend down")

    def set(self, key, value):
        raise StoreBackendError("backend down")

    def delete(self, key):
        raise StoreBackendError("backend down")

    def keys(self, prefix=""):
        raise StoreBackendError("backend down")


class TestReadWrite:
    """Round trip and soft-fail reads."""

    @given(value=json_values)
    @hypothesis_settings(max_examples=100)
    def test_write_then_read_round_trips(self, value):
        """Property: read(key) after write(key, v) is deep-equal to v."""
        store = SessionStore(InMemoryBackend(), LocalChangeBus())
        assert store.write("doc", value) is True
        assert store.read("doc") == value

    def test_missing_key_returns_default(self, store):
        assert store.read("nothing") is None
        assert store.read("nothing", default=[]) == []

    def test_corrupted_value_returns_default(self, store, backend):
        """A value that is not JSON is read as the default, never raised."""
        backend.set("cash-sessions-r1", "{not json")
        assert store.read("cash-sessions-r1", default=[]) == []

    def test_backend_failure_on_read_returns_default(self):
        store = SessionStore(FailingBackend(), LocalChangeBus())
        assert store.read("any", default={"x": 1}) == {"x": 1}

    def test_non_ascii_text_survives(self, store, backend):
        store.write("roster", {"role": "Recepção"})
        assert "Recepção" in backend.get("roster")
        assert store.read("roster") == {"role": "Recepção"}


class TestWriteFailures:
    """Writes report failure instead of raising."""

    def test_quota_exceeded_returns_false_and_keeps_previous_value(self):
        store = SessionStore(InMemoryBackend(quota_bytes=32), LocalChangeBus())
        assert store.write("k", "small") is True
        assert store.write("k", "x" * 100) is False
        assert store.read("k") == "small"

    def test_unserializable_value_returns_false(self, store):
        assert store.write("k", {"when": object()}) is False
        assert store.read("k") is None

    def test_backend_failure_returns_false(self):
        store = SessionStore(FailingBackend(), LocalChangeBus())
        assert store.write("k", 1) is False
        assert store.remove("k") is False
        assert store.keys() == []


class TestNotification:
    """Successful writes publish their topic."""

    def test_write_publishes_topic(self, store, recorded_topics):
        store.write("waitlist-r1", [], topic="waitlistChanged")
        assert recorded_topics == ["waitlistChanged"]

    def test_write_without_topic_publishes_nothing(self, store, recorded_topics):
        store.write("employee-session-tab", {})
        assert recorded_topics == []

    def test_failed_write_publishes_nothing(self, bus):
        store = SessionStore(InMemoryBackend(quota_bytes=4), bus)
        topics = []
        bus.subscribe("cashSessionsChanged", topics.append)

        assert store.write("k", "too large", topic="cashSessionsChanged") is False
        assert topics == []

    def test_remove_publishes_topic(self, store, recorded_topics):
        store.write("waitlist-r1", [])
        store.remove("waitlist-r1", topic="waitlistChanged")
        assert store.read("waitlist-r1") is None
        assert recorded_topics == ["waitlistChanged"]


class TestKeysAndTransactions:
    def test_keys_filters_by_prefix(self, store):
        store.write("cash-sessions-a", [])
        store.write("cash-sessions-b", [])
        store.write("waitlist-a", [])
        assert store.keys("cash-sessions-") == ["cash-sessions-a", "cash-sessions-b"]

    def test_transaction_is_reentrant(self, store):
        """Nested transactions (service calling service) do not deadlock."""
        with store.transaction():
            with store.transaction():
                store.write("k", 1)
        assert store.read("k") == 1


class TestSqlBackend:
    """SQL backend on in-memory SQLite."""

    @pytest.fixture
    def sql_backend(self):
        backend = SqlBackend.from_url("sqlite:///:memory:", quota_bytes=64)
        yield backend
        backend.close()

    def test_set_get_overwrite(self, sql_backend):
        sql_backend.set("k", "1")
        sql_backend.set("k", "2")
        assert sql_backend.get("k") == "2"

    def test_get_missing(self, sql_backend):
        assert sql_backend.get("missing") is None

    def test_delete(self, sql_backend):
        sql_backend.set("k", "1")
        sql_backend.delete("k")
        sql_backend.delete("k")
        assert sql_backend.get("k") is None

    def test_keys_prefix_is_literal(self, sql_backend):
        """LIKE wildcards in the prefix are matched literally."""
        sql_backend.set("cash-sessions-a", "[]")
        sql_backend.set("cash_sessions-b", "[]")
        sql_backend.set("waitlist-a", "[]")
        assert sql_backend.keys("cash-sessions-") == ["cash-sessions-a"]
        assert sql_backend.keys("cash_") == ["cash_sessions-b"]

    def test_quota(self, sql_backend):
        with pytest.raises(QuotaExceededError):
            sql_backend.set("k", "x" * 65)
        assert sql_backend.get("k") is None

    def test_store_round_trip_over_sql(self, sql_backend):
        store = SessionStore(sql_backend, LocalChangeBus())
        assert store.write("cash-sessions-r1", [{"id": "r1-1", "status": "open"}])
        assert store.read("cash-sessions-r1") == [{"id": "r1-1", "status": "open"}]
