"""Tests for the SQLite component ID store."""

import sqlite3
import threading
import pytest

from botcore.errors import StorageUnavailableError
from botcore.models import Lifespan
from botcore.storage import ComponentIdStore

from conftest import REGULAR_TTL


class TestPutGet:
    """Test basic persistence."""

    def test_put_then_get(self, store, clock):
        """Test that a stored payload is returned with its metadata."""
        key = store.put("h", "3:u42", Lifespan.REGULAR)

        entry = store.get(key)

        assert entry.key == key
        assert entry.handler_prefix == "h"
        assert entry.args_blob == "3:u42"
        assert entry.lifespan is Lifespan.REGULAR
        assert entry.created_at == clock.now()

    def test_get_unknown_returns_none(self, store):
        """Test that missing keys are not an exception."""
        assert store.get("0" * 32) is None

    def test_identical_payloads_not_deduplicated(self, store):
        """Test that two puts of the same payload get two keys."""
        first = store.put("h", "1:x", Lifespan.REGULAR)
        second = store.put("h", "1:x", Lifespan.REGULAR)

        assert first != second
        assert store.count() == 2

    def test_get_updates_last_used(self, store, clock):
        """Test that reading an entry refreshes last_used_at."""
        key = store.put("h", "", Lifespan.REGULAR)
        clock.advance(100)

        entry = store.get(key)

        assert entry.last_used_at == clock.now()
        assert entry.created_at == clock.now() - 100

    def test_survives_reconstruction(self, db_path, clock):
        """Test that a new store on the same file sees old entries."""
        first = ComponentIdStore(db_path, regular_ttl=REGULAR_TTL, clock=clock)
        key = first.put("h", "1:a", Lifespan.PERMANENT)
        del first

        second = ComponentIdStore(db_path, regular_ttl=REGULAR_TTL, clock=clock)

        assert second.get(key).args_blob == "1:a"


class TestSweep:
    """Test eviction of expired entries."""

    def test_sweep_evicts_stale_regular(self, store, clock):
        key = store.put("h", "", Lifespan.REGULAR)
        clock.advance(REGULAR_TTL)

        assert store.sweep() == 1
        assert store.count() == 0
        assert store.get(key) is None

    def test_sweep_keeps_fresh_regular(self, store, clock):
        store.put("h", "", Lifespan.REGULAR)
        clock.advance(REGULAR_TTL - 1)

        assert store.sweep() == 0
        assert store.count() == 1

    def test_sweep_never_evicts_permanent(self, store, clock):
        """Test that permanent entries survive any amount of idle time."""
        key = store.put("h", "", Lifespan.PERMANENT)
        clock.advance(REGULAR_TTL * 1000)

        assert store.sweep() == 0
        assert store.get(key) is not None

    def test_sweep_with_explicit_now(self, store, clock):
        store.put("h", "", Lifespan.REGULAR)

        assert store.sweep(now=clock.now() + REGULAR_TTL + 1) == 1

    def test_get_treats_stale_entry_as_missing(self, store, clock):
        """Test that an entry past its TTL is gone even before a sweep."""
        key = store.put("h", "", Lifespan.REGULAR)
        clock.advance(REGULAR_TTL + 1)

        assert store.get(key) is None
        assert store.count() == 0

    def test_eviction_listener_notified(self, store, clock):
        """Test that listeners receive the evicted keys."""
        evicted = []
        store.add_eviction_listener(evicted.extend)
        key = store.put("h", "", Lifespan.REGULAR)
        store.put("h", "", Lifespan.PERMANENT)
        clock.advance(REGULAR_TTL)

        store.sweep()

        assert evicted == [key]

    def test_listener_notified_on_lookup_expiry(self, store, clock):
        """Test that an entry dropped on lookup is announced like a swept one."""
        evicted = []
        store.add_eviction_listener(evicted.extend)
        key = store.put("h", "", Lifespan.REGULAR)
        clock.advance(REGULAR_TTL + 1)

        assert store.get(key) is None
        assert evicted == [key]
        assert store.sweep() == 0
        assert evicted == [key]

    def test_listener_not_notified_for_live_lookup(self, store):
        evicted = []
        store.add_eviction_listener(evicted.extend)
        key = store.put("h", "", Lifespan.REGULAR)

        store.get(key)

        assert evicted == []

    def test_failing_listener_does_not_break_sweep(self, store, clock):
        def broken(keys):
            raise RuntimeError("boom")

        store.add_eviction_listener(broken)
        store.put("h", "", Lifespan.REGULAR)
        clock.advance(REGULAR_TTL)

        assert store.sweep() == 1


class TestPurge:
    """Test administrative removal."""

    def test_purge_permanent(self, store):
        key = store.put("h", "", Lifespan.PERMANENT)

        assert store.purge(key) is True
        assert store.get(key) is None

    def test_purge_unknown(self, store):
        assert store.purge("f" * 32) is False

    def test_count_by_lifespan(self, store):
        store.put("h", "", Lifespan.PERMANENT)
        store.put("h", "", Lifespan.REGULAR)
        store.put("h", "", Lifespan.REGULAR)

        assert store.count(Lifespan.PERMANENT) == 1
        assert store.count(Lifespan.REGULAR) == 2


class TestFailures:
    """Test storage errors surface as StorageUnavailableError."""

    def test_unwritable_database(self, tmp_path, clock):
        """Test that a store that cannot be opened reports unavailability."""
        directory = tmp_path / "a_directory"
        directory.mkdir()

        with pytest.raises(StorageUnavailableError):
            ComponentIdStore(directory, regular_ttl=REGULAR_TTL, clock=clock)

    def test_put_after_table_loss(self, store, db_path):
        """Test that a failing insert surfaces instead of returning a key."""
        conn = sqlite3.connect(db_path)
        conn.execute("DROP TABLE component_ids")
        conn.commit()
        conn.close()

        with pytest.raises(StorageUnavailableError):
            store.put("h", "", Lifespan.REGULAR)

    @pytest.mark.parametrize("operation", [
        lambda store: store.sweep(),
        lambda store: store.purge("f" * 32),
        lambda store: store.count(),
        lambda store: store.get("f" * 32),
    ])
    def test_other_operations_after_table_loss(self, store, db_path, operation):
        conn = sqlite3.connect(db_path)
        conn.execute("DROP TABLE component_ids")
        conn.commit()
        conn.close()

        with pytest.raises(StorageUnavailableError):
            operation(store)


class TestConcurrency:
    """Test parallel access."""

    def test_parallel_puts_unique(self, store):
        """Test that concurrent puts all persist with distinct keys."""
        keys = []
        lock = threading.Lock()

        def worker():
            for _ in range(20):
                key = store.put("h", "1:x", Lifespan.REGULAR)
                with lock:
                    keys.append(key)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(keys)) == 100
        assert store.count() == 100
