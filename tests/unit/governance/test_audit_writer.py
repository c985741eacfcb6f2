"""Unit tests for the audit writer and its background worker."""

import threading
from unittest.mock import MagicMock

import pytest

from trustgate.common.exceptions import AuditError
from trustgate.governance.audit.background_writer import BackgroundAuditWriter
from trustgate.governance.audit.store import DuplicateAuditEntryError, InMemoryAuditStore
from trustgate.governance.audit.writer import AuditWriter
from trustgate.governance.schemas import AuditEntry
from trustgate.orchestration.aggregator import RiskAggregator
from trustgate.orchestration.reasons import ReasonCategory


class FlakyStore(InMemoryAuditStore):
    """Fails the first `failures` writes, then behaves normally."""

    def __init__(self, failures):
        super().__init__()
        self.failures = failures
        self.calls = 0

    def append_entry(self, entry):
        self.calls += 1
        if self.calls <= self.failures:
            raise AuditError("transient write failure")
        return super().append_entry(entry)


@pytest.fixture
def decision():
    return RiskAggregator.blocked_decision(ReasonCategory.UNKNOWN_PRINCIPAL, "att_any")


@pytest.fixture
def entry_for(make_attempt, decision):
    def _make(attempt_id):
        return AuditEntry(attempt=make_attempt(attempt_id=attempt_id), decision=decision)
    return _make


class TestAuditWriterSync:

    @pytest.fixture
    def store(self):
        return InMemoryAuditStore()

    @pytest.fixture
    def writer(self, store):
        return AuditWriter(store, use_background_writer=False)

    def test_record_returns_stored_entry(self, writer, store, make_attempt, decision):
        entry = writer.record(make_attempt(attempt_id="att_1"), decision, {"notes": []})

        assert entry.attempt_id == "att_1"
        assert entry.entry_hash is not None
        assert entry.metadata == {"notes": []}
        assert store.contains("att_1")

    def test_same_attempt_recorded_once(self, writer, store, make_attempt, decision):
        first = writer.record(make_attempt(attempt_id="att_retry"), decision)
        second = writer.record(make_attempt(attempt_id="att_retry"), decision)

        assert first is not None
        assert second is None
        assert len(store) == 1

    def test_store_duplicate_returns_none(self, store, make_attempt, decision):
        # Another process already wrote this attempt
        AuditWriter(store, use_background_writer=False).record(make_attempt(attempt_id="att_x"), decision)
        fresh_writer = AuditWriter(store, use_background_writer=False)

        assert fresh_writer.record(make_attempt(attempt_id="att_x"), decision) is None
        assert len(store) == 1

    def test_store_failure_does_not_raise(self, make_attempt, decision):
        store = MagicMock()
        store.append_entry.side_effect = AuditError("disk full")
        writer = AuditWriter(store, use_background_writer=False)

        entry = writer.record(make_attempt(attempt_id="att_fail"), decision)
        assert entry is not None

    def test_failed_write_is_retried_on_next_record(self, make_attempt, decision):
        store = FlakyStore(failures=1)
        writer = AuditWriter(store, use_background_writer=False)

        assert writer.record(make_attempt(attempt_id="att_lost"), decision) is not None
        assert not store.contains("att_lost")

        assert writer.record(make_attempt(attempt_id="att_lost"), decision) is not None
        assert store.contains("att_lost")

    def test_recent_cache_is_bounded(self, store, make_attempt, decision):
        writer = AuditWriter(store, use_background_writer=False, recent_cache_size=2)
        for i in range(3):
            writer.record(make_attempt(attempt_id=f"att_{i}"), decision)

        # att_0 fell out of the cache; the store still refuses it
        assert writer.record(make_attempt(attempt_id="att_0"), decision) is None
        assert len(store) == 3

    def test_get_entries_limit_clamped(self, make_attempt, decision):
        store = MagicMock()
        store.get_entries.return_value = []
        writer = AuditWriter(store, use_background_writer=False)

        writer.get_entries(limit=0)
        assert store.get_entries.call_args[1]["limit"] == 1
        writer.get_entries(principal="alice@company.com", limit=50000)
        assert store.get_entries.call_args[1] == {"principal": "alice@company.com", "limit": 1000}

    def test_stats_without_background(self, writer):
        assert writer.get_stats() == {"background": False}
        assert writer.flush() is True
        assert writer.failed_entries == []


class TestAuditWriterBackground:

    def test_record_is_persisted_after_flush(self, make_attempt, decision):
        store = InMemoryAuditStore()
        writer = AuditWriter(store, use_background_writer=True)
        try:
            entry = writer.record(make_attempt(attempt_id="att_bg"), decision)
            assert entry is not None
            assert writer.flush(timeout=5) is True
            assert store.contains("att_bg")
            assert writer.get_stats()["entries_written"] == 1
        finally:
            writer.shutdown()

    def test_permanent_failure_does_not_block_later_record(self, make_attempt, decision):
        store = FlakyStore(failures=1)
        writer = AuditWriter(store, use_background_writer=True, max_retries=0, retry_backoff=0.01)
        try:
            writer.record(make_attempt(attempt_id="att_lost"), decision)
            assert writer.flush(timeout=5) is True
            assert [e.attempt_id for e in writer.failed_entries] == ["att_lost"]
            assert not store.contains("att_lost")

            # Store recovered; the client retries the same attempt
            assert writer.record(make_attempt(attempt_id="att_lost"), decision) is not None
            assert writer.flush(timeout=5) is True
            assert store.contains("att_lost")
        finally:
            writer.shutdown()


class TestBackgroundAuditWriter:

    def test_retries_transient_failures(self, entry_for):
        store = FlakyStore(failures=2)
        writer = BackgroundAuditWriter(store, max_retries=3, retry_backoff=0.01)
        try:
            writer.append_entry(entry_for("att_flaky"))
            assert writer.flush(timeout=5) is True

            stats = writer.get_stats()
            assert stats["entries_written"] == 1
            assert stats["entries_retried"] == 2
            assert store.contains("att_flaky")
        finally:
            writer.shutdown()

    def test_gives_up_after_max_retries(self, entry_for):
        store = FlakyStore(failures=100)
        writer = BackgroundAuditWriter(store, max_retries=1, retry_backoff=0.01)
        try:
            writer.append_entry(entry_for("att_lost"))
            assert writer.flush(timeout=5) is True

            assert store.calls == 2
            assert [e.attempt_id for e in writer.failed_entries] == ["att_lost"]
            assert writer.get_stats()["entries_failed"] == 1
        finally:
            writer.shutdown()

    def test_failure_callback_receives_entry(self, entry_for):
        on_failure = MagicMock()
        writer = BackgroundAuditWriter(
            FlakyStore(failures=100), max_retries=0, retry_backoff=0.01, on_failure=on_failure
        )
        try:
            entry = entry_for("att_lost")
            writer.append_entry(entry)
            assert writer.flush(timeout=5) is True

            on_failure.assert_called_once_with(entry)
        finally:
            writer.shutdown()

    def test_duplicate_counts_as_done(self, entry_for):
        store = MagicMock()
        store.append_entry.side_effect = DuplicateAuditEntryError("att_dup")
        writer = BackgroundAuditWriter(store, max_retries=3, retry_backoff=0.01)
        try:
            writer.append_entry(entry_for("att_dup"))
            writer.flush(timeout=5)

            assert store.append_entry.call_count == 1
            assert writer.get_stats()["entries_duplicate"] == 1
            assert writer.failed_entries == []
        finally:
            writer.shutdown()

    def test_full_queue_without_fallback_keeps_failed(self, entry_for):
        gate = threading.Event()
        store = MagicMock()
        store.append_entry.side_effect = lambda entry: gate.wait(5)
        writer = BackgroundAuditWriter(store, max_queue_size=1)
        try:
            # First entry occupies the worker, second fills the queue
            writer.append_entry(entry_for("att_1"))
            while store.append_entry.call_count == 0:
                gate.wait(0.01)
            writer.append_entry(entry_for("att_2"))
            writer.append_entry(entry_for("att_3"))

            assert [e.attempt_id for e in writer.failed_entries] == ["att_3"]
        finally:
            gate.set()
            writer.shutdown()

    def test_full_queue_with_sync_fallback(self, entry_for):
        gate = threading.Event()
        written = []

        def slow_then_record(entry):
            if entry.attempt_id == "att_1":
                gate.wait(5)
            written.append(entry.attempt_id)
            return entry

        store = MagicMock()
        store.append_entry.side_effect = slow_then_record
        writer = BackgroundAuditWriter(store, max_queue_size=1, sync_fallback=True)
        try:
            writer.append_entry(entry_for("att_1"))
            while store.append_entry.call_count == 0:
                gate.wait(0.01)
            writer.append_entry(entry_for("att_2"))
            writer.append_entry(entry_for("att_3"))

            assert "att_3" in written
            assert writer.get_stats()["sync_fallback_count"] == 1
        finally:
            gate.set()
            writer.shutdown()

    def test_shutdown_drains_queue(self, entry_for):
        store = InMemoryAuditStore()
        writer = BackgroundAuditWriter(store)
        for i in range(10):
            writer.append_entry(entry_for(f"att_{i}"))

        writer.shutdown(timeout=5)

        assert len(store) == 10
        assert writer.is_running is False

    def test_write_after_shutdown_is_synchronous(self, entry_for):
        store = InMemoryAuditStore()
        writer = BackgroundAuditWriter(store)
        writer.shutdown()

        writer.append_entry(entry_for("att_late"))
        assert store.contains("att_late")
