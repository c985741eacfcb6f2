"""Background Audit Writer - non-blocking audit persistence with retry."""

import atexit
import logging
import queue
import threading
import time
from typing import Callable, List, Optional

from trustgate.common.constants import AuditConstants
from trustgate.governance.audit.store import AuditStore, DuplicateAuditEntryError
from trustgate.governance.schemas import AuditEntry

logger = logging.getLogger(__name__)


class BackgroundAuditWriter:
    """Background writer for non-blocking audit log writes.

    Failed writes are retried with exponential backoff. Entries that still
    fail after `max_retries` are logged and kept in `failed_entries`.
    """

    DEFAULT_QUEUE_SIZE = AuditConstants.QUEUE_SIZE
    DEFAULT_FLUSH_TIMEOUT = AuditConstants.FLUSH_TIMEOUT_SECONDS

    def __init__(
        self,
        store: AuditStore,
        max_queue_size: int = DEFAULT_QUEUE_SIZE,
        flush_timeout: float = DEFAULT_FLUSH_TIMEOUT,
        max_retries: int = AuditConstants.MAX_WRITE_RETRIES,
        retry_backoff: float = AuditConstants.RETRY_BACKOFF_SECONDS,
        sync_fallback: bool = False,
        on_failure: Optional[Callable[[AuditEntry], None]] = None,
    ):
        """Initialize background audit writer.

        Args:
            store: Audit store backend.
            max_queue_size: Maximum number of entries to buffer.
            flush_timeout: Timeout for flushing queue on shutdown.
            max_retries: Retries after the first failed write.
            retry_backoff: Initial backoff in seconds, doubled on each retry.
            sync_fallback: Whether to write synchronously when queue is full.
            on_failure: Called with each entry that is given up on.
        """
        self.store = store
        self.max_queue_size = max_queue_size
        self.flush_timeout = flush_timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.sync_fallback = sync_fallback
        self.on_failure = on_failure

        self._queue: queue.Queue[Optional[AuditEntry]] = queue.Queue(
            maxsize=max_queue_size
        )

        self._shutdown_event = threading.Event()
        self._writer_thread: Optional[threading.Thread] = None

        # Statistics
        self._entries_written = 0
        self._entries_retried = 0
        self._entries_duplicate = 0
        self._failed: List[AuditEntry] = []
        self._sync_fallback_count = 0
        self._stats_lock = threading.Lock()

        self._start_writer()
        atexit.register(self.shutdown)

    def _start_writer(self) -> None:
        self._writer_thread = threading.Thread(
            target=self._writer_loop,
            name="AuditWriter",
            daemon=True,
        )
        self._writer_thread.start()
        logger.info("Background audit writer started")

    def _writer_loop(self) -> None:
        """Background loop that writes entries from the queue."""
        while not self._shutdown_event.is_set():
            try:
                entry = self._queue.get(timeout=AuditConstants.QUEUE_GET_TIMEOUT)
            except queue.Empty:
                continue

            if entry is None:
                self._queue.task_done()
                break

            try:
                self._write_with_retry(entry)
            finally:
                self._queue.task_done()

        self._drain_queue()
        logger.info("Background audit writer stopped")

    def _write_with_retry(self, entry: AuditEntry) -> None:
        """Write one entry, retrying with exponential backoff."""
        delay = self.retry_backoff
        for attempt in range(self.max_retries + 1):
            try:
                self.store.append_entry(entry)
                with self._stats_lock:
                    self._entries_written += 1
                return
            except DuplicateAuditEntryError:
                logger.debug(f"Audit entry for {entry.attempt_id} already stored")
                with self._stats_lock:
                    self._entries_duplicate += 1
                return
            except Exception as e:
                if attempt >= self.max_retries:
                    logger.error(
                        f"Failed to write audit entry after {attempt + 1} attempts: {e}",
                        extra={"attempt_id": entry.attempt_id},
                    )
                    self._give_up(entry)
                    return
                logger.warning(
                    f"Audit write failed ({type(e).__name__}: {e}), retrying in {delay:.2f}s",
                    extra={"attempt_id": entry.attempt_id},
                )
                with self._stats_lock:
                    self._entries_retried += 1
                # Shutdown shortens the wait but not the retry budget
                self._shutdown_event.wait(delay)
                delay *= 2

    def _give_up(self, entry: AuditEntry) -> None:
        with self._stats_lock:
            self._failed.append(entry)
        if self.on_failure is not None:
            try:
                self.on_failure(entry)
            except Exception as e:
                logger.error(f"Audit failure callback raised: {type(e).__name__}: {e}")

    def _drain_queue(self) -> None:
        """Drain remaining entries from the queue."""
        drained = 0
        while True:
            try:
                entry = self._queue.get_nowait()
            except queue.Empty:
                break
            try:
                if entry is not None:
                    self._write_with_retry(entry)
                    drained += 1
            finally:
                self._queue.task_done()

        if drained > 0:
            logger.info(f"Drained {drained} audit entries during shutdown")

    def append_entry(self, entry: AuditEntry) -> AuditEntry:
        """Queue an audit entry for writing. Returns immediately.

        Note:
            If queue is full and sync_fallback is True, writes synchronously.
            Otherwise the entry is logged and kept in `failed_entries`.
        """
        if self._shutdown_event.is_set():
            self._write_with_retry(entry)
            return entry

        try:
            self._queue.put_nowait(entry)
        except queue.Full:
            if self.sync_fallback:
                with self._stats_lock:
                    self._sync_fallback_count += 1
                logger.warning("Audit queue full, writing synchronously")
                self._write_with_retry(entry)
            else:
                logger.error(
                    "Audit queue full, entry not persisted",
                    extra={"attempt_id": entry.attempt_id},
                )
                self._give_up(entry)
        return entry

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Shutdown the background writer gracefully."""
        if self._shutdown_event.is_set():
            return

        timeout = timeout if timeout is not None else self.flush_timeout

        logger.info("Shutting down background audit writer...")
        self._shutdown_event.set()

        try:
            self._queue.put_nowait(None)
        except queue.Full:
            logger.debug("Audit queue full at shutdown; writer will see the event")

        if self._writer_thread and self._writer_thread.is_alive():
            self._writer_thread.join(timeout=timeout)
            if self._writer_thread.is_alive():
                logger.warning("Audit writer did not stop cleanly")

        stats = self.get_stats()
        logger.info(
            f"Audit writer shutdown complete. "
            f"Written: {stats['entries_written']}, "
            f"Failed: {stats['entries_failed']}, "
            f"Duplicates: {stats['entries_duplicate']}"
        )

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for all queued entries to be processed.

        Returns:
            True if the queue drained, False if timeout occurred.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                if deadline is None:
                    self._queue.all_tasks_done.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    @property
    def failed_entries(self) -> List[AuditEntry]:
        with self._stats_lock:
            return list(self._failed)

    def get_stats(self) -> dict:
        """Get writer statistics."""
        with self._stats_lock:
            return {
                "entries_written": self._entries_written,
                "entries_retried": self._entries_retried,
                "entries_duplicate": self._entries_duplicate,
                "entries_failed": len(self._failed),
                "sync_fallback_count": self._sync_fallback_count,
                "queue_size": self._queue.qsize(),
                "max_queue_size": self.max_queue_size,
            }

    @property
    def queue_size(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return not self._shutdown_event.is_set()
