"""Audit Writer - one immutable record per access attempt.

High-level facade used by the decision pipeline. Builds the AuditEntry,
guards against recording the same attempt twice and hands the entry to
the background writer so the response path never waits on storage.
"""

import logging
import threading
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from trustgate.common.constants import AuditConstants, DataConstants
from trustgate.data.schemas.decision import Decision
from trustgate.data.schemas.login_attempt import LoginAttempt
from trustgate.governance.audit.background_writer import BackgroundAuditWriter
from trustgate.governance.audit.store import AuditStore, DuplicateAuditEntryError
from trustgate.governance.schemas import AuditEntry

logger = logging.getLogger(__name__)


class AuditWriter:
    """Records access decisions.

    Duplicate attempt ids are detected in-process through a bounded cache
    of recent ids, and across processes by the store refusing a second
    entry for the same id.
    """

    def __init__(
        self,
        store: AuditStore,
        use_background_writer: bool = True,
        max_retries: int = AuditConstants.MAX_WRITE_RETRIES,
        retry_backoff: float = AuditConstants.RETRY_BACKOFF_SECONDS,
        recent_cache_size: int = AuditConstants.RECENT_ATTEMPT_CACHE_SIZE,
    ):
        self.store = store
        self.recent_cache_size = recent_cache_size
        self._recent: "OrderedDict[str, AuditEntry]" = OrderedDict()
        self._recent_lock = threading.Lock()

        self._background: Optional[BackgroundAuditWriter] = None
        if use_background_writer:
            self._background = BackgroundAuditWriter(
                store=store,
                max_retries=max_retries,
                retry_backoff=retry_backoff,
                on_failure=self._forget,
            )

    def _remember(self, entry: AuditEntry) -> Optional[AuditEntry]:
        """Cache the entry; return the earlier entry if the attempt was seen."""
        with self._recent_lock:
            existing = self._recent.get(entry.attempt_id)
            if existing is not None:
                self._recent.move_to_end(entry.attempt_id)
                return existing
            self._recent[entry.attempt_id] = entry
            while len(self._recent) > self.recent_cache_size:
                self._recent.popitem(last=False)
            return None

    def _forget(self, entry: AuditEntry) -> None:
        """Drop an unpersisted entry so a retry of the attempt is recorded."""
        with self._recent_lock:
            if self._recent.get(entry.attempt_id) is entry:
                del self._recent[entry.attempt_id]

    def record(
        self,
        attempt: LoginAttempt,
        decision: Decision,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditEntry]:
        """Record a decision for an attempt.

        Returns:
            The new AuditEntry, or None if this attempt id was already recorded.
            Never raises on storage failure.
        """
        entry = AuditEntry(
            attempt=attempt,
            decision=decision,
            metadata=metadata or {},
        )

        if self._remember(entry) is not None:
            logger.info(
                "Attempt already recorded, skipping audit",
                extra={"attempt_id": attempt.attempt_id},
            )
            return None

        if self._background is not None:
            self._background.append_entry(entry)
            return entry

        try:
            return self.store.append_entry(entry)
        except DuplicateAuditEntryError:
            logger.info(
                "Attempt already recorded in store",
                extra={"attempt_id": attempt.attempt_id},
            )
            return None
        except Exception as e:
            logger.error(
                f"Audit write failed: {type(e).__name__}: {e}",
                extra={"attempt_id": attempt.attempt_id},
            )
            self._forget(entry)
            return entry

    def get_entries(
        self,
        principal: Optional[str] = None,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
    ) -> List[AuditEntry]:
        """Most recent persisted entries first."""
        limit = max(1, min(limit, DataConstants.MAX_QUERY_LIMIT))
        return self.store.get_entries(principal=principal, limit=limit)

    def flush(self, timeout: Optional[float] = None) -> bool:
        if self._background is None:
            return True
        return self._background.flush(timeout=timeout)

    def get_stats(self) -> Dict[str, Any]:
        if self._background is None:
            return {"background": False}
        return {"background": True, **self._background.get_stats()}

    @property
    def failed_entries(self) -> List[AuditEntry]:
        if self._background is None:
            return []
        return self._background.failed_entries

    def shutdown(self, timeout: Optional[float] = None) -> None:
        if self._background is not None:
            self._background.shutdown(timeout=timeout)
