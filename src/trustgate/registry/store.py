"""Trust Registry - last trusted state per principal.

The decision pipeline holds `lock(principal)` across read -> evaluate ->
write so two concurrent attempts for the same principal cannot interleave.
Different principals never contend.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from trustgate.common.exceptions import BaselineConflictError, RegistryError
from trustgate.data.schemas.baseline import TrustBaseline
from trustgate.data.schemas.location import GeoLocation


logger = logging.getLogger(__name__)


class TrustRegistry(ABC):
    """Abstract base class for trust baseline storage."""

    def __init__(self):
        # principal -> [lock, holders]; dropped when the last holder exits
        self._locks: dict[str, list] = {}
        self._locks_guard = threading.Lock()

    @abstractmethod
    def get_baseline(self, principal: str) -> Optional[TrustBaseline]:
        """Return the stored baseline, or None if the principal has none."""

    @abstractmethod
    def update_baseline(self, principal: str, baseline: TrustBaseline) -> None:
        """Persist a new baseline.

        `baseline.version` is the version being written; the stored
        version is expected to be one less (absent counts as 0).

        Raises:
            BaselineConflictError: if the stored version moved since it was read
            RegistryError: if the backend is unavailable
        """

    @contextmanager
    def lock(self, principal: str) -> Iterator[None]:
        """Per-principal critical section (re-entrant)."""
        key = principal.strip().lower()
        with self._locks_guard:
            slot = self._locks.setdefault(key, [threading.RLock(), 0])
            slot[1] += 1
        try:
            with slot[0]:
                yield
        finally:
            with self._locks_guard:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._locks[key]

    def enroll(
        self,
        principal: str,
        fingerprint: Optional[str] = None,
        location: Optional[GeoLocation] = None,
        seen_at: Optional[datetime] = None,
        replace: bool = False,
    ) -> TrustBaseline:
        """Seed the baseline for a principal (operator use only).

        `seen_at` defaults to now when a location is given. An existing
        baseline is only overwritten with `replace=True`.

        Raises:
            RegistryError: if a baseline exists and `replace` is False
        """
        key = principal.strip().lower()
        if location is not None and seen_at is None:
            seen_at = datetime.now(timezone.utc)
        with self.lock(key):
            current = self.get_baseline(key)
            if current is not None and not replace:
                raise RegistryError(
                    f"Baseline already exists for {key}",
                    details={"principal": key, "version": current.version},
                )
            baseline = TrustBaseline(
                principal=key,
                trusted_fingerprint=fingerprint,
                last_location=location,
                last_seen_at=seen_at if location is not None else None,
                version=(current.version if current is not None else 0) + 1,
            )
            self.update_baseline(key, baseline)
        logger.info(f"Enrolled baseline for {key}")
        return baseline


class InMemoryTrustRegistry(TrustRegistry):
    """Process-local registry for development and tests."""

    def __init__(self):
        super().__init__()
        self._baselines: dict[str, TrustBaseline] = {}
        self._data_lock = threading.Lock()

    def get_baseline(self, principal: str) -> Optional[TrustBaseline]:
        with self._data_lock:
            return self._baselines.get(principal.strip().lower())

    def update_baseline(self, principal: str, baseline: TrustBaseline) -> None:
        key = principal.strip().lower()
        expected = baseline.version - 1
        with self._data_lock:
            current = self._baselines.get(key)
            stored = current.version if current is not None else 0
            if stored != expected:
                raise BaselineConflictError(key, expected)
            self._baselines[key] = baseline

    def __len__(self) -> int:
        with self._data_lock:
            return len(self._baselines)
