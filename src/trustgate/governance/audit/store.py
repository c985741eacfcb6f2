"""Audit Store - Abstraction for audit log persistence.

This module provides an interface for audit log storage backends,
decoupling audit logic from specific persistence mechanisms.

Design principles:
- Append-only, one entry per attempt id
- Thread-safe operations
- Hash chain integrity where the backend supports it
"""

import fcntl
import hashlib
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from trustgate.common.constants import AuditConstants, DataConstants
from trustgate.common.exceptions import AuditError
from trustgate.governance.schemas import AuditEntry

logger = logging.getLogger(__name__)


class AuditLogIntegrityError(AuditError):
    """Raised when audit log integrity check fails."""


class DuplicateAuditEntryError(AuditError):
    """Raised when an entry for the same attempt id is already stored."""

    def __init__(self, attempt_id: str):
        super().__init__(
            f"Audit entry for attempt {attempt_id} already exists",
            details={"attempt_id": attempt_id},
        )


def serialize_for_hash(entry_dict: dict) -> str:
    """Serialize entry dict canonically for hash computation."""
    def deep_serialize(obj):
        if isinstance(obj, dict):
            return {k: deep_serialize(v) for k, v in sorted(obj.items())}
        if isinstance(obj, list):
            return [deep_serialize(item) for item in obj]
        if isinstance(obj, datetime):
            return obj.isoformat()
        return obj

    return json.dumps(deep_serialize(entry_dict), sort_keys=True, ensure_ascii=False)


def compute_hash(content: str, algorithm: str = AuditConstants.HASH_ALGORITHM) -> str:
    hasher = hashlib.new(algorithm)
    hasher.update(content.encode("utf-8"))
    return hasher.hexdigest()


def chain_entry(
    entry: AuditEntry,
    previous_hash: Optional[str],
    algorithm: str = AuditConstants.HASH_ALGORITHM,
) -> AuditEntry:
    """Return a copy of `entry` linked to `previous_hash` with its own hash."""
    entry_dict = entry.model_dump(mode="json")
    entry_dict["previous_hash"] = previous_hash
    entry_dict["entry_hash"] = None
    entry_dict["entry_hash"] = compute_hash(serialize_for_hash(entry_dict), algorithm)
    return AuditEntry.model_validate(entry_dict)


def verify_chain(
    entry_dicts: Iterator[dict],
    algorithm: str = AuditConstants.HASH_ALGORITHM,
) -> bool:
    """Check previous-hash links and entry hashes of serialized entries.

    Raises:
        AuditLogIntegrityError: on the first broken link or tampered entry
    """
    previous_hash = None
    for position, entry_dict in enumerate(entry_dicts, start=1):
        if entry_dict.get("previous_hash") != previous_hash:
            raise AuditLogIntegrityError(
                f"Hash chain broken at entry {position}. "
                f"Expected previous_hash={previous_hash}, "
                f"got {entry_dict.get('previous_hash')}"
            )

        stored_hash = entry_dict.get("entry_hash")
        candidate = dict(entry_dict, entry_hash=None)
        if compute_hash(serialize_for_hash(candidate), algorithm) != stored_hash:
            raise AuditLogIntegrityError(
                f"Entry hash mismatch at entry {position}. "
                f"Entry may have been tampered with."
            )
        previous_hash = stored_hash
    return True


class AuditStore(ABC):
    """Abstract base class for audit log storage backends.

    Implementations must provide thread-safe, append-only storage that
    refuses a second entry for the same attempt id.
    """

    @abstractmethod
    def append_entry(self, entry: AuditEntry) -> AuditEntry:
        """Append an audit entry to the store.

        Returns:
            The entry as stored (hash chain fields populated where supported)

        Raises:
            DuplicateAuditEntryError: if the attempt id is already stored
            AuditError: if the write fails
        """

    @abstractmethod
    def contains(self, attempt_id: str) -> bool:
        """Whether an entry for the attempt id is already stored."""

    @abstractmethod
    def get_entries(
        self,
        principal: Optional[str] = None,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
    ) -> List[AuditEntry]:
        """Most recent entries first, optionally for one principal."""

    @abstractmethod
    def verify_integrity(self, date: Optional[str] = None) -> bool:
        """Verify hash chain integrity of stored entries.

        Raises:
            AuditLogIntegrityError: If integrity check fails
        """

    def get_last_hash(self) -> Optional[str]:
        return None


class InMemoryAuditStore(AuditStore):
    """Process-local audit store with a single hash chain."""

    def __init__(self, hash_algorithm: str = AuditConstants.HASH_ALGORITHM):
        self.hash_algorithm = hash_algorithm
        self._entries: List[AuditEntry] = []
        self._attempt_ids: set[str] = set()
        self._lock = threading.Lock()

    def append_entry(self, entry: AuditEntry) -> AuditEntry:
        with self._lock:
            if entry.attempt_id in self._attempt_ids:
                raise DuplicateAuditEntryError(entry.attempt_id)
            previous = self._entries[-1].entry_hash if self._entries else None
            entry = chain_entry(entry, previous, self.hash_algorithm)
            self._entries.append(entry)
            self._attempt_ids.add(entry.attempt_id)
            return entry

    def contains(self, attempt_id: str) -> bool:
        with self._lock:
            return attempt_id in self._attempt_ids

    def get_entries(
        self,
        principal: Optional[str] = None,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
    ) -> List[AuditEntry]:
        wanted = principal.strip().lower() if principal else None
        with self._lock:
            snapshot = list(self._entries)
        results = []
        for entry in reversed(snapshot):
            if wanted and entry.principal != wanted:
                continue
            results.append(entry)
            if len(results) >= limit:
                break
        return results

    def verify_integrity(self, date: Optional[str] = None) -> bool:
        with self._lock:
            dicts = [e.model_dump(mode="json") for e in self._entries]
        return verify_chain(iter(dicts), self.hash_algorithm)

    def get_last_hash(self) -> Optional[str]:
        with self._lock:
            return self._entries[-1].entry_hash if self._entries else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class FileAuditStore(AuditStore):
    """File-based audit store with JSONL format and hash chain integrity.

    Features:
    - Append-only JSONL files with daily rotation, one chain per file
    - Hash chain for tamper detection
    - Atomic writes with file locking
    - Sidecar metadata for fast startup
    - In-memory attempt-id index rebuilt from existing logs
    """

    METADATA_SUFFIX = ".meta"

    def __init__(
        self,
        log_dir: str | Path,
        log_filename_pattern: str = "trustgate_audit_{date}.jsonl",
        hash_algorithm: str = AuditConstants.HASH_ALGORITHM,
        fsync_on_write: bool = False,
    ):
        """Initialize file audit store.

        Args:
            log_dir: Directory for audit logs.
            log_filename_pattern: Pattern for log filename. {date} is replaced.
            hash_algorithm: Hash algorithm for integrity checks.
            fsync_on_write: Whether to fsync after each write (slower but safer).
        """
        self.log_dir = Path(log_dir)
        self.log_filename_pattern = log_filename_pattern
        self.hash_algorithm = hash_algorithm
        self.fsync_on_write = fsync_on_write

        self._lock = threading.Lock()

        self.log_dir.mkdir(parents=True, exist_ok=True)
        try:
            os.chmod(self.log_dir, 0o700)
        except OSError as e:
            logger.debug(f"Could not restrict audit dir permissions: {e}")

        self._chain_date = self._today()
        self._last_hash: Optional[str] = self._load_last_hash(self._chain_date)
        self._attempt_ids: set[str] = self._build_attempt_index()

    @staticmethod
    def _today() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d")

    def _log_path(self, date: str) -> Path:
        return self.log_dir / self.log_filename_pattern.replace("{date}", date)

    def _metadata_path(self, date: str) -> Path:
        log_path = self._log_path(date)
        return log_path.with_suffix(log_path.suffix + self.METADATA_SUFFIX)

    def _read_lines(self, log_path: Path) -> Iterator[str]:
        if not log_path.exists():
            return
        with open(log_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    yield line

    def _load_last_hash(self, date: str) -> Optional[str]:
        """Load last hash from metadata file or scan log."""
        meta_path = self._metadata_path(date)
        if meta_path.exists():
            try:
                with open(meta_path, "r", encoding="utf-8") as f:
                    return json.load(f).get("last_hash")
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Ignoring unreadable audit metadata {meta_path}: {e}")

        last_hash = None
        for line in self._read_lines(self._log_path(date)):
            try:
                last_hash = json.loads(line).get("entry_hash")
            except json.JSONDecodeError:
                logger.warning(f"Skipped malformed audit line in {date} log")
        return last_hash

    def _save_metadata(self, date: str, last_hash: str) -> None:
        meta = {
            "last_hash": last_hash,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            with open(self._metadata_path(date), "w", encoding="utf-8") as f:
                json.dump(meta, f)
        except OSError as e:
            logger.warning(f"Could not write audit metadata: {e}")

    def _build_attempt_index(self) -> set[str]:
        attempt_ids: set[str] = set()
        for log_path in self.get_log_files():
            for line in self._read_lines(log_path):
                try:
                    attempt_ids.add(json.loads(line)["attempt"]["attempt_id"])
                except (json.JSONDecodeError, KeyError, TypeError):
                    logger.warning(f"Skipped malformed audit line in {log_path.name}")
        return attempt_ids

    def append_entry(self, entry: AuditEntry) -> AuditEntry:
        """Append entry to log file with atomic write and file locking."""
        with self._lock:
            if entry.attempt_id in self._attempt_ids:
                raise DuplicateAuditEntryError(entry.attempt_id)

            today = self._today()
            if today != self._chain_date:
                self._chain_date = today
                self._last_hash = self._load_last_hash(today)

            entry = chain_entry(entry, self._last_hash, self.hash_algorithm)
            log_path = self._log_path(today)

            try:
                fd = os.open(
                    str(log_path),
                    os.O_WRONLY | os.O_CREAT | os.O_APPEND,
                    0o600
                )
                try:
                    fcntl.flock(fd, fcntl.LOCK_EX)
                    try:
                        os.write(fd, (entry.to_jsonl() + "\n").encode("utf-8"))
                        if self.fsync_on_write:
                            os.fsync(fd)
                    finally:
                        fcntl.flock(fd, fcntl.LOCK_UN)
                finally:
                    os.close(fd)
            except OSError as e:
                raise AuditError(
                    f"Failed to write audit entry: {e}",
                    details={"attempt_id": entry.attempt_id, "path": str(log_path)},
                ) from e

            self._last_hash = entry.entry_hash
            self._attempt_ids.add(entry.attempt_id)
            self._save_metadata(today, entry.entry_hash)
            return entry

    def contains(self, attempt_id: str) -> bool:
        with self._lock:
            return attempt_id in self._attempt_ids

    def get_entries(
        self,
        principal: Optional[str] = None,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
    ) -> List[AuditEntry]:
        """Most recent entries first, newest daily file first."""
        wanted = principal.strip().lower() if principal else None
        results: List[AuditEntry] = []

        for log_path in reversed(self.get_log_files()):
            for line in reversed(list(self._read_lines(log_path))):
                try:
                    entry = AuditEntry.from_jsonl(line)
                except ValueError as e:
                    logger.warning(f"Skipped malformed audit entry: {e}")
                    continue
                if wanted and entry.principal != wanted:
                    continue
                results.append(entry)
                if len(results) >= limit:
                    return results
        return results

    def verify_integrity(self, date: Optional[str] = None) -> bool:
        """Verify hash chain integrity of one daily log file."""
        log_path = self._log_path(date or self._today())

        def entry_dicts() -> Iterator[dict]:
            for number, line in enumerate(self._read_lines(log_path), start=1):
                try:
                    yield json.loads(line)
                except json.JSONDecodeError as e:
                    raise AuditLogIntegrityError(
                        f"Malformed JSON at line {number}: {e}"
                    ) from e

        return verify_chain(entry_dicts(), self.hash_algorithm)

    def get_last_hash(self) -> Optional[str]:
        return self._last_hash

    def get_log_files(self) -> List[Path]:
        """Get list of all audit log files, oldest first."""
        pattern = self.log_filename_pattern.replace("{date}", "*")
        return sorted(self.log_dir.glob(pattern))
