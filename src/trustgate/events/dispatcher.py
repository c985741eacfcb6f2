"""Event Dispatcher - live fan-out of completed decisions.

Each subscriber owns a bounded queue. Publishing never blocks: a full
queue drops the entry for that subscriber only and counts the drop.
There is no replay; a subscription sees only entries published after it
was opened.
"""

import logging
import queue
import threading
from typing import Callable, Iterable, Iterator, Optional
from uuid import uuid4

from trustgate.common.constants import DispatcherConstants
from trustgate.governance.schemas import AuditEntry

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """A live channel for one observer.

    `principals` of None receives every principal; an empty set receives
    nothing.
    """

    def __init__(
        self,
        dispatcher: "EventDispatcher",
        principals: Optional[Iterable[str]] = None,
        max_queue_size: int = DispatcherConstants.SUBSCRIBER_QUEUE_SIZE,
    ):
        self.subscription_id = f"sub_{uuid4().hex[:12]}"
        self.principals: Optional[frozenset[str]] = (
            None if principals is None
            else frozenset(p.strip().lower() for p in principals if p.strip())
        )
        self._dispatcher = dispatcher
        # One extra slot so the close sentinel always fits
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue_size + 1)
        self._max_queue_size = max_queue_size
        self._closed = threading.Event()
        self._dropped = 0
        self._delivered = 0
        self._lock = threading.Lock()
        self._listener: Optional[Callable[[], None]] = None

    def matches(self, principal: str) -> bool:
        if self.principals is None:
            return True
        return principal in self.principals

    def set_listener(self, listener: Optional[Callable[[], None]]) -> None:
        """Register a callback run after each delivery and on close.

        The callback runs on the publishing thread and must not block.
        Async readers use it to wake up and drain with `get_nowait`.
        """
        self._listener = listener

    def _notify(self) -> None:
        listener = self._listener
        if listener is None:
            return
        try:
            listener()
        except Exception as e:
            logger.debug(
                f"Subscription listener failed: {type(e).__name__}: {e}",
                extra={"subscription_id": self.subscription_id},
            )

    def _offer(self, entry: AuditEntry) -> bool:
        """Non-blocking enqueue; False if the entry was dropped."""
        if self._closed.is_set():
            return False
        with self._lock:
            if self._queue.qsize() >= self._max_queue_size:
                self._dropped += 1
                return False
            try:
                self._queue.put_nowait(entry)
            except queue.Full:
                self._dropped += 1
                return False
            self._delivered += 1
        self._notify()
        return True

    def _unwrap(self, item: object) -> Optional[AuditEntry]:
        if item is _CLOSED:
            # Leave the sentinel for any other waiting reader
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def get(self, timeout: Optional[float] = None) -> Optional[AuditEntry]:
        """Next entry, or None on timeout or once the subscription is closed."""
        if self._closed.is_set() and self._queue.empty():
            return None
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        return self._unwrap(item)

    def get_nowait(self) -> Optional[AuditEntry]:
        """Next queued entry, or None if nothing is waiting."""
        try:
            item = self._queue.get_nowait()
        except queue.Empty:
            return None
        return self._unwrap(item)

    def __iter__(self) -> Iterator[AuditEntry]:
        while True:
            entry = self.get(timeout=DispatcherConstants.SUBSCRIBER_POLL_TIMEOUT)
            if entry is not None:
                yield entry
            elif self._closed.is_set():
                return

    def close(self) -> None:
        """Stop receiving entries and release waiting readers."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._dispatcher._unsubscribe(self)
        with self._lock:
            try:
                self._queue.put_nowait(_CLOSED)
            except queue.Full:
                logger.debug(f"Subscription {self.subscription_id} queue full at close")
        self._notify()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def dropped(self) -> int:
        with self._lock:
            return self._dropped

    @property
    def delivered(self) -> int:
        with self._lock:
            return self._delivered

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class EventDispatcher:
    """Publishes audit entries to open subscriptions."""

    def __init__(self, queue_size: int = DispatcherConstants.SUBSCRIBER_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscriptions: dict[str, Subscription] = {}
        self._lock = threading.Lock()
        self._published = 0

    def subscribe(self, principals: Optional[Iterable[str]] = None) -> Subscription:
        """Open a subscription filtered by a principal allow-list."""
        subscription = Subscription(self, principals, max_queue_size=self.queue_size)
        with self._lock:
            self._subscriptions[subscription.subscription_id] = subscription
        logger.info(
            "Subscription opened",
            extra={
                "subscription_id": subscription.subscription_id,
                "principals": None if subscription.principals is None else sorted(subscription.principals),
            },
        )
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            removed = self._subscriptions.pop(subscription.subscription_id, None)
        if removed is not None:
            logger.info(
                "Subscription closed",
                extra={
                    "subscription_id": subscription.subscription_id,
                    "dropped": subscription.dropped,
                },
            )

    def publish(self, entry: AuditEntry) -> int:
        """Deliver an entry to every matching subscription.

        Returns:
            Number of subscriptions the entry was delivered to. Never blocks.
        """
        with self._lock:
            targets = list(self._subscriptions.values())
            self._published += 1

        delivered = 0
        for subscription in targets:
            if not subscription.matches(entry.principal):
                continue
            if subscription._offer(entry):
                delivered += 1
            else:
                logger.warning(
                    "Subscriber queue full, event dropped",
                    extra={
                        "subscription_id": subscription.subscription_id,
                        "attempt_id": entry.attempt_id,
                    },
                )
        return delivered

    def close_all(self) -> None:
        with self._lock:
            targets = list(self._subscriptions.values())
        for subscription in targets:
            subscription.close()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def get_stats(self) -> dict:
        with self._lock:
            subscriptions = list(self._subscriptions.values())
            published = self._published
        return {
            "published": published,
            "subscribers": len(subscriptions),
            "dropped": sum(s.dropped for s in subscriptions),
        }
