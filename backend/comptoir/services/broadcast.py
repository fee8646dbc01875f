# Overview: Fan-out of "data changed, please refetch" signals to connected clients.

"""
Change broadcaster.

Clients treat an event as a cue to re-fetch the named resource; events
never carry the new state. Each subscriber owns a bounded queue; a full
queue drops the event for that subscriber only, so a slow client cannot
block a request handler.
"""

from __future__ import annotations

import logging
import queue
import threading


logger = logging.getLogger(__name__)

PRODUCTS_UPDATED = "PRODUCTS_UPDATED"
TRANSACTIONS_UPDATED = "TRANSACTIONS_UPDATED"
EXPENSES_UPDATED = "EXPENSES_UPDATED"
EXPENSE_NOTES_UPDATED = "EXPENSE_NOTES_UPDATED"
SETTINGS_UPDATED = "SETTINGS_UPDATED"
USERS_UPDATED = "USERS_UPDATED"
TOMBOLA_UPDATED = "TOMBOLA_UPDATED"
MARKET_PRODUCTS_UPDATED = "MARKET_PRODUCTS_UPDATED"
SCORES_UPDATED = "SCORES_UPDATED"


class EventBroadcaster:
    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: set[queue.Queue] = set()
        self._lock = threading.Lock()

    def subscribe(self) -> queue.Queue:
        q: queue.Queue = queue.Queue(maxsize=self.max_queue_size)
        with self._lock:
            self._subscribers.add(q)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            self._subscribers.discard(q)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def emit(self, event_type: str) -> int:
        """Push {"type": event_type} to every subscriber; returns deliveries."""
        event = {"type": event_type}
        with self._lock:
            subscribers = list(self._subscribers)

        delivered = 0
        for q in subscribers:
            try:
                q.put_nowait(event)
                delivered += 1
            except queue.Full:
                logger.warning("Dropping %s for a slow subscriber", event_type)
        return delivered


broadcaster = EventBroadcaster()


def emit(*event_types: str) -> None:
    """Broadcast after a committed write; never raises into the caller."""
    for event_type in event_types:
        try:
            broadcaster.emit(event_type)
        except Exception:
            logger.exception("Failed to broadcast %s", event_type)
