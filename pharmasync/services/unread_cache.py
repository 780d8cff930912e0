"""Unread Cache - the single shared unread snapshot

Written by the sync engine (whole snapshots, last writer wins) and by
the notification store (clamped adjustments). Nothing else mutates it.
Every local adjustment bumps ``generation``; a polled snapshot issued
before the latest adjustment is stale and dropped.
"""
from typing import Callable, Iterable, List, Optional

from ..domain.models import NotificationRecord, UnreadSnapshot
from ..utils.logger import get_logger

logger = get_logger(__name__)

SnapshotListener = Callable[[UnreadSnapshot], None]


class UnreadCache:
    """Clamped unread count plus high-priority flag"""

    def __init__(self, snapshot: Optional[UnreadSnapshot] = None):
        self._snapshot = snapshot or UnreadSnapshot()
        self._generation = 0
        self._listeners: List[SnapshotListener] = []

    @property
    def snapshot(self) -> UnreadSnapshot:
        return self._snapshot

    @property
    def count(self) -> int:
        return self._snapshot.count

    @property
    def generation(self) -> int:
        return self._generation

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def apply_snapshot(self, snapshot: UnreadSnapshot, generation: Optional[int] = None) -> bool:
        """
        Replace the whole snapshot (never merged field by field)

        Args:
            snapshot: Server snapshot
            generation: ``generation`` read when the poll was issued

        Returns:
            False if the snapshot predates a local adjustment and was dropped
        """
        if generation is not None and generation != self._generation:
            logger.debug("Dropping unread snapshot issued before a local change")
            return False
        self._set(snapshot)
        return True

    def decrement(self, amount: int = 1) -> int:
        """
        Lower the count, never below zero

        Returns:
            The amount actually removed, for an exact later restore
        """
        applied = min(max(amount, 0), self._snapshot.count)
        self._generation += 1
        if applied:
            count = self._snapshot.count - applied
            self._set(UnreadSnapshot(
                count=count,
                has_high_priority_unread=self._snapshot.has_high_priority_unread and count > 0,
            ))
        return applied

    def restore(self, amount: int, high_priority: bool = False) -> None:
        """Add back a previously applied decrement"""
        if amount <= 0:
            return
        self._generation += 1
        self._set(UnreadSnapshot(
            count=self._snapshot.count + amount,
            has_high_priority_unread=self._snapshot.has_high_priority_unread or high_priority,
        ))

    def reset(self) -> None:
        """Everything read (or signed out)"""
        self._generation += 1
        self._set(UnreadSnapshot())

    def reconcile(self, records: Iterable[NotificationRecord], complete: bool) -> None:
        """
        Align the cache with a fetched page

        A complete feed sets the count exactly; a partial page can only
        prove that at least this many are unread.
        """
        self._generation += 1
        unread = [r for r in records if not r.is_read]
        has_high = any(r.is_high_priority for r in unread)
        if complete:
            self._set(UnreadSnapshot(count=len(unread), has_high_priority_unread=has_high))
        elif len(unread) > self._snapshot.count or (has_high and not self._snapshot.has_high_priority_unread):
            self._set(UnreadSnapshot(
                count=max(self._snapshot.count, len(unread)),
                has_high_priority_unread=self._snapshot.has_high_priority_unread or has_high,
            ))

    def _set(self, snapshot: UnreadSnapshot) -> None:
        if snapshot == self._snapshot:
            return
        self._snapshot = snapshot
        logger.debug("Unread snapshot updated", extra={"unread_count": snapshot.count})
        for listener in list(self._listeners):
            listener(snapshot)
