"""Notification Store - the in-memory feed and its optimistic mutations

Mutations update local state first and then confirm with the server.
What happens when the server refuses is declared per operation in
``MUTATION_POLICIES``: read-state is eventually consistent and never
rolled back, deletion is rolled back.
"""
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from ..config.settings import Settings, settings as default_settings
from ..domain.enums import MutationKind
from ..domain.errors import DomainError, NotFoundError, StaleSessionError
from ..domain.models import NotificationRecord, OperationResult, sort_newest_first
from ..repositories.notification_repo import NotificationRepository
from ..utils.logger import get_logger
from .unread_cache import UnreadCache

if TYPE_CHECKING:
    from .session_store import SessionStore

logger = get_logger(__name__)


class MutationPolicy(BaseModel):
    """How an optimistic mutation reacts to a server failure"""
    model_config = ConfigDict(frozen=True)

    rollback_on_failure: bool
    not_found_is_success: bool = False


MUTATION_POLICIES: Dict[MutationKind, MutationPolicy] = {
    MutationKind.MARK_READ: MutationPolicy(rollback_on_failure=False),
    MutationKind.MARK_ALL_READ: MutationPolicy(rollback_on_failure=False),
    # Already gone on the server is the outcome the user asked for
    MutationKind.DELETE: MutationPolicy(rollback_on_failure=True, not_found_is_success=True),
}


class NotificationStore:
    """
    The actor's notification list plus the shared unread cache

    Invariants kept across fetches within one session:
    - a record read locally never turns unread again
    - a record with a delete in flight stays hidden
    - only the most recently issued fetch is applied
    """

    def __init__(
        self,
        repo: NotificationRepository,
        cache: UnreadCache,
        session: "SessionStore",
        config: Optional[Settings] = None
    ):
        config = config or default_settings
        self.repo = repo
        self.cache = cache
        self.session = session
        self.page_size = config.notification_page_size

        self._records: List[NotificationRecord] = []
        self._read_ids: Set[str] = set()
        self._read_all_cutoff: Optional[datetime] = None
        self._pending_deletes: Set[str] = set()
        self._fetch_seq = 0
        self.error: Optional[str] = None
        self.is_loading = False

    @property
    def records(self) -> Tuple[NotificationRecord, ...]:
        return tuple(self._records)

    @property
    def unread_records(self) -> Tuple[NotificationRecord, ...]:
        return tuple(r for r in self._records if not r.is_read)

    def get(self, notification_id: str) -> Optional[NotificationRecord]:
        for record in self._records:
            if record.id == notification_id:
                return record
        return None

    # =========================================================================
    # Fetch
    # =========================================================================

    async def fetch_page(self, limit: Optional[int] = None, offset: int = 0) -> OperationResult:
        """
        Replace the list with one server page

        On failure the list is kept and ``error`` is set.
        """
        limit = limit or self.page_size
        self._fetch_seq += 1
        seq = self._fetch_seq
        epoch = self.session.epoch
        self.is_loading = True

        try:
            page = await self.repo.list_notifications(limit=limit, skip=offset)
        except DomainError as e:
            if seq == self._fetch_seq and self.session.is_current(epoch):
                self.is_loading = False
                self.error = e.message
            logger.warning(f"Notification fetch failed: {e.message}", extra={"error_code": e.error_code})
            return OperationResult.from_error(e)

        if not self.session.is_current(epoch):
            return OperationResult.from_error(StaleSessionError("Session changed during fetch"))
        if seq != self._fetch_seq:
            logger.debug("Discarding superseded notification fetch")
            return OperationResult.fail("Superseded by a newer fetch", "SUPERSEDED")

        records = [
            self._with_local_state(record)
            for record in page
            if record.id not in self._pending_deletes
        ]
        self._records = sort_newest_first(records)
        self.error = None
        self.is_loading = False

        complete = offset == 0 and len(page) < limit
        self.cache.reconcile(self._records, complete=complete)
        return OperationResult.ok(self.records)

    async def refresh(self) -> OperationResult:
        """Manual reload of the first page"""
        return await self.fetch_page(self.page_size, 0)

    def _with_local_state(self, record: NotificationRecord) -> NotificationRecord:
        if record.is_read:
            return record
        if record.id in self._read_ids or self._covered_by_read_all(record):
            return record.as_read()
        return record

    def _covered_by_read_all(self, record: NotificationRecord) -> bool:
        return self._read_all_cutoff is not None and record.created_at <= self._read_all_cutoff

    # =========================================================================
    # Mutations
    # =========================================================================

    async def mark_read(self, notification_id: str) -> OperationResult:
        """Mark one record read; never rolled back"""
        record = self.get(notification_id)
        if record is not None and record.is_read:
            return OperationResult.ok(record)

        self._read_ids.add(notification_id)
        if record is not None:
            self._replace(record.as_read())
            self.cache.decrement(1)

        return await self._confirm(
            MutationKind.MARK_READ,
            lambda: self.repo.mark_as_read(notification_id),
            notification_id=notification_id,
        )

    async def mark_all_read(self) -> OperationResult:
        """Mark everything read; a no-op when nothing is unread"""
        if not self.unread_records and self.cache.count == 0:
            return OperationResult.ok(0)

        if self._records:
            newest = max(r.created_at for r in self._records)
            if self._read_all_cutoff is None or newest > self._read_all_cutoff:
                self._read_all_cutoff = newest
        self._read_ids.update(r.id for r in self._records)
        # The server marks records with a delete in flight as well
        self._read_ids.update(self._pending_deletes)
        self._records = [r if r.is_read else r.as_read() for r in self._records]
        self.cache.reset()

        return await self._confirm(MutationKind.MARK_ALL_READ, self.repo.mark_all_as_read)

    async def delete(self, notification_id: str) -> OperationResult:
        """Remove a record; restored in place if the server refuses"""
        if notification_id in self._pending_deletes:
            return OperationResult.fail("Delete already in progress", "CONFLICT")

        record = self.get(notification_id)
        applied = 0
        self._pending_deletes.add(notification_id)
        if record is not None:
            self._records = [r for r in self._records if r.id != notification_id]
            if not record.is_read:
                applied = self.cache.decrement(1)

        def rollback() -> None:
            if record is None:
                return
            restored = self._with_local_state(record)
            self._records = sort_newest_first(self._records + [restored])
            # Not if a mark-all-read already zeroed the count for it
            if not restored.is_read:
                self.cache.restore(applied, high_priority=restored.is_high_priority)
            logger.info("Restored notification after failed delete", extra={"notification_id": notification_id})

        try:
            return await self._confirm(
                MutationKind.DELETE,
                lambda: self.repo.delete_notification(notification_id),
                rollback=rollback,
                notification_id=notification_id,
            )
        finally:
            self._pending_deletes.discard(notification_id)

    async def _confirm(
        self,
        kind: MutationKind,
        server_call: Callable[[], Awaitable[object]],
        rollback: Optional[Callable[[], None]] = None,
        notification_id: Optional[str] = None
    ) -> OperationResult:
        """Send the server half of an optimistic mutation and apply its policy"""
        policy = MUTATION_POLICIES[kind]
        epoch = self.session.epoch
        try:
            data = await server_call()
        except NotFoundError as e:
            if policy.not_found_is_success:
                return OperationResult.ok()
            return self._mutation_failed(kind, policy, e, epoch, rollback, notification_id)
        except DomainError as e:
            return self._mutation_failed(kind, policy, e, epoch, rollback, notification_id)
        return OperationResult.ok(data)

    def _mutation_failed(
        self,
        kind: MutationKind,
        policy: MutationPolicy,
        error: DomainError,
        epoch: str,
        rollback: Optional[Callable[[], None]],
        notification_id: Optional[str]
    ) -> OperationResult:
        logger.warning(
            f"{kind.value} failed on server: {error.message}",
            extra={"notification_id": notification_id, "error_code": error.error_code}
        )
        if policy.rollback_on_failure and rollback is not None and self.session.is_current(epoch):
            rollback()
        return OperationResult.from_error(error)

    def _replace(self, record: NotificationRecord) -> None:
        self._records = [record if r.id == record.id else r for r in self._records]

    def clear(self) -> None:
        """Drop everything (logout)"""
        self._fetch_seq += 1
        self._records = []
        self._read_ids.clear()
        self._read_all_cutoff = None
        self._pending_deletes.clear()
        self.error = None
        self.is_loading = False
        self.cache.reset()
