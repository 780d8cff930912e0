"""Notification Sync Engine - unread-count polling with APScheduler

Polls the unread snapshot on a fixed interval and turns changes into
typed events. It owns the comparison logic only; what an alert sounds
or looks like is up to subscribers.

Handles:
- First observation after start or a session change never alerts
- One ALERT_RAISED per increase, urgent only on a priority escalation
- Failed polls change nothing (baseline and cache are kept)
- Ticks run as independent jobs so a hung poll never blocks the next
"""
from typing import Callable, Dict, List, Optional, TYPE_CHECKING
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config.settings import Settings, settings as default_settings
from ..domain.enums import SyncEventType
from ..domain.errors import DomainError, StaleSessionError, SessionError
from ..domain.models import OperationResult, SyncEvent, UnreadSnapshot
from ..repositories.notification_repo import NotificationRepository
from ..services.unread_cache import UnreadCache
from ..utils.idgen import generate_correlation_id
from ..utils.logger import get_logger, set_correlation_id
from ..utils.time import utc_now

if TYPE_CHECKING:
    from ..services.session_store import SessionStore

logger = get_logger(__name__)

SyncEventCallback = Callable[[SyncEvent], None]


class NotificationSyncEngine:
    """
    idle -> polling -> idle on a fixed period

    ``start()`` schedules the poll job with an immediate first run,
    ``stop()`` removes it (logout, notification UI closed).
    """

    JOB_ID = "poll_unread_snapshot"

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
        self.interval_seconds = config.poll_interval_seconds
        self.max_in_flight = config.poll_max_in_flight

        self.scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False
        self._subscribers: Dict[SyncEventType, List[SyncEventCallback]] = {
            event_type: [] for event_type in SyncEventType
        }

        self._sequence = 0
        self._last_applied_sequence = 0
        self._baseline: Optional[UnreadSnapshot] = None
        self._baseline_epoch: Optional[str] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start polling (must be called from the running event loop)"""
        if self._is_running:
            logger.warning("Sync engine already running")
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            name="Poll unread notification snapshot",
            replace_existing=True,
            max_instances=self.max_in_flight,
            coalesce=False,
            next_run_time=utc_now(),
        )
        self.scheduler.start()
        self._is_running = True
        logger.info(
            "Notification sync started",
            extra={"session_epoch": self.session.epoch}
        )

    def stop(self) -> None:
        """Cancel the poll timer; in-flight ticks finish but are discarded if stale"""
        if self.scheduler:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None
        if self._is_running:
            self._is_running = False
            logger.info("Notification sync stopped")
        self._baseline = None
        self._baseline_epoch = None

    @property
    def is_running(self) -> bool:
        """Check if polling is scheduled"""
        return self._is_running

    @property
    def baseline(self) -> Optional[UnreadSnapshot]:
        """Last observed snapshot (None until the first successful poll)"""
        return self._baseline

    def subscribe(self, event_type: SyncEventType, callback: SyncEventCallback) -> Callable[[], None]:
        """Register a callback; returns the matching unsubscribe"""
        callbacks = self._subscribers[event_type]
        callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    # =========================================================================
    # Polling
    # =========================================================================

    async def tick(self) -> Optional[UnreadSnapshot]:
        """One background poll; failures are logged, never raised"""
        set_correlation_id(generate_correlation_id())
        result = await self._poll()
        if not result.success:
            if result.error_code not in (StaleSessionError.error_code, "SUPERSEDED", SessionError.error_code):
                logger.warning(f"Unread poll failed: {result.reason}", extra={"error_code": result.error_code})
            return None
        return result.data

    async def refresh(self) -> OperationResult:
        """User-triggered poll; the result carries any error for display"""
        return await self._poll()

    async def _poll(self) -> OperationResult:
        if not self.session.is_authenticated:
            return OperationResult.fail("Not signed in", SessionError.error_code)

        self._sequence += 1
        sequence = self._sequence
        epoch = self.session.epoch
        generation = self.cache.generation

        try:
            snapshot = await self.repo.get_unread_snapshot()
        except DomainError as e:
            return OperationResult.from_error(e)

        if not self.session.is_current(epoch):
            logger.debug("Discarding poll result from a previous session")
            return OperationResult.from_error(StaleSessionError("Session changed during poll"))
        if sequence < self._last_applied_sequence:
            logger.debug("Discarding poll result overtaken by a newer poll")
            return OperationResult.fail("Superseded by a newer poll", "SUPERSEDED")
        self._last_applied_sequence = sequence

        if self._baseline_epoch != epoch:
            self._baseline = None
            self._baseline_epoch = epoch

        previous = self._baseline
        self._baseline = snapshot

        cached_before = self.cache.snapshot
        self.cache.apply_snapshot(snapshot, generation=generation)

        if previous is not None and snapshot.count > previous.count:
            urgent = snapshot.has_high_priority_unread and not previous.has_high_priority_unread
            logger.info(
                f"Unread count rose {previous.count} -> {snapshot.count}",
                extra={"unread_count": snapshot.count, "session_epoch": epoch}
            )
            self._emit(SyncEvent(
                type=SyncEventType.ALERT_RAISED,
                snapshot=snapshot,
                previous=previous,
                urgent=urgent,
                sequence=sequence,
                session_epoch=epoch,
            ))

        if self.cache.snapshot.count != cached_before.count:
            self._emit(SyncEvent(
                type=SyncEventType.COUNT_CHANGED,
                snapshot=self.cache.snapshot,
                previous=cached_before,
                sequence=sequence,
                session_epoch=epoch,
            ))

        return OperationResult.ok(snapshot)

    def _emit(self, event: SyncEvent) -> None:
        for callback in list(self._subscribers[event.type]):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Sync subscriber failed on {event.type.value}: {e}", exc_info=True)
