"""Alert Dispatcher - notification appearance and audio cues

Consumes sync engine events and plays exactly one cue per alert. Owns no
UI; presentation layers read ``appearance_for`` and ``badge_for``.
"""
import asyncio
from typing import Dict, List, Optional, Protocol

from ..domain.enums import AlertCue, NotificationType, SyncEventType
from ..domain.models import BadgeAppearance, SyncEvent, TypeAppearance, UnreadSnapshot
from ..utils.logger import get_logger

logger = get_logger(__name__)


TYPE_APPEARANCE: Dict[NotificationType, TypeAppearance] = {
    NotificationType.URGENT_ALERT: TypeAppearance(
        icon="siren", color_class="text-red-600", background_class="bg-red-100",
        label="SOS Alert", pulse=True,
    ),
    NotificationType.STOCK_WARNING: TypeAppearance(
        icon="package", color_class="text-amber-600", background_class="bg-amber-100",
        label="Low Stock",
    ),
    NotificationType.EXPIRY_WARNING: TypeAppearance(
        icon="alert-triangle", color_class="text-orange-600", background_class="bg-orange-100",
        label="Expiring Soon",
    ),
    NotificationType.ANNOUNCEMENT: TypeAppearance(
        icon="megaphone", color_class="text-blue-600", background_class="bg-blue-100",
        label="Announcement",
    ),
    NotificationType.SYSTEM: TypeAppearance(
        icon="bell", color_class="text-gray-600", background_class="bg-gray-100",
        label="System",
    ),
}

DEFAULT_APPEARANCE = TYPE_APPEARANCE[NotificationType.SYSTEM]

BADGE_CAP = 99


class AudioSink(Protocol):
    """Something that can play a cue"""

    def play(self, cue: AlertCue) -> None:
        ...


class LoggingAudioSink:
    """Default sink for headless runs: records and logs cues"""

    def __init__(self):
        self.played: List[AlertCue] = []

    def play(self, cue: AlertCue) -> None:
        self.played.append(cue)
        logger.info(f"Alert cue: {cue.value}")


def appearance_for(notification_type: Optional[NotificationType]) -> TypeAppearance:
    """Appearance for a type; anything unknown renders as SYSTEM"""
    if notification_type is None:
        return DEFAULT_APPEARANCE
    return TYPE_APPEARANCE.get(notification_type, DEFAULT_APPEARANCE)


def badge_for(snapshot: UnreadSnapshot) -> BadgeAppearance:
    """Bell badge for the cached snapshot; hidden at zero"""
    if snapshot.count <= 0:
        return BadgeAppearance(visible=False)

    text = f"{BADGE_CAP}+" if snapshot.count > BADGE_CAP else str(snapshot.count)
    if snapshot.has_high_priority_unread:
        return BadgeAppearance(visible=True, text=text, icon="siren", pulse=True, color_class="bg-red-600")
    return BadgeAppearance(visible=True, text=text)


class AlertDispatcher:
    """
    Map ALERT_RAISED events to a single cue

    Urgent when the event marks a priority escalation, subtle otherwise.
    Playback is scheduled on the event loop and the mute flag is read
    when the cue actually plays.
    """

    def __init__(self, sink: Optional[AudioSink] = None, muted: bool = False):
        self.sink = sink or LoggingAudioSink()
        self.muted = muted
        self._last_sequence = 0
        self._last_epoch: Optional[str] = None

    def set_muted(self, muted: bool) -> None:
        self.muted = muted
        logger.info("Alerts muted" if muted else "Alerts unmuted")

    def toggle_mute(self) -> bool:
        self.set_muted(not self.muted)
        return self.muted

    def handle(self, event: SyncEvent) -> Optional[AlertCue]:
        """
        Schedule the cue for an alert event

        Returns:
            The cue scheduled, or None when the event is not a new alert
        """
        if event.type != SyncEventType.ALERT_RAISED:
            return None

        # Sequences only grow within a session
        if event.session_epoch != self._last_epoch:
            self._last_sequence = 0
            self._last_epoch = event.session_epoch
        if event.sequence <= self._last_sequence:
            return None
        self._last_sequence = event.sequence

        cue = AlertCue.URGENT if event.urgent else AlertCue.SUBTLE
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._play(cue)
        else:
            loop.call_soon(self._play, cue)
        return cue

    def _play(self, cue: AlertCue) -> None:
        if self.muted:
            logger.debug(f"Alert cue {cue.value} suppressed (muted)")
            return
        try:
            self.sink.play(cue)
        except Exception as e:
            logger.warning(f"Audio playback failed: {e}")
