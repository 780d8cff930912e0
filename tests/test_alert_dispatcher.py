"""Tests for alert cues and notification appearance."""

import asyncio

import pytest

from pharmasync.domain.enums import AlertCue, NotificationType, SyncEventType
from pharmasync.domain.models import SyncEvent, UnreadSnapshot
from pharmasync.services.alert_dispatcher import (
    AlertDispatcher, LoggingAudioSink, appearance_for, badge_for
)


def alert(sequence: int, urgent: bool = False, epoch: str = "SES-1") -> SyncEvent:
    return SyncEvent(
        type=SyncEventType.ALERT_RAISED,
        snapshot=UnreadSnapshot(count=5, has_high_priority_unread=urgent),
        previous=UnreadSnapshot(count=3),
        urgent=urgent,
        sequence=sequence,
        session_epoch=epoch,
    )


class TestAlertDispatcher:
    def test_plays_one_cue_per_alert_without_loop(self):
        sink = LoggingAudioSink()
        dispatcher = AlertDispatcher(sink)

        assert dispatcher.handle(alert(1, urgent=True)) == AlertCue.URGENT
        assert dispatcher.handle(alert(2)) == AlertCue.SUBTLE
        assert sink.played == [AlertCue.URGENT, AlertCue.SUBTLE]

    def test_same_event_is_handled_once(self):
        sink = LoggingAudioSink()
        dispatcher = AlertDispatcher(sink)

        dispatcher.handle(alert(7))
        assert dispatcher.handle(alert(7)) is None
        assert sink.played == [AlertCue.SUBTLE]

    def test_older_sequence_in_the_same_session_is_ignored(self):
        sink = LoggingAudioSink()
        dispatcher = AlertDispatcher(sink)

        dispatcher.handle(alert(5))
        assert dispatcher.handle(alert(3)) is None
        assert dispatcher.handle(alert(6)) == AlertCue.SUBTLE
        assert len(sink.played) == 2

    def test_sequence_numbers_restart_with_a_new_session(self):
        sink = LoggingAudioSink()
        dispatcher = AlertDispatcher(sink)

        dispatcher.handle(alert(1, epoch="SES-1"))
        dispatcher.handle(alert(1, epoch="SES-2"))
        assert len(sink.played) == 2

    def test_count_changes_are_ignored(self):
        dispatcher = AlertDispatcher(LoggingAudioSink())
        event = alert(1).model_copy(update={"type": SyncEventType.COUNT_CHANGED})
        assert dispatcher.handle(event) is None

    @pytest.mark.asyncio
    async def test_mute_is_read_when_the_cue_plays(self):
        sink = LoggingAudioSink()
        dispatcher = AlertDispatcher(sink)

        assert dispatcher.handle(alert(1, urgent=True)) == AlertCue.URGENT
        dispatcher.set_muted(True)
        await asyncio.sleep(0)

        assert sink.played == []

    def test_toggle_mute(self):
        dispatcher = AlertDispatcher(LoggingAudioSink())
        assert dispatcher.toggle_mute() is True
        assert dispatcher.toggle_mute() is False

    def test_sink_failure_is_contained(self):
        class BrokenSink:
            def play(self, cue):
                raise OSError("no audio device")

        assert AlertDispatcher(BrokenSink()).handle(alert(1)) == AlertCue.SUBTLE


class TestAppearance:
    def test_urgent_alerts_pulse(self):
        appearance = appearance_for(NotificationType.URGENT_ALERT)
        assert appearance.pulse is True
        assert appearance.label == "SOS Alert"

    def test_unknown_type_renders_as_system(self):
        assert appearance_for(None) == appearance_for(NotificationType.SYSTEM)

    def test_badge_hidden_at_zero(self):
        assert badge_for(UnreadSnapshot()).visible is False

    def test_badge_caps_text(self):
        assert badge_for(UnreadSnapshot(count=99)).text == "99"
        assert badge_for(UnreadSnapshot(count=100)).text == "99+"

    def test_high_priority_badge(self):
        badge = badge_for(UnreadSnapshot(count=2, has_high_priority_unread=True))
        assert badge.icon == "siren"
        assert badge.pulse is True
