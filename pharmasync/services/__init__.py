"""Service modules - client state and side effects"""
from .unread_cache import UnreadCache
from .session_store import SessionStore
from .notification_store import NotificationStore, MUTATION_POLICIES
from .alert_dispatcher import AlertDispatcher, LoggingAudioSink, appearance_for, badge_for
from .workflow_service import PharmacyWorkflowService

__all__ = [
    "UnreadCache",
    "SessionStore",
    "NotificationStore",
    "MUTATION_POLICIES",
    "AlertDispatcher",
    "LoggingAudioSink",
    "appearance_for",
    "badge_for",
    "PharmacyWorkflowService",
]
