"""Background polling"""
from .sync_engine import NotificationSyncEngine

__all__ = ["NotificationSyncEngine"]
