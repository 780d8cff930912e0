"""Notification Repository - REST access for the notification bell"""
from typing import List

from .api_client import ApiClient
from ..domain.models import NotificationRecord, UnreadSnapshot
from ..domain.errors import ApiResponseError, NotFoundError, NotificationNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class NotificationRepository:
    """Repository for the actor's notification feed (scoped server-side)"""

    BASE_PATH = "/notifications"

    def __init__(self, api: ApiClient):
        self._api = api

    async def list_notifications(self, limit: int = 20, skip: int = 0) -> List[NotificationRecord]:
        """Get a page of notifications, as ordered by the server"""
        data = await self._api.get(self.BASE_PATH, params={"limit": limit, "skip": skip})

        if isinstance(data, dict):
            data = data.get("items", data.get("notifications", []))
        if not isinstance(data, list):
            raise ApiResponseError("Notification list payload is not a list")

        records = []
        for item in data:
            try:
                records.append(NotificationRecord.model_validate(item))
            except ValueError as e:
                logger.warning(f"Skipping unparseable notification: {e}")
        return records

    async def get_unread_snapshot(self) -> UnreadSnapshot:
        """Lightweight badge poll"""
        data = await self._api.get(f"{self.BASE_PATH}/unread-count")
        if not isinstance(data, dict):
            raise ApiResponseError("Unread count payload is not an object")
        return UnreadSnapshot.from_payload(data)

    async def mark_as_read(self, notification_id: str) -> NotificationRecord:
        """Mark a single notification as read"""
        try:
            data = await self._api.put(f"{self.BASE_PATH}/{notification_id}/read")
        except NotFoundError as e:
            raise NotificationNotFoundError(f"Notification {notification_id} not found", details=e.details)
        try:
            return NotificationRecord.model_validate(data)
        except ValueError as e:
            raise ApiResponseError(f"Mark-read payload is invalid: {e}", details={"notification_id": notification_id})

    async def mark_all_as_read(self) -> int:
        """Mark every notification read. Returns count of updated."""
        data = await self._api.put(f"{self.BASE_PATH}/read-all")
        if not isinstance(data, dict):
            return 0
        try:
            return int(data.get("markedCount", 0) or 0)
        except (TypeError, ValueError) as e:
            raise ApiResponseError(f"Mark-all payload is invalid: {e}")

    async def delete_notification(self, notification_id: str) -> None:
        """Delete a notification"""
        try:
            await self._api.delete(f"{self.BASE_PATH}/{notification_id}")
        except NotFoundError as e:
            raise NotificationNotFoundError(f"Notification {notification_id} not found", details=e.details)
