"""Notifications API - the notification bell endpoints"""
from fastapi import APIRouter, Depends, Query

from ..deps import envelope, get_current_user_id, get_state, maybe_fail
from ..state import DevState

router = APIRouter()


@router.get("")
async def get_notifications(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    state: DevState = Depends(get_state)
):
    """
    Get notifications for the current user.

    - Sorted by newest first
    """
    maybe_fail(state, "notifications.list")
    return envelope(state.list_notifications(user_id, skip=skip, limit=limit))


@router.get("/unread-count")
async def get_unread_count(
    user_id: str = Depends(get_current_user_id),
    state: DevState = Depends(get_state)
):
    """Unread count plus whether any unread one is high priority (badge poll)"""
    maybe_fail(state, "notifications.unread_count")
    return envelope(state.unread_summary(user_id))


@router.put("/read-all")
async def mark_all_read(
    user_id: str = Depends(get_current_user_id),
    state: DevState = Depends(get_state)
):
    """Mark all notifications as read"""
    maybe_fail(state, "notifications.read_all")
    return envelope({"markedCount": state.mark_all_read(user_id)})


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    state: DevState = Depends(get_state)
):
    """Mark a single notification as read"""
    maybe_fail(state, "notifications.read")
    return envelope(state.mark_read(user_id, notification_id))


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    state: DevState = Depends(get_state)
):
    """Delete a notification"""
    maybe_fail(state, "notifications.delete")
    state.delete_notification(user_id, notification_id)
    return envelope(None, message="Notification deleted")
