"""Dev Controls API - push notifications, decide applications, inject failures

Unauthenticated; only mounted outside production.
"""
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import envelope, get_state
from ..state import DevState
from ...domain.enums import WorkflowEvent
from ...domain.errors import NotFoundError

router = APIRouter()


class PushNotificationRequest(BaseModel):
    """Notification to deliver to a user"""
    email: str
    title: str
    message: str = ""
    type: str = "SYSTEM_MESSAGE"
    priority: str = "normal"
    metadata: Optional[Dict[str, Any]] = None


class WorkflowEventRequest(BaseModel):
    """Admin decision or onboarding submission"""
    event: WorkflowEvent


class FailureRequest(BaseModel):
    """Make the next calls to a route fail with 500"""
    route: str
    times: int = Field(default=1, ge=1)


def _user_id(state: DevState, email: str) -> str:
    user = state.find_user_by_email(email)
    if user is None:
        raise NotFoundError(f"No user with email {email}")
    return user["id"]


@router.post("/notifications")
async def push_notification(body: PushNotificationRequest, state: DevState = Depends(get_state)):
    notification = state.add_notification(
        _user_id(state, body.email),
        body.title,
        body.message,
        notification_type=body.type,
        priority=body.priority,
        metadata=body.metadata,
    )
    return envelope(notification, message="Notification created")


@router.post("/pharmacies/{email}/events")
async def apply_workflow_event(email: str, body: WorkflowEventRequest, state: DevState = Depends(get_state)):
    status = state.apply_workflow_event(_user_id(state, email), body.event)
    return envelope({"status": status.value})


@router.post("/failures")
async def inject_failure(body: FailureRequest, state: DevState = Depends(get_state)):
    state.fail_next_request(body.route, body.times)
    return envelope({"route": body.route, "times": body.times})
