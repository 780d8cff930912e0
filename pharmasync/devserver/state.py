"""Dev Server State - in-memory users, pharmacies, notifications and tokens"""
import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import jwt

from ..config.settings import Settings, settings as default_settings
from ..domain.enums import Role, WorkflowStatus, WorkflowEvent
from ..domain.errors import (
    AuthenticationError, AuthorizationError, InvalidTransitionError, NotificationNotFoundError,
    NotFoundError, TokenExpiredError, ValidationError
)
from ..engine.workflow_gate import WorkflowStatusGate
from ..utils.idgen import generate_id, generate_notification_id, generate_user_id
from ..utils.logger import get_logger
from ..utils.time import format_iso, parse_iso, utc_now

logger = get_logger(__name__)

ROLE_WIRE_IDS = {
    Role.ADMIN: 1,
    Role.PHARMACY_OPERATOR: 2,
    Role.PATIENT: 3,
}

# Pharmacy statuses as the marketplace server spells them
WIRE_STATUS = {
    WorkflowStatus.ONBOARDING_REQUIRED: "ONBOARDING_REQUIRED",
    WorkflowStatus.PENDING: "PENDING_VERIFICATION",
    WorkflowStatus.APPROVED: "VERIFIED",
    WorkflowStatus.REJECTED: "REJECTED",
}


class DevState:
    """
    Everything the stub server knows, kept in memory

    Tokens are HS256 JWTs signed with ``dev_jwt_secret``; refresh tokens
    are opaque ids mapped to their user so logout can revoke them.
    """

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self.secret = config.dev_jwt_secret
        self.access_token_minutes = config.dev_access_token_minutes

        self.users: Dict[str, Dict[str, Any]] = {}
        self.passwords: Dict[str, str] = {}
        self.pharmacies: Dict[str, Dict[str, Any]] = {}
        self.notifications: Dict[str, List[Dict[str, Any]]] = {}
        self.refresh_tokens: Dict[str, str] = {}
        self.fail_next: Dict[str, int] = {}

    # =========================================================================
    # Accounts
    # =========================================================================

    def add_user(
        self,
        email: str,
        password: str,
        role: Role,
        name: str = "",
        workflow_status: Optional[WorkflowStatus] = None,
        email_verified: bool = True
    ) -> Dict[str, Any]:
        user_id = generate_user_id()
        user = {
            "id": user_id,
            "email": email,
            "name": name or email.split("@")[0],
            "roleId": ROLE_WIRE_IDS.get(role, 3),
            "emailVerified": email_verified,
        }
        self.users[user_id] = user
        self.passwords[email.lower()] = password
        self.notifications[user_id] = []

        if role == Role.PHARMACY_OPERATOR:
            status = workflow_status or WorkflowStatus.ONBOARDING_REQUIRED
            self.pharmacies[user_id] = {
                "id": generate_id("PHM"),
                "name": f"{user['name']} Pharmacy",
                "status": WIRE_STATUS[status],
            }
        return user

    def find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        for user in self.users.values():
            if user["email"].lower() == email.lower():
                return user
        return None

    def get_user(self, user_id: str) -> Dict[str, Any]:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def user_payload(self, user_id: str) -> Dict[str, Any]:
        """User as sent to the client, with the pharmacy status when relevant"""
        user = dict(self.get_user(user_id))
        pharmacy = self.pharmacies.get(user_id)
        if pharmacy is not None:
            user["status"] = pharmacy["status"]
            user["pharmacy"] = dict(pharmacy)
        return user

    def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        user = self.find_user_by_email(email)
        if user is None or self.passwords.get(email.lower()) != password:
            raise AuthenticationError("Invalid email or password", error_code="INVALID_CREDENTIALS")
        if not user.get("emailVerified", True):
            raise AuthorizationError("Please verify your email first", error_code="EMAIL_NOT_VERIFIED")
        return user

    # =========================================================================
    # Tokens
    # =========================================================================

    def issue_access_token(self, user_id: str, expires_in: Optional[timedelta] = None) -> str:
        now = utc_now()
        user = self.get_user(user_id)
        claims = {
            "sub": user_id,
            "roleId": user["roleId"],
            "iat": now,
            "exp": now + (expires_in or timedelta(minutes=self.access_token_minutes)),
        }
        return jwt.encode(claims, self.secret, algorithm="HS256")

    def issue_refresh_token(self, user_id: str) -> str:
        token = generate_id("RFT")
        self.refresh_tokens[token] = user_id
        return token

    def verify_access_token(self, authorization: Optional[str]) -> str:
        """Returns the user id for a valid ``Bearer`` header"""
        if not authorization or not authorization.startswith("Bearer "):
            raise AuthenticationError("Authorization header is missing")
        try:
            claims = jwt.decode(authorization[7:], self.secret, algorithms=["HS256"])
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.PyJWTError as e:
            raise AuthenticationError(f"Invalid token: {e}")

        user_id = claims.get("sub")
        if user_id not in self.users:
            raise AuthenticationError("Unknown user")
        return user_id

    def rotate_refresh_token(self, refresh_token: str) -> str:
        user_id = self.refresh_tokens.pop(refresh_token, None)
        if user_id is None:
            raise AuthenticationError("Invalid refresh token", error_code="INVALID_REFRESH_TOKEN")
        return user_id

    def revoke_refresh_token(self, refresh_token: Optional[str]) -> None:
        if refresh_token:
            self.refresh_tokens.pop(refresh_token, None)

    # =========================================================================
    # Pharmacy workflow
    # =========================================================================

    def pharmacy_for(self, user_id: str) -> Dict[str, Any]:
        pharmacy = self.pharmacies.get(user_id)
        if pharmacy is None:
            raise NotFoundError("No pharmacy registered for this account")
        return pharmacy

    def workflow_status_for(self, user_id: str) -> WorkflowStatus:
        wire = self.pharmacy_for(user_id)["status"]
        for status, value in WIRE_STATUS.items():
            if value == wire:
                return status
        raise ValidationError(f"Unknown pharmacy status {wire}")

    def apply_workflow_event(self, user_id: str, event: WorkflowEvent) -> WorkflowStatus:
        current = self.workflow_status_for(user_id)
        target = WorkflowStatusGate.next_state(current, event)
        self.pharmacy_for(user_id)["status"] = WIRE_STATUS[target]
        logger.info(
            f"Pharmacy {event.value}: {current.value} -> {target.value}",
            extra={"actor_id": user_id, "workflow_status": target.value}
        )
        return target

    def reset_onboarding(self, user_id: str) -> WorkflowStatus:
        if self.workflow_status_for(user_id) != WorkflowStatus.REJECTED:
            raise InvalidTransitionError("Only rejected applications can be reset")
        return self.apply_workflow_event(user_id, WorkflowEvent.RESET_AFTER_REJECTION)

    # =========================================================================
    # Notifications
    # =========================================================================

    def add_notification(
        self,
        user_id: str,
        title: str,
        message: str = "",
        notification_type: str = "SYSTEM_MESSAGE",
        priority: str = "normal",
        metadata: Optional[Dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
        is_read: bool = False
    ) -> Dict[str, Any]:
        self.get_user(user_id)
        notification = {
            "id": generate_notification_id(),
            "type": notification_type,
            "priority": priority,
            "title": title,
            "message": message,
            "isRead": is_read,
            "createdAt": format_iso(created_at or utc_now()),
            # The marketplace server stores metadata as a JSON string
            "metadata": json.dumps(metadata) if metadata is not None else None,
        }
        self.notifications[user_id].append(notification)
        return notification

    def list_notifications(self, user_id: str, skip: int, limit: int) -> List[Dict[str, Any]]:
        items = sorted(self.notifications.get(user_id, []), key=lambda n: n["id"])
        items.sort(key=lambda n: parse_iso(n["createdAt"]), reverse=True)
        return items[skip:skip + limit]

    def unread_summary(self, user_id: str) -> Dict[str, Any]:
        unread = [n for n in self.notifications.get(user_id, []) if not n["isRead"]]
        return {
            "unreadCount": len(unread),
            "hasHighPriority": any(n.get("priority") == "high" for n in unread),
        }

    def find_notification(self, user_id: str, notification_id: str) -> Dict[str, Any]:
        for notification in self.notifications.get(user_id, []):
            if notification["id"] == notification_id:
                return notification
        raise NotificationNotFoundError("Notification not found")

    def mark_read(self, user_id: str, notification_id: str) -> Dict[str, Any]:
        notification = self.find_notification(user_id, notification_id)
        notification["isRead"] = True
        return notification

    def mark_all_read(self, user_id: str) -> int:
        marked = 0
        for notification in self.notifications.get(user_id, []):
            if not notification["isRead"]:
                notification["isRead"] = True
                marked += 1
        return marked

    def delete_notification(self, user_id: str, notification_id: str) -> None:
        notification = self.find_notification(user_id, notification_id)
        self.notifications[user_id].remove(notification)

    # =========================================================================
    # Fault injection
    # =========================================================================

    def fail_next_request(self, route_key: str, times: int = 1) -> None:
        """Make the next ``times`` calls to a route answer 500"""
        self.fail_next[route_key] = self.fail_next.get(route_key, 0) + times

    def consume_failure(self, route_key: str) -> bool:
        remaining = self.fail_next.get(route_key, 0)
        if remaining <= 0:
            return False
        self.fail_next[route_key] = remaining - 1
        return True


def seed_demo_state(state: DevState) -> None:
    """Demo accounts for local runs"""
    state.add_user("admin@pharmasync.dev", "admin123", Role.ADMIN, name="Admin")
    state.add_user("patient@pharmasync.dev", "patient123", Role.PATIENT, name="Pat")
    pharmacy = state.add_user(
        "pharmacy@pharmasync.dev", "pharmacy123", Role.PHARMACY_OPERATOR,
        name="Corner", workflow_status=WorkflowStatus.APPROVED,
    )
    state.add_user(
        "pending@pharmasync.dev", "pending123", Role.PHARMACY_OPERATOR,
        name="Pending", workflow_status=WorkflowStatus.PENDING,
    )
    state.add_notification(
        pharmacy["id"], "Paracetamol is running low", "12 units left",
        notification_type="LOW_STOCK_WARNING", metadata={"link": "/pharmacy/inventory"},
    )
    state.add_notification(
        pharmacy["id"], "Nearby SOS request", "A patient needs insulin",
        notification_type="SOS_UPDATE", priority="high", metadata={"link": "/pharmacy/sos-requests"},
    )
