"""Domain Models - Pydantic models for client state"""
import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from .enums import (
    Role, WorkflowStatus, NotificationType, NotificationPriority, SyncEventType,
    ROLE_IDS, ROLE_NAME_ALIASES, WORKFLOW_STATUS_ALIASES, NOTIFICATION_TYPE_ALIASES
)
from .errors import DomainError
from ..utils.time import ensure_utc, parse_iso, utc_now


# ============================================================================
# Identity
# ============================================================================

class Actor(BaseModel):
    """
    The authenticated identity driving authorization decisions.

    Snapshots are immutable; the session store replaces the whole actor
    whenever server-confirmed state changes.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(..., description="User ID")
    role: Role = Field(..., description="Actor role")
    workflow_status: WorkflowStatus = Field(
        default=WorkflowStatus.NONE,
        description="Pharmacy approval lifecycle state"
    )
    display_name: str = Field(default="", description="Display name")
    email: Optional[str] = Field(None, description="Login email")
    pharmacy: Optional[Dict[str, Any]] = Field(None, description="Pharmacy profile as sent by the server")

    @model_validator(mode="before")
    @classmethod
    def _workflow_status_only_for_pharmacy(cls, data: Any) -> Any:
        if isinstance(data, dict):
            role = data.get("role")
            if role not in (Role.PHARMACY_OPERATOR, Role.PHARMACY_OPERATOR.value):
                data = {**data, "workflow_status": WorkflowStatus.NONE}
        return data

    @property
    def is_pharmacy_operator(self) -> bool:
        return self.role == Role.PHARMACY_OPERATOR

    def with_workflow_fields(self, role: Role, workflow_status: WorkflowStatus) -> "Actor":
        """Copy with new role/status, re-validated so the status invariant holds"""
        return Actor.model_validate({
            **self.model_dump(),
            "role": role,
            "workflow_status": workflow_status,
        })

    @classmethod
    def from_payload(
        cls,
        user: Dict[str, Any],
        pharmacy: Optional[Dict[str, Any]] = None
    ) -> "Actor":
        """
        Build an actor from the server's user payload.

        Accepts numeric ``roleId`` or role names, and the legacy pharmacy
        verification statuses.
        """
        user_id = user.get("id") or user.get("userId")
        if user_id is None:
            raise ValueError("User payload has no id")

        pharmacy = pharmacy if pharmacy is not None else user.get("pharmacy")
        status_raw = user.get("status")
        if status_raw is None and isinstance(pharmacy, dict):
            status_raw = pharmacy.get("status")

        return cls(
            id=str(user_id),
            role=parse_role(user),
            workflow_status=parse_workflow_status(status_raw),
            display_name=user.get("name") or user.get("displayName") or user.get("email") or "",
            email=user.get("email"),
            pharmacy=pharmacy if isinstance(pharmacy, dict) else None,
        )


def parse_role(user: Dict[str, Any]) -> Role:
    """Resolve role from roleId or role name; unknown roles are GUEST"""
    role_id = user.get("roleId")
    if role_id is not None:
        try:
            return ROLE_IDS.get(int(role_id), Role.GUEST)
        except (TypeError, ValueError):
            pass
    role_name = user.get("role")
    if isinstance(role_name, str):
        return ROLE_NAME_ALIASES.get(role_name.upper(), Role.GUEST)
    return Role.GUEST


def parse_workflow_status(value: Any) -> WorkflowStatus:
    """Resolve workflow status; unknown values are NONE"""
    if isinstance(value, WorkflowStatus):
        return value
    if isinstance(value, str):
        return WORKFLOW_STATUS_ALIASES.get(value.upper(), WorkflowStatus.NONE)
    return WorkflowStatus.NONE


class LoginCredentials(BaseModel):
    """Credentials submitted on login"""
    email: str
    password: SecretStr

    def to_payload(self) -> Dict[str, str]:
        return {"email": self.email, "password": self.password.get_secret_value()}


class AuthGrant(BaseModel):
    """Actor and tokens returned by login/refresh/me"""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    actor: Optional[Actor] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "AuthGrant":
        """Accept both ``{user, accessToken}`` and the flat login payload"""
        user = data.get("user") if isinstance(data.get("user"), dict) else data
        pharmacy = data.get("pharmacy") if isinstance(data.get("pharmacy"), dict) else None
        return cls(
            access_token=data.get("accessToken"),
            refresh_token=data.get("refreshToken"),
            actor=Actor.from_payload(user, pharmacy),
        )


class PersistedSession(BaseModel):
    """What the credential store keeps between runs"""
    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: Optional[str] = None
    actor: Actor
    saved_at: datetime = Field(default_factory=utc_now)


# ============================================================================
# Authorization
# ============================================================================

class AuthorizationDecision(BaseModel):
    """Result of a navigation check; recomputed on every navigation"""
    model_config = ConfigDict(frozen=True)

    allowed: bool = False
    redirect_to: Optional[str] = None
    pending: bool = False

    @classmethod
    def allow(cls) -> "AuthorizationDecision":
        return cls(allowed=True)

    @classmethod
    def redirect(cls, path: str) -> "AuthorizationDecision":
        return cls(allowed=False, redirect_to=path)

    @classmethod
    def awaiting(cls) -> "AuthorizationDecision":
        return cls(allowed=False, pending=True)


# ============================================================================
# Notifications
# ============================================================================

class NotificationRecord(BaseModel):
    """
    A notification from the actor's feed.

    The client only ever moves ``is_read`` from False to True, and may
    remove a record. Unknown wire types are shown as SYSTEM and keep
    their original name in ``raw_type``.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str = Field(..., description="Unique, stable notification ID")
    type: NotificationType = Field(default=NotificationType.SYSTEM)
    raw_type: Optional[str] = Field(None, alias="rawType", description="Type name as sent by the server")
    priority: NotificationPriority = Field(default=NotificationPriority.NORMAL)
    title: str = Field(default="")
    message: str = Field(default="")
    is_read: bool = Field(default=False, alias="isRead")
    created_at: datetime = Field(..., alias="createdAt")
    action_link: Optional[str] = Field(None, alias="actionLink", description="Path to navigate to on click")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _normalize_wire_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if "id" in data and data["id"] is not None:
            data["id"] = str(data["id"])

        raw_type = data.get("raw_type", data.get("rawType"))
        wire_type = data.get("type")
        if raw_type is None and wire_type is not None:
            raw_type = wire_type.value if isinstance(wire_type, NotificationType) else str(wire_type)
            data["raw_type"] = raw_type
        data["type"] = parse_notification_type(wire_type)

        metadata = data.get("metadata")
        if isinstance(metadata, str):
            try:
                metadata = json.loads(metadata)
            except ValueError:
                metadata = {}
        data["metadata"] = metadata if isinstance(metadata, dict) else {}

        priority = data.get("priority", data["metadata"].get("priority"))
        data["priority"] = parse_priority(priority)

        if data.get("action_link") is None and data.get("actionLink") is None:
            link = data["metadata"].get("link")
            if isinstance(link, str):
                data["action_link"] = link

        created_at = data.get("created_at", data.get("createdAt"))
        if isinstance(created_at, str):
            data.pop("createdAt", None)
            data["created_at"] = parse_iso(created_at)

        return data

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def is_high_priority(self) -> bool:
        """Priority comes from the declared field only"""
        return self.priority == NotificationPriority.HIGH

    def as_read(self) -> "NotificationRecord":
        return self.model_copy(update={"is_read": True})


def parse_notification_type(value: Any) -> NotificationType:
    """Map a wire type to the closed set; anything unknown becomes SYSTEM"""
    if isinstance(value, NotificationType):
        return value
    if isinstance(value, str):
        key = value.upper()
        if key in NotificationType.__members__:
            return NotificationType(key)
        return NOTIFICATION_TYPE_ALIASES.get(key, NotificationType.SYSTEM)
    return NotificationType.SYSTEM


def parse_priority(value: Any) -> NotificationPriority:
    if isinstance(value, NotificationPriority):
        return value
    if isinstance(value, str) and value.lower() in ("high", "urgent"):
        return NotificationPriority.HIGH
    return NotificationPriority.NORMAL


def sort_newest_first(records: Iterable[NotificationRecord]) -> List[NotificationRecord]:
    """Newest created_at first; ties broken by ascending id"""
    by_id = sorted(records, key=lambda r: r.id)
    return sorted(by_id, key=lambda r: r.created_at, reverse=True)


class UnreadSnapshot(BaseModel):
    """Cached unread count and priority flag used for the bell badge"""
    model_config = ConfigDict(frozen=True)

    count: int = Field(default=0, ge=0)
    has_high_priority_unread: bool = Field(default=False)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "UnreadSnapshot":
        count = data.get("unreadCount", data.get("unread_count", 0)) or 0
        count = max(0, int(count))
        high = bool(data.get("hasHighPriority", data.get("has_high_priority", False)))
        return cls(count=count, has_high_priority_unread=high and count > 0)


class SyncEvent(BaseModel):
    """Event emitted by the sync engine to its subscribers"""
    model_config = ConfigDict(frozen=True)

    type: SyncEventType
    snapshot: UnreadSnapshot
    previous: Optional[UnreadSnapshot] = None
    urgent: bool = False
    sequence: int = Field(..., description="Poll tick that produced the event")
    session_epoch: Optional[str] = None


# ============================================================================
# Operation outcomes
# ============================================================================

class OperationResult(BaseModel):
    """Typed outcome of a store or session operation"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    reason: Optional[str] = None
    error_code: Optional[str] = None
    data: Any = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, reason: str, error_code: str = "DOMAIN_ERROR") -> "OperationResult":
        return cls(success=False, reason=reason, error_code=error_code)

    @classmethod
    def from_error(cls, error: DomainError) -> "OperationResult":
        return cls(success=False, reason=error.message, error_code=error.error_code, data=error.details or None)


# ============================================================================
# Presentation hints
# ============================================================================

class TypeAppearance(BaseModel):
    """Icon/colour/label used to render a notification type"""
    model_config = ConfigDict(frozen=True)

    icon: str
    color_class: str
    background_class: str
    label: str
    pulse: bool = False


class BadgeAppearance(BaseModel):
    """Bell badge derived from the unread snapshot"""
    model_config = ConfigDict(frozen=True)

    visible: bool
    text: str = ""
    icon: str = "bell"
    pulse: bool = False
    color_class: str = "bg-red-500"
