"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class Role(str, Enum):
    """Actor role"""
    GUEST = "GUEST"
    PATIENT = "PATIENT"
    PHARMACY_OPERATOR = "PHARMACY_OPERATOR"
    ADMIN = "ADMIN"


class WorkflowStatus(str, Enum):
    """Pharmacy onboarding/approval lifecycle (PHARMACY_OPERATOR only)"""
    NONE = "NONE"
    ONBOARDING_REQUIRED = "ONBOARDING_REQUIRED"  # Onboarding form not yet submitted
    PENDING = "PENDING"  # Submitted, awaiting admin decision
    REJECTED = "REJECTED"
    APPROVED = "APPROVED"


class WorkflowEvent(str, Enum):
    """Server-confirmed events that move a pharmacy through its workflow"""
    SUBMIT_ONBOARDING = "SUBMIT_ONBOARDING"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    RESET_AFTER_REJECTION = "RESET_AFTER_REJECTION"


class SessionStatus(str, Enum):
    """Session store lifecycle"""
    RESTORING = "RESTORING"  # restore() has not settled yet
    AUTHENTICATED = "AUTHENTICATED"
    ANONYMOUS = "ANONYMOUS"


class NotificationType(str, Enum):
    """Notification types rendered by the client"""
    URGENT_ALERT = "URGENT_ALERT"
    STOCK_WARNING = "STOCK_WARNING"
    EXPIRY_WARNING = "EXPIRY_WARNING"
    ANNOUNCEMENT = "ANNOUNCEMENT"
    SYSTEM = "SYSTEM"


class NotificationPriority(str, Enum):
    """Declared notification priority"""
    NORMAL = "normal"
    HIGH = "high"


class AlertCue(str, Enum):
    """Audio cues; exactly one plays per alert"""
    URGENT = "URGENT"
    SUBTLE = "SUBTLE"


class SyncEventType(str, Enum):
    """Events emitted by the notification sync engine"""
    COUNT_CHANGED = "COUNT_CHANGED"
    ALERT_RAISED = "ALERT_RAISED"


class MutationKind(str, Enum):
    """Optimistic notification mutations"""
    MARK_READ = "MARK_READ"
    MARK_ALL_READ = "MARK_ALL_READ"
    DELETE = "DELETE"


# Wire-format aliases accepted from the server
ROLE_IDS = {
    1: Role.ADMIN,
    2: Role.PHARMACY_OPERATOR,
    3: Role.PATIENT,
}

ROLE_NAME_ALIASES = {
    "ADMIN": Role.ADMIN,
    "SYSTEM_ADMIN": Role.ADMIN,
    "PHARMACY": Role.PHARMACY_OPERATOR,
    "PHARMACY_ADMIN": Role.PHARMACY_OPERATOR,
    "PHARMACY_OPERATOR": Role.PHARMACY_OPERATOR,
    "PATIENT": Role.PATIENT,
    "GUEST": Role.GUEST,
}

WORKFLOW_STATUS_ALIASES = {
    "ONBOARDING_REQUIRED": WorkflowStatus.ONBOARDING_REQUIRED,
    "PENDING": WorkflowStatus.PENDING,
    "PENDING_VERIFICATION": WorkflowStatus.PENDING,
    "REJECTED": WorkflowStatus.REJECTED,
    "APPROVED": WorkflowStatus.APPROVED,
    "VERIFIED": WorkflowStatus.APPROVED,
}

NOTIFICATION_TYPE_ALIASES = {
    "SOS_UPDATE": NotificationType.URGENT_ALERT,
    "LOW_STOCK_WARNING": NotificationType.STOCK_WARNING,
    "MEDICINE_ALERT": NotificationType.STOCK_WARNING,
    "CMS_ALERT": NotificationType.ANNOUNCEMENT,
    "SYSTEM_MESSAGE": NotificationType.SYSTEM,
}
