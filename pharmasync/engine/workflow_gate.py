"""Workflow Status Gate - pharmacy onboarding/approval state machine

States: ONBOARDING_REQUIRED -> PENDING -> APPROVED | REJECTED
REJECTED goes back to ONBOARDING_REQUIRED only through the
server-confirmed reset. APPROVED is terminal.
"""
from typing import Dict, Optional, Tuple

from ..config.settings import Settings, settings as default_settings
from ..domain.enums import Role, WorkflowStatus, WorkflowEvent
from ..domain.errors import InvalidTransitionError
from ..domain.models import Actor, AuthorizationDecision
from ..utils.logger import get_logger

logger = get_logger(__name__)


ONBOARDING_PATH = "/pharmacy/onboarding"
WAITING_APPROVAL_PATH = "/pharmacy/waiting-approval"
APPLICATION_REJECTED_PATH = "/pharmacy/application-rejected"
PHARMACY_DASHBOARD_PATH = "/pharmacy/dashboard"

ALLOWED_PREFIXES: Dict[WorkflowStatus, Tuple[str, ...]] = {
    WorkflowStatus.NONE: (),
    WorkflowStatus.ONBOARDING_REQUIRED: (ONBOARDING_PATH,),
    WorkflowStatus.PENDING: (WAITING_APPROVAL_PATH,),
    WorkflowStatus.REJECTED: (APPLICATION_REJECTED_PATH,),
    WorkflowStatus.APPROVED: (
        PHARMACY_DASHBOARD_PATH,
        "/pharmacy/inventory",
        "/pharmacy/orders",
        "/pharmacy/sos-requests",
        "/pharmacy/customers",
        "/pharmacy/analytics",
        "/pharmacy/reports",
        "/pharmacy/settings",
    ),
}

CANONICAL_DESTINATIONS: Dict[WorkflowStatus, str] = {
    # NONE should not happen for a pharmacy; treat it as not onboarded
    WorkflowStatus.NONE: ONBOARDING_PATH,
    WorkflowStatus.ONBOARDING_REQUIRED: ONBOARDING_PATH,
    WorkflowStatus.PENDING: WAITING_APPROVAL_PATH,
    WorkflowStatus.REJECTED: APPLICATION_REJECTED_PATH,
    WorkflowStatus.APPROVED: PHARMACY_DASHBOARD_PATH,
}

TRANSITIONS: Dict[Tuple[WorkflowStatus, WorkflowEvent], WorkflowStatus] = {
    (WorkflowStatus.ONBOARDING_REQUIRED, WorkflowEvent.SUBMIT_ONBOARDING): WorkflowStatus.PENDING,
    (WorkflowStatus.PENDING, WorkflowEvent.APPROVE): WorkflowStatus.APPROVED,
    (WorkflowStatus.PENDING, WorkflowEvent.REJECT): WorkflowStatus.REJECTED,
    (WorkflowStatus.REJECTED, WorkflowEvent.RESET_AFTER_REJECTION): WorkflowStatus.ONBOARDING_REQUIRED,
}


def normalize_path(path: str) -> str:
    """Drop query/fragment and trailing slash"""
    path = path.split("?", 1)[0].split("#", 1)[0]
    if len(path) > 1:
        path = path.rstrip("/")
    return path or "/"


def matches_prefix(path: str, prefix: str) -> bool:
    """Segment-aware prefix match: /pharmacy/orders matches /pharmacy/orders/42, not /pharmacy/ordersX"""
    return path == prefix or path.startswith(prefix + "/")


class WorkflowStatusGate:
    """
    Restrict a pharmacy operator to the views valid for its workflow status

    Each status has exactly one canonical destination used as the redirect
    target. Non-pharmacy actors pass through untouched.
    """

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self.admin_dashboard_path = config.admin_dashboard_path
        self.patient_home_path = config.patient_home_path
        self.login_path = config.login_path

    def check(self, actor: Optional[Actor], path: str) -> AuthorizationDecision:
        """Decision for a navigation already allowed by the authorization gate"""
        if actor is None or actor.role != Role.PHARMACY_OPERATOR:
            return AuthorizationDecision.allow()

        status = actor.workflow_status
        path = normalize_path(path)
        if self.is_path_allowed(status, path):
            return AuthorizationDecision.allow()

        destination = self.canonical_destination(status)
        logger.info(
            f"Redirecting pharmacy from {path} to {destination}",
            extra={"actor_id": actor.id, "workflow_status": status.value, "path": path}
        )
        return AuthorizationDecision.redirect(destination)

    @staticmethod
    def is_path_allowed(status: WorkflowStatus, path: str) -> bool:
        path = normalize_path(path)
        return any(matches_prefix(path, prefix) for prefix in ALLOWED_PREFIXES.get(status, ()))

    @staticmethod
    def canonical_destination(status: WorkflowStatus) -> str:
        return CANONICAL_DESTINATIONS.get(status, ONBOARDING_PATH)

    def dashboard_path_for(self, actor: Optional[Actor]) -> str:
        """Where "go to dashboard" lands for this actor"""
        if actor is None:
            return self.login_path
        if actor.role == Role.ADMIN:
            return self.admin_dashboard_path
        if actor.role == Role.PHARMACY_OPERATOR:
            return self.canonical_destination(actor.workflow_status)
        return self.patient_home_path

    # =========================================================================
    # State machine
    # =========================================================================

    @staticmethod
    def next_state(current: WorkflowStatus, event: WorkflowEvent) -> WorkflowStatus:
        """
        Resolve the status reached from ``current`` on ``event``

        Raises:
            InvalidTransitionError: If the event is not valid in ``current``
        """
        target = TRANSITIONS.get((current, event))
        if target is None:
            raise InvalidTransitionError(
                f"Cannot {event.value} from {current.value}",
                details={"current_status": current.value, "event": event.value}
            )
        return target

    @staticmethod
    def is_valid_transition(current: WorkflowStatus, target: WorkflowStatus) -> bool:
        return any(
            source == current and destination == target
            for (source, _), destination in TRANSITIONS.items()
        )

    @staticmethod
    def event_for(current: WorkflowStatus, target: WorkflowStatus) -> Optional[WorkflowEvent]:
        """Event explaining a server-confirmed change, or None if none does"""
        for (source, event), destination in TRANSITIONS.items():
            if source == current and destination == target:
                return event
        return None
