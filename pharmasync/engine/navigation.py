"""Navigation Guard - route table plus gate composition

Every navigation waits for the session store to settle, then applies the
authorization gate and, for pharmacy workflow routes, the workflow gate.
"""
from typing import FrozenSet, List, Optional, TYPE_CHECKING
from pydantic import BaseModel, ConfigDict

from ..domain.enums import Role
from ..domain.models import AuthorizationDecision
from ..utils.logger import get_logger
from .authorization_gate import AuthorizationGate
from .workflow_gate import WorkflowStatusGate, matches_prefix, normalize_path

if TYPE_CHECKING:
    from ..services.session_store import SessionStore

logger = get_logger(__name__)


class RouteDefinition(BaseModel):
    """A route prefix and who may open it"""
    model_config = ConfigDict(frozen=True)

    prefix: str
    roles: FrozenSet[Role] = frozenset()
    public: bool = False
    workflow_gated: bool = False


PHARMACY_ONLY = frozenset({Role.PHARMACY_OPERATOR})

ROUTES: List[RouteDefinition] = [
    RouteDefinition(prefix="/login", public=True),
    RouteDefinition(prefix="/register", public=True),
    RouteDefinition(prefix="/verify-otp", public=True),
    RouteDefinition(prefix="/forgot-password", public=True),
    RouteDefinition(prefix="/reset-password", public=True),
    RouteDefinition(prefix="/unauthorized", public=True),
    RouteDefinition(prefix="/patient", roles=frozenset({Role.PATIENT})),
    RouteDefinition(prefix="/search", roles=frozenset({Role.PATIENT})),
    RouteDefinition(prefix="/sos", roles=frozenset({Role.PATIENT})),
    RouteDefinition(prefix="/notifications"),
    RouteDefinition(prefix="/pharmacy", roles=PHARMACY_ONLY, workflow_gated=True),
    RouteDefinition(prefix="/admin", roles=frozenset({Role.ADMIN})),
]

LANDING_ROUTE = RouteDefinition(prefix="/", public=True)


class NavigationGuard:
    """Resolve navigations against the route table"""

    def __init__(
        self,
        session: "SessionStore",
        authorization_gate: Optional[AuthorizationGate] = None,
        workflow_gate: Optional[WorkflowStatusGate] = None,
        routes: Optional[List[RouteDefinition]] = None
    ):
        self.session = session
        self.authorization_gate = authorization_gate or AuthorizationGate()
        self.workflow_gate = workflow_gate or WorkflowStatusGate()
        # Longest prefix first so /pharmacy/x never hits a shorter route
        self.routes = sorted(routes or ROUTES, key=lambda r: len(r.prefix), reverse=True)

    def route_for(self, path: str) -> Optional[RouteDefinition]:
        path = normalize_path(path)
        if path == "/":
            return LANDING_ROUTE
        for route in self.routes:
            if matches_prefix(path, route.prefix):
                return route
        return None

    def decide(self, path: str) -> AuthorizationDecision:
        """Synchronous decision from the current session state (may be awaiting)"""
        path = normalize_path(path)
        route = self.route_for(path)
        actor = self.session.actor
        restore_pending = self.session.is_restoring

        if route is None:
            # Unknown paths fall back to the actor's home
            if restore_pending:
                return AuthorizationDecision.awaiting()
            return AuthorizationDecision.redirect(self.workflow_gate.dashboard_path_for(actor))

        if route.public:
            if route.prefix == self.workflow_gate.login_path and actor is not None and not restore_pending:
                return AuthorizationDecision.redirect(self.workflow_gate.dashboard_path_for(actor))
            return AuthorizationDecision.allow()

        decision = self.authorization_gate.decide(actor, route.roles, restore_pending=restore_pending)
        if not decision.allowed or not route.workflow_gated:
            return decision

        return self.workflow_gate.check(actor, path)

    async def navigate(self, path: str) -> AuthorizationDecision:
        """
        Decide a navigation once the session has settled

        Navigations issued during restore queue behind it instead of
        racing it, so the result is never "awaiting".
        """
        await self.session.wait_until_settled()
        decision = self.decide(path)
        logger.debug(
            f"Navigation to {path}: allowed={decision.allowed} redirect={decision.redirect_to}",
            extra={"path": path}
        )
        return decision
