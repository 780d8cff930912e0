"""Authorization Gate - role checks for client-side navigation"""
from typing import Iterable, Optional

from ..config.settings import Settings, settings as default_settings
from ..domain.enums import Role
from ..domain.models import Actor, AuthorizationDecision
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuthorizationGate:
    """
    Decide whether an actor may open a route requiring a role set

    Rules (first match wins):
    - Session restore still pending -> awaiting
    - No actor -> redirect to login
    - Actor role in the required set -> allowed
    - Admin, and the route is not pharmacy-only -> allowed
    - Otherwise -> redirect to unauthorized

    An empty role set means any authenticated actor. The gate never
    navigates by itself; callers act on the decision.
    """

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self.login_path = config.login_path
        self.unauthorized_path = config.unauthorized_path

    def decide(
        self,
        actor: Optional[Actor],
        required_roles: Iterable[Role],
        restore_pending: bool = False
    ) -> AuthorizationDecision:
        """
        Compute the decision for one navigation

        Args:
            actor: Current actor (None when signed out)
            required_roles: Roles the route accepts
            restore_pending: True while the session store has not settled

        Returns:
            AuthorizationDecision
        """
        if restore_pending:
            return AuthorizationDecision.awaiting()

        if actor is None:
            return AuthorizationDecision.redirect(self.login_path)

        if self.has_role_access(actor, required_roles):
            return AuthorizationDecision.allow()

        logger.info(
            "Navigation denied by role",
            extra={"actor_id": actor.id, "role": actor.role.value}
        )
        return AuthorizationDecision.redirect(self.unauthorized_path)

    @staticmethod
    def has_role_access(actor: Actor, required_roles: Iterable[Role]) -> bool:
        roles = frozenset(required_roles)
        if not roles or actor.role in roles:
            return True
        # Admin override never covers pharmacy workflow routes
        return actor.role == Role.ADMIN and Role.PHARMACY_OPERATOR not in roles
