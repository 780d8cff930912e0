"""Pharmacy Workflow Service - "check status" and "reset after rejection" actions"""
from typing import Any, Dict, Optional

from ..domain.enums import Role, WorkflowStatus, WorkflowEvent
from ..domain.errors import AuthorizationError, DomainError, StaleSessionError
from ..domain.models import OperationResult
from ..engine.workflow_gate import WorkflowStatusGate
from ..repositories.pharmacy_repo import PharmacyRepository
from ..utils.logger import get_logger
from .session_store import SessionStore

logger = get_logger(__name__)


class PharmacyWorkflowService:
    """Server-confirmed workflow status changes for the signed-in pharmacy"""

    def __init__(
        self,
        session: SessionStore,
        pharmacy_repo: PharmacyRepository,
        workflow_gate: Optional[WorkflowStatusGate] = None
    ):
        self.session = session
        self.pharmacy_repo = pharmacy_repo
        self.workflow_gate = workflow_gate or session.workflow_gate

    async def check_status(self) -> OperationResult:
        """
        Re-check approval with the server

        On success ``data`` holds the destination path for the (possibly
        new) status. Errors leave the actor as it was.
        """
        result = await self.session.refresh_status()
        if not result.success:
            return result
        return OperationResult.ok(self.workflow_gate.dashboard_path_for(self.session.actor))

    async def reset_after_rejection(self) -> OperationResult:
        """
        Ask the server to move REJECTED back to ONBOARDING_REQUIRED

        The local status only changes once the server confirms it.
        """
        actor = self.session.actor
        if actor is None or actor.role != Role.PHARMACY_OPERATOR:
            return OperationResult.from_error(AuthorizationError("Only pharmacy accounts can reset onboarding"))

        try:
            self.workflow_gate.next_state(actor.workflow_status, WorkflowEvent.RESET_AFTER_REJECTION)
        except DomainError as e:
            return OperationResult.from_error(e)

        epoch = self.session.epoch
        try:
            status = await self.pharmacy_repo.reset_onboarding()
        except DomainError as e:
            logger.warning(f"Onboarding reset failed: {e.message}", extra={"actor_id": actor.id})
            return OperationResult.from_error(e)

        if not self.session.is_current(epoch):
            return OperationResult.from_error(StaleSessionError("Session changed during reset"))

        if status != WorkflowStatus.ONBOARDING_REQUIRED:
            logger.warning(
                f"Reset confirmed with status {status.value}",
                extra={"actor_id": actor.id, "workflow_status": status.value}
            )
        self.session.apply_confirmed_status(status)
        return OperationResult.ok(self.workflow_gate.dashboard_path_for(self.session.actor))

    async def get_pharmacy_profile(self) -> OperationResult:
        """The pharmacy record as the server sees it"""
        try:
            profile: Dict[str, Any] = await self.pharmacy_repo.get_my_pharmacy()
        except DomainError as e:
            return OperationResult.from_error(e)
        return OperationResult.ok(profile)
