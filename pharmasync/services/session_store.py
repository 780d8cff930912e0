"""Session Store - the actor, its tokens and their persisted copy

Lifecycle: RESTORING -> AUTHENTICATED | ANONYMOUS, then login/logout.
Consumers read ``actor`` and never mutate it; every change comes from a
server-confirmed response and replaces the whole actor snapshot.
"""
import asyncio
from typing import Callable, List, Optional, Tuple

from ..domain.enums import SessionStatus, WorkflowStatus
from ..domain.errors import (
    DomainError, AuthenticationError, CredentialStorageError, SessionError,
    SessionRestoreError, StaleSessionError, TokenExpiredError
)
from ..domain.models import Actor, LoginCredentials, OperationResult, PersistedSession
from ..engine.workflow_gate import WorkflowStatusGate
from ..repositories.auth_repo import AuthRepository
from ..repositories.credential_store import CredentialStore
from ..utils.idgen import generate_session_epoch
from ..utils.jwt import TokenInspector
from ..utils.logger import get_logger

logger = get_logger(__name__)

SessionListener = Callable[[Optional[Actor]], None]


class SessionStore:
    """
    Owns the authenticated identity

    The epoch is an opaque id regenerated on every identity change.
    Async work captures it when issued and drops its result when the
    epoch has moved on.
    """

    def __init__(
        self,
        auth_repo: AuthRepository,
        credential_store: CredentialStore,
        token_inspector: Optional[TokenInspector] = None,
        workflow_gate: Optional[WorkflowStatusGate] = None
    ):
        self.auth_repo = auth_repo
        self.credential_store = credential_store
        self.token_inspector = token_inspector or TokenInspector()
        self.workflow_gate = workflow_gate or WorkflowStatusGate()

        self._status = SessionStatus.RESTORING
        self._actor: Optional[Actor] = None
        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._epoch = generate_session_epoch()
        self._settled = asyncio.Event()
        self._refresh_lock = asyncio.Lock()
        self._listeners: List[SessionListener] = []

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def actor(self) -> Optional[Actor]:
        return self._actor

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @property
    def epoch(self) -> str:
        return self._epoch

    @property
    def is_restoring(self) -> bool:
        return self._status == SessionStatus.RESTORING

    @property
    def is_authenticated(self) -> bool:
        return self._status == SessionStatus.AUTHENTICATED and self._actor is not None

    def is_current(self, epoch: str) -> bool:
        return epoch == self._epoch

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Called with the new actor (or None) on every change"""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def wait_until_settled(self) -> None:
        await self._settled.wait()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def restore(self) -> OperationResult:
        """
        Hydrate from persisted credentials and confirm with the server

        Any failure clears persisted state and settles signed out.
        """
        try:
            persisted = self.credential_store.load()
        except CredentialStorageError as e:
            logger.warning(f"Discarding persisted session: {e.message}")
            return self._fail_restore(e)

        if persisted is None:
            self._settle(None, None, None)
            return OperationResult.fail("No persisted session", SessionRestoreError.error_code)

        # Pre-populate while still RESTORING; gates ignore it until settled
        self._actor = persisted.actor
        self._access_token = persisted.access_token
        self._refresh_token = persisted.refresh_token

        epoch = self._epoch
        try:
            access_token, refresh_token = await self._usable_tokens(persisted)
            grant = await self.auth_repo.me(access_token=access_token)
        except DomainError as e:
            if self._restore_superseded(epoch):
                return OperationResult.from_error(StaleSessionError("Session changed during restore"))
            logger.info(f"Session restore failed: {e.message}", extra={"error_code": e.error_code})
            return self._fail_restore(e)

        # A login or logout finished while we waited; it owns the session now
        if self._restore_superseded(epoch):
            return OperationResult.from_error(StaleSessionError("Session changed during restore"))

        try:
            if grant.actor is None:
                raise SessionRestoreError("Server did not return the current actor")
            self.credential_store.save(PersistedSession(
                access_token=access_token,
                refresh_token=refresh_token,
                actor=grant.actor,
            ))
        except DomainError as e:
            logger.info(f"Session restore failed: {e.message}", extra={"error_code": e.error_code})
            return self._fail_restore(e)

        self._settle(grant.actor, access_token, refresh_token)
        logger.info(
            "Session restored",
            extra={"actor_id": grant.actor.id, "role": grant.actor.role.value, "session_epoch": self._epoch}
        )
        return OperationResult.ok(grant.actor)

    async def _usable_tokens(self, persisted: PersistedSession) -> Tuple[str, Optional[str]]:
        """Locally validate the access token, refreshing once if it expired"""
        try:
            self.token_inspector.inspect(persisted.access_token)
            return persisted.access_token, persisted.refresh_token
        except TokenExpiredError:
            if not persisted.refresh_token:
                raise

        grant = await self.auth_repo.refresh(persisted.refresh_token)
        return grant.access_token, grant.refresh_token or persisted.refresh_token

    def _restore_superseded(self, epoch: str) -> bool:
        return not self.is_current(epoch) or self._status != SessionStatus.RESTORING

    def _fail_restore(self, error: DomainError) -> OperationResult:
        self._clear_persisted()
        self._settle(None, None, None)
        return OperationResult.from_error(error)

    async def login(self, credentials: LoginCredentials) -> OperationResult:
        """
        Authenticate, persist, then publish the actor

        Persisting happens before the in-memory swap; if it fails both the
        previous persisted session and the previous actor stay.
        """
        try:
            grant = await self.auth_repo.login(credentials)
        except DomainError as e:
            logger.info(f"Login failed: {e.message}", extra={"error_code": e.error_code})
            return OperationResult.from_error(e)

        if grant.actor is None:
            return OperationResult.fail("Login response has no user", "API_RESPONSE_ERROR")

        try:
            self.credential_store.save(PersistedSession(
                access_token=grant.access_token,
                refresh_token=grant.refresh_token,
                actor=grant.actor,
            ))
        except CredentialStorageError as e:
            logger.error(f"Could not persist session after login: {e.message}")
            return OperationResult.from_error(e)

        self._settle(grant.actor, grant.access_token, grant.refresh_token)
        logger.info(
            "Logged in",
            extra={"actor_id": grant.actor.id, "role": grant.actor.role.value, "session_epoch": self._epoch}
        )
        return OperationResult.ok(grant.actor)

    async def logout(self) -> OperationResult:
        """Clear the session locally, then tell the server. Idempotent."""
        access_token, refresh_token = self._access_token, self._refresh_token
        was_signed_in = self._actor is not None or access_token is not None

        self._settle(None, None, None, new_epoch=was_signed_in)
        storage_error: Optional[CredentialStorageError] = None
        try:
            self.credential_store.clear()
        except CredentialStorageError as e:
            logger.error(f"Could not clear persisted session: {e.message}")
            storage_error = e

        if access_token or refresh_token:
            try:
                await self.auth_repo.logout(refresh_token, access_token=access_token)
            except DomainError as e:
                logger.warning(f"Server logout failed (session already cleared locally): {e.message}")

        if was_signed_in:
            logger.info("Logged out", extra={"session_epoch": self._epoch})
        if storage_error is not None:
            return OperationResult.from_error(storage_error)
        return OperationResult.ok()

    async def refresh_status(self) -> OperationResult:
        """
        Re-fetch role and workflow status only

        Errors are returned and the previous actor is left in place.
        """
        if self._actor is None:
            return OperationResult.fail("Not signed in", SessionError.error_code)

        epoch = self._epoch
        try:
            grant = await self.auth_repo.me()
        except DomainError as e:
            logger.warning(f"Status refresh failed: {e.message}", extra={"error_code": e.error_code})
            return OperationResult.from_error(e)

        if not self.is_current(epoch) or self._actor is None:
            return OperationResult.from_error(StaleSessionError("Session changed during status refresh"))
        if grant.actor is None:
            return OperationResult.fail("Server did not return the current actor", "API_RESPONSE_ERROR")

        if grant.actor.role != self._actor.role:
            self._replace_actor(self._actor.with_workflow_fields(grant.actor.role, grant.actor.workflow_status))
        else:
            self.apply_confirmed_status(grant.actor.workflow_status)
        return OperationResult.ok(self._actor)

    def apply_confirmed_status(self, status: WorkflowStatus) -> Optional[Actor]:
        """Apply a workflow status the server has confirmed"""
        actor = self._actor
        if actor is None or actor.workflow_status == status:
            return actor

        event = self.workflow_gate.event_for(actor.workflow_status, status)
        if event is None:
            # Server is authoritative; keep the record of the odd jump
            logger.warning(
                f"Unexpected workflow change {actor.workflow_status.value} -> {status.value}",
                extra={"actor_id": actor.id, "workflow_status": status.value}
            )
        else:
            logger.info(
                f"Workflow {event.value}: {actor.workflow_status.value} -> {status.value}",
                extra={"actor_id": actor.id, "workflow_status": status.value}
            )

        self._replace_actor(actor.with_workflow_fields(actor.role, status))
        return self._actor

    async def refresh_access_token(self, rejected_token: Optional[str] = None) -> Optional[str]:
        """
        Rotate the access token once

        Args:
            rejected_token: The token the server refused (defaults to the
                current one). If the current token already differs, another
                caller rotated it and that token is returned as is.

        Returns the new token, or None. A rejected refresh clears the
        session; a transport failure keeps it.
        """
        async with self._refresh_lock:
            if rejected_token is not None and self._access_token != rejected_token:
                return self._access_token
            if not self._refresh_token:
                return None

            epoch = self._epoch
            try:
                grant = await self.auth_repo.refresh(self._refresh_token)
            except AuthenticationError as e:
                if self.is_current(epoch):
                    logger.info(f"Refresh rejected, signing out: {e.message}")
                    await self.logout()
                return None
            except DomainError as e:
                logger.warning(f"Token refresh failed: {e.message}", extra={"error_code": e.error_code})
                return None

            if not self.is_current(epoch):
                return None

            self._access_token = grant.access_token
            if grant.refresh_token:
                self._refresh_token = grant.refresh_token
            if grant.actor is not None and grant.actor != self._actor:
                self._replace_actor(grant.actor)
            else:
                self._persist_best_effort()
            return self._access_token

    # =========================================================================
    # Internals
    # =========================================================================

    def _settle(
        self,
        actor: Optional[Actor],
        access_token: Optional[str],
        refresh_token: Optional[str],
        new_epoch: bool = True
    ) -> None:
        self._actor = actor
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._status = SessionStatus.AUTHENTICATED if actor is not None else SessionStatus.ANONYMOUS
        if new_epoch:
            self._epoch = generate_session_epoch()
        self._settled.set()
        self._notify()

    def _replace_actor(self, actor: Actor) -> None:
        self._actor = actor
        self._persist_best_effort()
        self._notify()

    def _persist_best_effort(self) -> None:
        if self._actor is None or not self._access_token:
            return
        try:
            self.credential_store.save(PersistedSession(
                access_token=self._access_token,
                refresh_token=self._refresh_token,
                actor=self._actor,
            ))
        except CredentialStorageError as e:
            logger.warning(f"Could not update persisted session: {e.message}")

    def _clear_persisted(self) -> None:
        try:
            self.credential_store.clear()
        except CredentialStorageError as e:
            logger.error(f"Could not clear persisted session: {e.message}")

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._actor)
            except Exception as e:
                logger.error(f"Session listener failed: {e}", exc_info=True)
