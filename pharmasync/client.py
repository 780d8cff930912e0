"""PharmaSync Client - wires session, gates, notifications and alerts together

Usage:
    client = PharmaSyncClient()
    await client.start()              # restore persisted session
    await client.login("a@b.c", "pw")
    decision = await client.navigate("/pharmacy/inventory")
    await client.logout()
"""
from typing import Optional

import httpx

from .config.settings import Settings, settings as default_settings
from .domain.enums import SyncEventType
from .domain.models import Actor, AuthorizationDecision, LoginCredentials, OperationResult
from .engine.authorization_gate import AuthorizationGate
from .engine.navigation import NavigationGuard
from .engine.workflow_gate import WorkflowStatusGate
from .repositories.api_client import ApiClient
from .repositories.auth_repo import AuthRepository
from .repositories.credential_store import CredentialStore, FileCredentialStore
from .repositories.notification_repo import NotificationRepository
from .repositories.pharmacy_repo import PharmacyRepository
from .scheduler.sync_engine import NotificationSyncEngine
from .services.alert_dispatcher import AlertDispatcher, AudioSink
from .services.notification_store import NotificationStore
from .services.session_store import SessionStore
from .services.unread_cache import UnreadCache
from .services.workflow_service import PharmacyWorkflowService
from .utils.logger import get_logger

logger = get_logger(__name__)


class PharmaSyncClient:
    """
    One signed-in (or signed-out) client session

    Polling runs only while an actor is signed in; a session change
    stops it and clears the notification list.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        credential_store: Optional[CredentialStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        audio_sink: Optional[AudioSink] = None
    ):
        self.config = config or default_settings

        self.api = ApiClient(self.config, transport=transport)
        self.auth_repo = AuthRepository(self.api)
        self.notification_repo = NotificationRepository(self.api)
        self.pharmacy_repo = PharmacyRepository(self.api)

        self.workflow_gate = WorkflowStatusGate(self.config)
        self.authorization_gate = AuthorizationGate(self.config)
        self.session = SessionStore(
            self.auth_repo,
            credential_store or FileCredentialStore(config=self.config),
            workflow_gate=self.workflow_gate,
        )
        self.navigation = NavigationGuard(self.session, self.authorization_gate, self.workflow_gate)
        self.workflow = PharmacyWorkflowService(self.session, self.pharmacy_repo, self.workflow_gate)

        self.unread_cache = UnreadCache()
        self.notifications = NotificationStore(self.notification_repo, self.unread_cache, self.session, self.config)
        self.sync_engine = NotificationSyncEngine(self.notification_repo, self.unread_cache, self.session, self.config)
        self.alerts = AlertDispatcher(audio_sink)
        self.sync_engine.subscribe(SyncEventType.ALERT_RAISED, self.alerts.handle)

        self.api.set_token_provider(lambda: self.session.access_token)
        self.api.set_unauthorized_handler(self.session.refresh_access_token)
        self._last_epoch = self.session.epoch
        self.session.add_listener(self._on_session_change)

    @property
    def actor(self) -> Optional[Actor]:
        return self.session.actor

    async def start(self) -> OperationResult:
        """Restore the persisted session and start polling if signed in"""
        result = await self.session.restore()
        if self.session.is_authenticated:
            self.sync_engine.start()
        return result

    async def login(self, email: str, password: str) -> OperationResult:
        result = await self.session.login(LoginCredentials(email=email, password=password))
        if result.success:
            self.sync_engine.start()
        return result

    async def logout(self) -> OperationResult:
        return await self.session.logout()

    async def navigate(self, path: str) -> AuthorizationDecision:
        return await self.navigation.navigate(path)

    async def open_notifications(self) -> OperationResult:
        """Notification panel opened: load the first page"""
        return await self.notifications.refresh()

    async def close(self) -> None:
        """Stop background work (process exit)"""
        self.sync_engine.stop()

    def _on_session_change(self, actor: Optional[Actor]) -> None:
        if self.session.epoch == self._last_epoch:
            return
        self._last_epoch = self.session.epoch
        # New identity: nothing from the previous one may survive
        self.sync_engine.stop()
        self.notifications.clear()
        if actor is None:
            logger.info("Signed out; polling stopped")
