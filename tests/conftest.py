"""
Pytest Configuration and Fixtures

Shared fakes for the REST repositories plus builders for actors,
notification records and tokens.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import jwt
import pytest
import pytest_asyncio

from pharmasync.config.settings import Settings
from pharmasync.domain.enums import Role, WorkflowStatus, NotificationType, NotificationPriority
from pharmasync.domain.errors import (
    AuthenticationError, NotificationNotFoundError, TransportError
)
from pharmasync.domain.models import (
    Actor, AuthGrant, LoginCredentials, NotificationRecord, UnreadSnapshot
)
from pharmasync.repositories.credential_store import InMemoryCredentialStore
from pharmasync.services.session_store import SessionStore
from pharmasync.services.unread_cache import UnreadCache
from pharmasync.services.notification_store import NotificationStore

TEST_SECRET = "test-secret-for-pharmasync-tokens-0123456789"
BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Builders
# =============================================================================

def make_actor(
    role: Role = Role.PHARMACY_OPERATOR,
    status: WorkflowStatus = WorkflowStatus.APPROVED,
    actor_id: str = "USR-1"
) -> Actor:
    return Actor(id=actor_id, role=role, workflow_status=status, display_name="Test User", email="t@example.com")


def make_token(minutes: int = 15, subject: str = "USR-1") -> str:
    now = datetime.now(timezone.utc)
    return jwt.encode({"sub": subject, "jti": uuid.uuid4().hex, "iat": now, "exp": now + timedelta(minutes=minutes)}, TEST_SECRET, algorithm="HS256")


def make_record(
    record_id: str,
    minutes_ago: int = 0,
    is_read: bool = False,
    priority: NotificationPriority = NotificationPriority.NORMAL,
    notification_type: NotificationType = NotificationType.SYSTEM
) -> NotificationRecord:
    return NotificationRecord(
        id=record_id,
        type=notification_type,
        priority=priority,
        title=f"Notification {record_id}",
        message="",
        is_read=is_read,
        created_at=BASE_TIME - timedelta(minutes=minutes_ago),
    )


# =============================================================================
# Fakes
# =============================================================================

class FakeAuthRepository:
    """Programmable stand-in for AuthRepository"""

    def __init__(self, actor: Optional[Actor] = None):
        self.actor = actor or make_actor()
        self.login_error: Optional[Exception] = None
        self.me_error: Optional[Exception] = None
        self.refresh_error: Optional[Exception] = None
        self.logout_error: Optional[Exception] = None
        self.calls: List[str] = []
        self.me_gate: Optional[asyncio.Event] = None
        self.refresh_actor: Optional[Actor] = None

    async def login(self, credentials: LoginCredentials) -> AuthGrant:
        self.calls.append("login")
        if self.login_error:
            raise self.login_error
        return AuthGrant(access_token=make_token(), refresh_token="refresh-1", actor=self.actor)

    async def logout(self, refresh_token, access_token=None) -> None:
        self.calls.append("logout")
        if self.logout_error:
            raise self.logout_error

    async def refresh(self, refresh_token: str) -> AuthGrant:
        self.calls.append("refresh")
        if self.refresh_error:
            raise self.refresh_error
        return AuthGrant(access_token=make_token(), refresh_token="refresh-2", actor=self.refresh_actor)

    async def me(self, access_token: Optional[str] = None) -> AuthGrant:
        self.calls.append("me")
        if self.me_gate is not None:
            await self.me_gate.wait()
        if self.me_error:
            raise self.me_error
        return AuthGrant(actor=self.actor)


class FakeNotificationRepository:
    """
    In-memory notification feed with failure switches

    ``server`` holds the server-side truth; ``gates`` lets a test hold a
    call open to control response ordering.
    """

    def __init__(self, records: Optional[List[NotificationRecord]] = None):
        self.server: Dict[str, NotificationRecord] = {r.id: r for r in records or []}
        self.fail: Dict[str, Exception] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.snapshots: List[UnreadSnapshot] = []
        self.calls: List[str] = []

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        error = self.fail.get(name)
        if error is not None:
            raise error

    async def list_notifications(self, limit: int = 20, skip: int = 0) -> List[NotificationRecord]:
        await self._enter("list")
        records = sorted(self.server.values(), key=lambda r: r.id)
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[skip:skip + limit]

    async def get_unread_snapshot(self) -> UnreadSnapshot:
        await self._enter("unread")
        if self.snapshots:
            return self.snapshots.pop(0)
        unread = [r for r in self.server.values() if not r.is_read]
        return UnreadSnapshot(
            count=len(unread),
            has_high_priority_unread=any(r.is_high_priority for r in unread),
        )

    async def mark_as_read(self, notification_id: str) -> NotificationRecord:
        await self._enter("mark_read")
        record = self.server.get(notification_id)
        if record is None:
            raise NotificationNotFoundError("Notification not found")
        self.server[notification_id] = record.as_read()
        return self.server[notification_id]

    async def mark_all_as_read(self) -> int:
        await self._enter("mark_all")
        unread = [r for r in self.server.values() if not r.is_read]
        for record in unread:
            self.server[record.id] = record.as_read()
        return len(unread)

    async def delete_notification(self, notification_id: str) -> None:
        await self._enter("delete")
        if notification_id not in self.server:
            raise NotificationNotFoundError("Notification not found")
        del self.server[notification_id]


class FakePharmacyRepository:
    def __init__(self, status: WorkflowStatus = WorkflowStatus.ONBOARDING_REQUIRED):
        self.reset_status = status
        self.reset_error: Optional[Exception] = None
        self.calls: List[str] = []

    async def reset_onboarding(self) -> WorkflowStatus:
        self.calls.append("reset")
        if self.reset_error:
            raise self.reset_error
        return self.reset_status

    async def get_my_pharmacy(self) -> dict:
        self.calls.append("my_pharmacy")
        return {"status": self.reset_status.value}


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def config(tmp_path) -> Settings:
    return Settings(
        api_base_url="http://testserver/api",
        credentials_path=str(tmp_path / "session.json"),
        poll_interval_seconds=20,
        notification_page_size=20,
        dev_jwt_secret=TEST_SECRET,
        environment="test",
        debug=False,
        _env_file=None,
    )


@pytest.fixture
def auth_repo() -> FakeAuthRepository:
    return FakeAuthRepository()


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def session(auth_repo, credential_store) -> SessionStore:
    return SessionStore(auth_repo, credential_store)


@pytest_asyncio.fixture
async def signed_in_session(session) -> SessionStore:
    result = await session.login(LoginCredentials(email="t@example.com", password="pw"))
    assert result.success
    return session


@pytest.fixture
def cache() -> UnreadCache:
    return UnreadCache()


@pytest.fixture
def notification_repo() -> FakeNotificationRepository:
    return FakeNotificationRepository([
        make_record("n1", minutes_ago=1),
        make_record("n2", minutes_ago=2),
        make_record("n3", minutes_ago=3, is_read=True),
        make_record("n4", minutes_ago=4),
    ])


@pytest.fixture
def store(notification_repo, cache, signed_in_session, config) -> NotificationStore:
    return NotificationStore(notification_repo, cache, signed_in_session, config)


@pytest.fixture
def transport_error() -> TransportError:
    return TransportError("Server unreachable")


@pytest.fixture
def auth_error() -> AuthenticationError:
    return AuthenticationError("Token rejected")
