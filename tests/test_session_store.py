"""Tests for session restore, login, logout and status refresh."""

import asyncio

import pytest

from pharmasync.domain.enums import Role, SessionStatus, WorkflowStatus
from pharmasync.domain.errors import AuthenticationError
from pharmasync.domain.models import LoginCredentials, PersistedSession
from pharmasync.repositories.credential_store import InMemoryCredentialStore
from pharmasync.services.session_store import SessionStore

from .conftest import FakeAuthRepository, make_actor, make_token

CREDENTIALS = LoginCredentials(email="t@example.com", password="pw")


def persisted(actor=None, minutes: int = 15, refresh_token="refresh-0") -> PersistedSession:
    return PersistedSession(
        access_token=make_token(minutes=minutes),
        refresh_token=refresh_token,
        actor=actor or make_actor(),
    )


class TestRestore:
    @pytest.mark.asyncio
    async def test_restore_confirms_persisted_session(self, auth_repo):
        store = InMemoryCredentialStore(persisted())
        session = SessionStore(auth_repo, store)
        assert session.is_restoring

        result = await session.restore()

        assert result.success
        assert session.status == SessionStatus.AUTHENTICATED
        assert session.actor == auth_repo.actor
        assert auth_repo.calls == ["me"]

    @pytest.mark.asyncio
    async def test_restore_takes_server_status_over_persisted(self):
        server_actor = make_actor(status=WorkflowStatus.APPROVED)
        auth_repo = FakeAuthRepository(server_actor)
        store = InMemoryCredentialStore(persisted(make_actor(status=WorkflowStatus.PENDING)))
        session = SessionStore(auth_repo, store)

        await session.restore()

        assert session.actor.workflow_status == WorkflowStatus.APPROVED
        assert store.load().actor.workflow_status == WorkflowStatus.APPROVED

    @pytest.mark.asyncio
    async def test_without_persisted_session_settles_signed_out(self, session):
        result = await session.restore()
        assert not result.success
        assert result.error_code == "SESSION_RESTORE_FAILED"
        assert session.status == SessionStatus.ANONYMOUS
        assert session.actor is None

    @pytest.mark.asyncio
    async def test_rejected_token_clears_everything(self, auth_repo, auth_error):
        auth_repo.me_error = auth_error
        store = InMemoryCredentialStore(persisted())
        session = SessionStore(auth_repo, store)

        result = await session.restore()

        assert not result.success
        assert session.actor is None
        assert session.access_token is None
        assert store.load() is None

    @pytest.mark.asyncio
    async def test_transport_failure_also_signs_out(self, auth_repo, transport_error):
        auth_repo.me_error = transport_error
        store = InMemoryCredentialStore(persisted())
        session = SessionStore(auth_repo, store)

        await session.restore()

        assert session.status == SessionStatus.ANONYMOUS
        assert store.load() is None

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed_once(self, auth_repo):
        store = InMemoryCredentialStore(persisted(minutes=-5))
        session = SessionStore(auth_repo, store)

        result = await session.restore()

        assert result.success
        assert auth_repo.calls == ["refresh", "me"]
        assert store.load().refresh_token == "refresh-2"

    @pytest.mark.asyncio
    async def test_expired_token_without_refresh_token_fails(self, auth_repo):
        store = InMemoryCredentialStore(persisted(minutes=-5, refresh_token=None))
        session = SessionStore(auth_repo, store)

        result = await session.restore()

        assert result.error_code == "TOKEN_EXPIRED"
        assert auth_repo.calls == []
        assert store.load() is None

    @pytest.mark.asyncio
    async def test_malformed_token_fails_without_server_call(self, auth_repo):
        session_data = persisted().model_copy(update={"access_token": "not-a-jwt"})
        store = InMemoryCredentialStore(session_data)
        session = SessionStore(auth_repo, store)

        result = await session.restore()

        assert result.error_code == "MALFORMED_TOKEN"
        assert auth_repo.calls == []

    @pytest.mark.asyncio
    async def test_wait_until_settled_blocks_until_restore_finishes(self, auth_repo):
        auth_repo.me_gate = asyncio.Event()
        session = SessionStore(auth_repo, InMemoryCredentialStore(persisted()))

        restore = asyncio.create_task(session.restore())
        waiter = asyncio.create_task(session.wait_until_settled())
        await asyncio.sleep(0)
        assert session.is_restoring
        assert not waiter.done()

        auth_repo.me_gate.set()
        await restore
        await waiter
        assert session.is_authenticated

    @pytest.mark.asyncio
    async def test_logout_during_restore_wins(self, auth_repo):
        auth_repo.me_gate = asyncio.Event()
        store = InMemoryCredentialStore(persisted())
        session = SessionStore(auth_repo, store)

        restore = asyncio.create_task(session.restore())
        await asyncio.sleep(0)
        await session.logout()
        auth_repo.me_gate.set()
        result = await restore

        assert result.error_code == "STALE_SESSION"
        assert session.actor is None
        assert session.status == SessionStatus.ANONYMOUS
        assert store.load() is None

    @pytest.mark.asyncio
    async def test_failing_restore_does_not_undo_a_login(self, auth_repo):
        auth_repo.me_gate = asyncio.Event()
        auth_repo.me_error = AuthenticationError("Token revoked")
        store = InMemoryCredentialStore(persisted())
        session = SessionStore(auth_repo, store)

        restore = asyncio.create_task(session.restore())
        await asyncio.sleep(0)
        login = await session.login(CREDENTIALS)
        auth_repo.me_gate.set()
        result = await restore

        assert login.success
        assert result.error_code == "STALE_SESSION"
        assert session.is_authenticated
        assert store.load().access_token == session.access_token


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_persists_and_changes_epoch(self, session, credential_store):
        epoch = session.epoch
        seen = []
        session.add_listener(seen.append)

        result = await session.login(CREDENTIALS)

        assert result.success
        assert session.epoch != epoch
        assert credential_store.load().actor == session.actor
        assert seen == [session.actor]

    @pytest.mark.asyncio
    async def test_rejected_login_leaves_state_unchanged(self, signed_in_session, auth_repo):
        before = signed_in_session.actor
        epoch = signed_in_session.epoch
        auth_repo.login_error = AuthenticationError("Invalid credentials", error_code="INVALID_CREDENTIALS")

        result = await signed_in_session.login(CREDENTIALS)

        assert result.error_code == "INVALID_CREDENTIALS"
        assert signed_in_session.actor == before
        assert signed_in_session.epoch == epoch

    @pytest.mark.asyncio
    async def test_persist_failure_keeps_previous_session(self, signed_in_session, auth_repo, credential_store):
        previous_persisted = credential_store.load()
        previous_actor = signed_in_session.actor
        auth_repo.actor = make_actor(Role.PATIENT, actor_id="USR-2")
        credential_store.fail_on_save = True

        result = await signed_in_session.login(CREDENTIALS)

        assert result.error_code == "CREDENTIAL_STORAGE_ERROR"
        assert signed_in_session.actor == previous_actor
        assert credential_store.load() == previous_persisted


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_clears_and_is_idempotent(self, signed_in_session, auth_repo, credential_store):
        epoch = signed_in_session.epoch

        first = await signed_in_session.logout()
        after_first = signed_in_session.epoch
        second = await signed_in_session.logout()

        assert first.success and second.success
        assert signed_in_session.actor is None
        assert credential_store.load() is None
        assert after_first != epoch
        assert signed_in_session.epoch == after_first
        assert auth_repo.calls.count("logout") == 1

    @pytest.mark.asyncio
    async def test_server_logout_failure_still_clears(self, signed_in_session, auth_repo, transport_error):
        auth_repo.logout_error = transport_error
        result = await signed_in_session.logout()
        assert result.success
        assert signed_in_session.status == SessionStatus.ANONYMOUS

    @pytest.mark.asyncio
    async def test_storage_failure_still_logs_out_on_server(self, signed_in_session, auth_repo, credential_store):
        credential_store.fail_on_clear = True

        result = await signed_in_session.logout()

        assert result.error_code == "CREDENTIAL_STORAGE_ERROR"
        assert signed_in_session.actor is None
        assert auth_repo.calls.count("logout") == 1


class TestRefreshStatus:
    @pytest.mark.asyncio
    async def test_confirmed_approval_replaces_actor(self, credential_store):
        auth_repo = FakeAuthRepository(make_actor(status=WorkflowStatus.PENDING))
        session = SessionStore(auth_repo, credential_store)
        await session.login(CREDENTIALS)
        epoch = session.epoch

        auth_repo.actor = make_actor(status=WorkflowStatus.APPROVED)
        result = await session.refresh_status()

        assert result.success
        assert session.actor.workflow_status == WorkflowStatus.APPROVED
        assert session.epoch == epoch
        assert credential_store.load().actor.workflow_status == WorkflowStatus.APPROVED

    @pytest.mark.asyncio
    async def test_transport_error_keeps_actor(self, signed_in_session, auth_repo, transport_error):
        before = signed_in_session.actor
        auth_repo.me_error = transport_error

        result = await signed_in_session.refresh_status()

        assert result.error_code == "TRANSPORT_ERROR"
        assert signed_in_session.actor == before

    @pytest.mark.asyncio
    async def test_result_for_previous_session_is_dropped(self, signed_in_session, auth_repo):
        auth_repo.me_gate = asyncio.Event()
        refresh = asyncio.create_task(signed_in_session.refresh_status())
        await asyncio.sleep(0)

        await signed_in_session.logout()
        auth_repo.me_gate.set()
        result = await refresh

        assert result.error_code == "STALE_SESSION"
        assert signed_in_session.actor is None

    @pytest.mark.asyncio
    async def test_signed_out_refresh_fails(self, session):
        await session.restore()
        result = await session.refresh_status()
        assert not result.success


class TestRefreshAccessToken:
    @pytest.mark.asyncio
    async def test_rotates_tokens(self, signed_in_session, credential_store):
        before = signed_in_session.access_token
        token = await signed_in_session.refresh_access_token()
        assert token is not None
        assert credential_store.load().refresh_token == "refresh-2"
        assert signed_in_session.access_token == token
        assert before is not None

    @pytest.mark.asyncio
    async def test_rejected_refresh_signs_out(self, signed_in_session, auth_repo, auth_error):
        auth_repo.refresh_error = auth_error
        assert await signed_in_session.refresh_access_token() is None
        assert signed_in_session.actor is None

    @pytest.mark.asyncio
    async def test_transport_failure_keeps_session(self, signed_in_session, auth_repo, transport_error):
        auth_repo.refresh_error = transport_error
        assert await signed_in_session.refresh_access_token() is None
        assert signed_in_session.is_authenticated

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self, signed_in_session, auth_repo):
        rejected = signed_in_session.access_token
        tokens = await asyncio.gather(
            signed_in_session.refresh_access_token(rejected),
            signed_in_session.refresh_access_token(rejected),
        )
        assert tokens[0] == tokens[1] != rejected
        assert auth_repo.calls.count("refresh") == 1

    @pytest.mark.asyncio
    async def test_late_rejection_of_an_old_token_reuses_the_new_one(self, signed_in_session, auth_repo):
        rejected = signed_in_session.access_token
        fresh = await signed_in_session.refresh_access_token(rejected)

        assert await signed_in_session.refresh_access_token(rejected) == fresh
        assert auth_repo.calls.count("refresh") == 1

    @pytest.mark.asyncio
    async def test_actor_from_refresh_reaches_listeners(self, signed_in_session, auth_repo, credential_store):
        seen = []
        signed_in_session.add_listener(seen.append)
        auth_repo.refresh_actor = make_actor(status=WorkflowStatus.PENDING)

        await signed_in_session.refresh_access_token()

        assert seen == [auth_repo.refresh_actor]
        assert credential_store.load().actor == auth_repo.refresh_actor
