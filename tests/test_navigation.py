"""Tests for route resolution and gate composition."""

import asyncio

import pytest

from pharmasync.domain.enums import Role, WorkflowStatus
from pharmasync.domain.models import LoginCredentials
from pharmasync.engine import AuthorizationGate, NavigationGuard, WorkflowStatusGate
from pharmasync.services.session_store import SessionStore

from .conftest import FakeAuthRepository, make_actor


def build_guard(session, config) -> NavigationGuard:
    return NavigationGuard(session, AuthorizationGate(config), WorkflowStatusGate(config))


async def signed_in(actor, credential_store) -> SessionStore:
    session = SessionStore(FakeAuthRepository(actor), credential_store)
    result = await session.login(LoginCredentials(email="t@example.com", password="pw"))
    assert result.success
    return session


class TestRouteTable:
    def test_longest_prefix_wins(self, session, config):
        guard = build_guard(session, config)
        assert guard.route_for("/pharmacy/inventory/12").prefix == "/pharmacy"
        assert guard.route_for("/").prefix == "/"
        assert guard.route_for("/nowhere") is None

    def test_restore_pending_is_awaiting(self, session, config):
        guard = build_guard(session, config)
        assert guard.decide("/patient").pending is True


class TestNavigationGuard:
    @pytest.mark.asyncio
    async def test_pending_pharmacy_is_redirected_from_inventory(self, credential_store, config):
        session = await signed_in(make_actor(Role.PHARMACY_OPERATOR, WorkflowStatus.PENDING), credential_store)
        decision = await build_guard(session, config).navigate("/pharmacy/inventory")
        assert decision.redirect_to == "/pharmacy/waiting-approval"

    @pytest.mark.asyncio
    async def test_admin_cannot_open_pharmacy_views(self, credential_store, config):
        session = await signed_in(make_actor(Role.ADMIN), credential_store)
        decision = await build_guard(session, config).navigate("/pharmacy/dashboard")
        assert decision.redirect_to == "/unauthorized"

    @pytest.mark.asyncio
    async def test_admin_can_open_patient_views(self, credential_store, config):
        session = await signed_in(make_actor(Role.ADMIN), credential_store)
        assert (await build_guard(session, config).navigate("/patient/orders")).allowed

    @pytest.mark.asyncio
    async def test_signed_out_actor_goes_to_login(self, session, config):
        await session.restore()
        decision = await build_guard(session, config).navigate("/notifications")
        assert decision.redirect_to == "/login"

    @pytest.mark.asyncio
    async def test_public_routes_open_when_signed_out(self, session, config):
        await session.restore()
        guard = build_guard(session, config)
        assert (await guard.navigate("/register")).allowed
        assert (await guard.navigate("/")).allowed

    @pytest.mark.asyncio
    async def test_signed_in_actor_on_login_goes_home(self, credential_store, config):
        session = await signed_in(make_actor(Role.PATIENT), credential_store)
        decision = await build_guard(session, config).navigate("/login")
        assert decision.redirect_to == "/patient"

    @pytest.mark.asyncio
    async def test_pending_pharmacy_can_still_open_notifications(self, credential_store, config):
        session = await signed_in(make_actor(Role.PHARMACY_OPERATOR, WorkflowStatus.PENDING), credential_store)
        assert (await build_guard(session, config).navigate("/notifications")).allowed

    @pytest.mark.asyncio
    async def test_unknown_path_falls_back_to_dashboard(self, credential_store, config):
        session = await signed_in(make_actor(Role.PHARMACY_OPERATOR, WorkflowStatus.REJECTED), credential_store)
        decision = await build_guard(session, config).navigate("/does-not-exist")
        assert decision.redirect_to == "/pharmacy/application-rejected"

    @pytest.mark.asyncio
    async def test_navigation_issued_during_restore_waits_for_it(self, auth_repo, credential_store, config):
        auth_repo.me_gate = asyncio.Event()
        await signed_in(make_actor(), credential_store)
        session = SessionStore(auth_repo, credential_store)
        guard = build_guard(session, config)

        restore = asyncio.create_task(session.restore())
        navigation = asyncio.create_task(guard.navigate("/pharmacy/orders"))
        await asyncio.sleep(0)
        assert not navigation.done()

        auth_repo.me_gate.set()
        await restore
        decision = await navigation
        assert decision.allowed is True
        assert decision.pending is False
