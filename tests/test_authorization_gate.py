"""Tests for the role-based authorization gate."""

import pytest

from pharmasync.domain.enums import Role, WorkflowStatus
from pharmasync.engine.authorization_gate import AuthorizationGate

from .conftest import make_actor


@pytest.fixture
def gate(config) -> AuthorizationGate:
    return AuthorizationGate(config)


class TestAuthorizationGate:
    def test_restore_pending_is_awaiting(self, gate):
        decision = gate.decide(make_actor(), {Role.PHARMACY_OPERATOR}, restore_pending=True)
        assert decision.pending is True
        assert decision.allowed is False
        assert decision.redirect_to is None

    def test_no_actor_redirects_to_login(self, gate):
        decision = gate.decide(None, {Role.PATIENT})
        assert decision.allowed is False
        assert decision.redirect_to == "/login"

    def test_role_in_set_is_allowed(self, gate):
        actor = make_actor(Role.PATIENT)
        assert gate.decide(actor, {Role.PATIENT}).allowed is True

    def test_admin_override_for_non_pharmacy_routes(self, gate):
        admin = make_actor(Role.ADMIN)
        assert gate.decide(admin, {Role.PATIENT}).allowed is True

    def test_admin_override_excludes_pharmacy_routes(self, gate):
        admin = make_actor(Role.ADMIN)
        decision = gate.decide(admin, {Role.PHARMACY_OPERATOR})
        assert decision.allowed is False
        assert decision.redirect_to == "/unauthorized"

    def test_admin_override_excludes_mixed_sets_with_pharmacy(self, gate):
        admin = make_actor(Role.ADMIN)
        decision = gate.decide(admin, {Role.PHARMACY_OPERATOR, Role.PATIENT})
        assert decision.allowed is False

    def test_wrong_role_redirects_to_unauthorized(self, gate):
        patient = make_actor(Role.PATIENT)
        decision = gate.decide(patient, {Role.ADMIN})
        assert decision.redirect_to == "/unauthorized"

    def test_empty_role_set_allows_any_signed_in_actor(self, gate):
        for role in Role:
            assert gate.decide(make_actor(role), set()).allowed is True

    @pytest.mark.parametrize("role", list(Role))
    @pytest.mark.parametrize("required", [set(), {Role.ADMIN}, {Role.PATIENT}, {Role.PHARMACY_OPERATOR}])
    def test_decision_is_always_conclusive_once_settled(self, gate, role, required):
        decision = gate.decide(make_actor(role, WorkflowStatus.PENDING), required)
        assert decision.pending is False
        assert decision.allowed or decision.redirect_to is not None
