"""Tests for wire parsing of actors, notifications and snapshots."""

from pharmasync.domain.enums import NotificationPriority, NotificationType, Role, WorkflowStatus
from pharmasync.domain.models import Actor, NotificationRecord, UnreadSnapshot, sort_newest_first

from .conftest import make_record


def test_workflow_status_is_dropped_for_non_pharmacy_roles():
    actor = Actor.from_payload({"id": 1, "roleId": 3, "status": "VERIFIED"})
    assert actor.role == Role.PATIENT
    assert actor.workflow_status == WorkflowStatus.NONE


def test_role_names_and_unknown_roles():
    assert Actor.from_payload({"id": "a", "role": "pharmacy_admin"}).role == Role.PHARMACY_OPERATOR
    assert Actor.from_payload({"id": "a", "roleId": 42}).role == Role.GUEST


def test_pharmacy_status_from_nested_pharmacy():
    actor = Actor.from_payload({"id": "a", "roleId": 2}, pharmacy={"status": "PENDING_VERIFICATION"})
    assert actor.workflow_status == WorkflowStatus.PENDING


def test_role_change_revalidates_status():
    pharmacy = Actor.from_payload({"id": "a", "roleId": 2, "status": "VERIFIED"})
    admin = pharmacy.with_workflow_fields(Role.ADMIN, WorkflowStatus.APPROVED)
    assert admin.workflow_status == WorkflowStatus.NONE


def test_priority_comes_from_declared_field_only():
    record = NotificationRecord.model_validate({
        "id": "1", "type": "URGENT_ALERT", "createdAt": "2026-03-01T10:00:00Z",
    })
    assert record.type == NotificationType.URGENT_ALERT
    assert record.priority == NotificationPriority.NORMAL
    assert not record.is_high_priority


def test_bad_metadata_string_is_ignored():
    record = NotificationRecord.model_validate({
        "id": "1", "createdAt": "2026-03-01T10:00:00", "metadata": "{oops",
    })
    assert record.metadata == {}
    assert record.created_at.tzinfo is not None


def test_sort_breaks_ties_by_id():
    records = [make_record("b"), make_record("a"), make_record("c", minutes_ago=-1)]
    assert [r.id for r in sort_newest_first(records)] == ["c", "a", "b"]


def test_snapshot_without_unread_has_no_priority_flag():
    snapshot = UnreadSnapshot.from_payload({"unreadCount": 0, "hasHighPriority": True})
    assert snapshot.has_high_priority_unread is False
