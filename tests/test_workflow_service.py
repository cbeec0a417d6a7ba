import uuid
from datetime import timedelta

import pytest

from legalpro.core.config import settings
from legalpro.core.status_rules import STATUS_TRANSITIONS
from legalpro.db.base import as_utc, utcnow
from legalpro.db.enums import ActivityType, CasePriority, CaseStatus, JobType
from legalpro.db.models import Case, CaseActivity, Job
from legalpro.schemas.workflow import StatusChangeOptions
from legalpro.services import workflow_service
from legalpro.services.errors import (
    CaseNotFoundError,
    CaseValidationError,
    ConcurrentModificationError,
    ForbiddenError,
    InvalidTransitionError,
)


def _status_activities(db, case_id):
    return (
        db.query(CaseActivity)
        .filter(
            CaseActivity.case_id == case_id,
            CaseActivity.activity_type == ActivityType.STATUS_CHANGED.value,
        )
        .all()
    )


def _jobs(db, case_id, job_type: JobType):
    return (
        db.query(Job)
        .filter(Job.case_id == case_id, Job.job_type == job_type.value)
        .all()
    )


# =============================================================================
# change_status
# =============================================================================

def test_open_applies_action_profile(db, make_case, advocate, as_actor):
    case = make_case(primary=advocate)
    assert case.date_assigned is None
    version_before = case.version

    result = workflow_service.change_status(db, case.id, "open", as_actor(advocate))

    assert result["previous_status"] == "draft"
    assert result["new_status"] == "open"
    assert result["message"] == "Case status changed from Draft to Open"
    case = result["case"]
    assert case.status == "open"
    assert case.progress == 10
    assert case.date_assigned is not None
    assert case.updated_by_id == advocate.id
    assert case.version > version_before

    [activity] = _status_activities(db, case.id)
    assert activity.performed_by_id == advocate.id
    assert activity.details["previous_status"] == "draft"
    assert activity.details["new_status"] == "open"
    assert activity.details["reason"] == workflow_service.DEFAULT_REASON


def test_leaving_draft_requires_primary_advocate(db, make_case, admin, as_actor):
    case = make_case()

    with pytest.raises(CaseValidationError, match="primary advocate"):
        workflow_service.change_status(db, case.id, "open", as_actor(admin))

    db.refresh(case)
    assert case.status == "draft"
    assert _status_activities(db, case.id) == []


def test_invalid_transition_is_rejected(db, make_case, admin, advocate, as_actor):
    case = make_case(primary=advocate)

    with pytest.raises(InvalidTransitionError) as exc_info:
        workflow_service.change_status(db, case.id, CaseStatus.CLOSED, as_actor(admin))

    assert exc_info.value.current_status == "draft"
    assert exc_info.value.target_status == "closed"
    db.refresh(case)
    assert case.status == "draft"


def test_unknown_target_is_an_invalid_transition(db, make_case, admin, advocate, as_actor):
    case = make_case(primary=advocate)

    with pytest.raises(InvalidTransitionError):
        workflow_service.change_status(db, case.id, "resolved", as_actor(admin))


def test_missing_case_raises_not_found(db, admin, as_actor):
    with pytest.raises(CaseNotFoundError):
        workflow_service.change_status(db, uuid.uuid4(), "open", as_actor(admin))


def test_advocate_cannot_archive(db, make_case, advocate, as_actor):
    case = make_case(primary=advocate, status=CaseStatus.CLOSED)

    with pytest.raises(ForbiddenError):
        workflow_service.change_status(
            db, case.id, "archived", as_actor(advocate), StatusChangeOptions(approved=True)
        )


def test_unassigned_advocate_cannot_change_status(
    db, make_case, advocate, other_advocate, as_actor
):
    case = make_case(primary=advocate, status=CaseStatus.OPEN)

    with pytest.raises(ForbiddenError):
        workflow_service.change_status(db, case.id, "in_review", as_actor(other_advocate))


def test_secondary_advocate_can_change_status(
    db, make_case, advocate, other_advocate, as_actor
):
    case = make_case(primary=advocate, secondary=(other_advocate,), status=CaseStatus.OPEN)

    result = workflow_service.change_status(db, case.id, "in_review", as_actor(other_advocate))

    assert result["case"].status == "in_review"
    assert result["case"].progress == 75


def test_client_cannot_change_status(db, make_case, advocate, client_user, as_actor):
    case = make_case(primary=advocate, client=client_user, status=CaseStatus.OPEN)

    with pytest.raises(ForbiddenError):
        workflow_service.change_status(db, case.id, "in_review", as_actor(client_user))


def test_on_hold_requires_reason(db, make_case, advocate, as_actor):
    case = make_case(primary=advocate, status=CaseStatus.OPEN)

    with pytest.raises(CaseValidationError, match="reason"):
        workflow_service.change_status(
            db, case.id, "on_hold", as_actor(advocate), StatusChangeOptions(reason="   ")
        )


def test_on_hold_schedules_reminder(db, make_case, advocate, as_actor):
    case = make_case(primary=advocate, status=CaseStatus.OPEN, progress=40)
    before = utcnow()

    result = workflow_service.change_status(
        db,
        case.id,
        "on_hold",
        as_actor(advocate),
        StatusChangeOptions(reason="Awaiting court date"),
    )

    # on_hold has no progress update
    assert result["case"].progress == 40
    [reminder] = _jobs(db, case.id, JobType.REMINDER)
    assert reminder.status == "pending"
    assert reminder.payload["reason"] == "Awaiting court date"
    delay = as_utc(reminder.run_at) - before
    assert delay >= timedelta(days=settings.ON_HOLD_REMINDER_DAYS)


def test_close_requires_outcome(db, make_case, advocate, as_actor):
    case = make_case(primary=advocate, status=CaseStatus.OPEN)

    with pytest.raises(CaseValidationError, match="outcome"):
        workflow_service.change_status(db, case.id, "closed", as_actor(advocate))


def test_close_completes_case_and_queues_closure_report(
    db, make_case, advocate, client_user, as_actor
):
    case = make_case(primary=advocate, client=client_user, status=CaseStatus.IN_REVIEW)

    result = workflow_service.change_status(
        db,
        case.id,
        "closed",
        as_actor(advocate),
        StatusChangeOptions(outcome="Settled out of court"),
    )

    case = result["case"]
    assert case.progress == 100
    assert case.actual_completion is not None
    assert case.outcome == "Settled out of court"

    [activity] = _status_activities(db, case.id)
    assert activity.priority == "high"

    [hook] = _jobs(db, case.id, JobType.WORKFLOW_HOOK)
    assert hook.payload["hook"] == "closure_report"
    assert hook.payload["actor_id"] == str(advocate.id)


def test_dismiss_resets_progress(db, make_case, advocate, as_actor):
    case = make_case(primary=advocate, status=CaseStatus.OPEN, progress=60)

    result = workflow_service.change_status(
        db, case.id, "dismissed", as_actor(advocate), StatusChangeOptions(reason="Withdrawn")
    )

    assert result["case"].progress == 0
    assert result["case"].actual_completion is not None


def test_archive_requires_approval(db, make_case, advocate, admin, as_actor):
    case = make_case(primary=advocate, status=CaseStatus.CLOSED)

    with pytest.raises(CaseValidationError, match="Approval"):
        workflow_service.change_status(db, case.id, "archived", as_actor(admin))

    result = workflow_service.change_status(
        db, case.id, "archived", as_actor(admin), StatusChangeOptions(approved=True)
    )
    assert result["case"].status == "archived"
    [hook] = _jobs(db, case.id, JobType.WORKFLOW_HOOK)
    assert hook.payload["hook"] == "archival"


def test_archived_is_final(db, make_case, advocate, admin, as_actor):
    case = make_case(primary=advocate, status=CaseStatus.ARCHIVED)

    for target in ("open", "closed", "archived"):
        with pytest.raises(InvalidTransitionError):
            workflow_service.change_status(
                db, case.id, target, as_actor(admin), StatusChangeOptions(approved=True)
            )


def test_status_change_queues_notifications(
    db, make_case, advocate, other_advocate, client_user, as_actor
):
    case = make_case(primary=advocate, secondary=(other_advocate,), client=client_user)

    workflow_service.change_status(db, case.id, "open", as_actor(advocate))

    jobs = _jobs(db, case.id, JobType.NOTIFICATION)
    assert {job.payload["user_id"] for job in jobs} == {
        str(advocate.id),
        str(other_advocate.id),
        str(client_user.id),
    }
    [activity] = _status_activities(db, case.id)
    assert {r.user_id for r in activity.recipients} == {
        advocate.id,
        other_advocate.id,
        client_user.id,
    }


def test_notification_failure_does_not_undo_change(
    db, make_case, advocate, as_actor, monkeypatch
):
    case = make_case(primary=advocate)

    def _boom(*args, **kwargs):
        raise RuntimeError("queue unavailable")

    monkeypatch.setattr(
        workflow_service.notification_service, "enqueue_status_notifications", _boom
    )

    result = workflow_service.change_status(db, case.id, "open", as_actor(advocate))

    assert result["new_status"] == "open"
    db.refresh(case)
    assert case.status == "open"
    assert len(_status_activities(db, case.id)) == 1


def test_stale_case_raises_concurrent_modification(db, make_case, advocate, as_actor):
    case = make_case(primary=advocate, status=CaseStatus.OPEN)

    # Another writer bumps the version behind this session's back
    table = Case.__table__
    db.execute(
        table.update().where(table.c.id == case.id).values(version=table.c.version + 1)
    )

    with pytest.raises(ConcurrentModificationError):
        workflow_service.change_status(db, case.id, "in_review", as_actor(advocate))

    db.refresh(case)
    assert case.status == "open"
    assert _status_activities(db, case.id) == []


def test_change_records_request_metadata(db, make_case, advocate, as_actor):
    case = make_case(primary=advocate)

    workflow_service.change_status(
        db,
        case.id,
        "open",
        as_actor(advocate),
        StatusChangeOptions(ip_address="10.0.0.7", user_agent="pytest"),
    )

    [activity] = _status_activities(db, case.id)
    assert activity.details["ip_address"] == "10.0.0.7"
    assert activity.details["user_agent"] == "pytest"


# =============================================================================
# Transition table
# =============================================================================

FULL_OPTIONS = StatusChangeOptions(reason="Routine update", outcome="Resolved", approved=True)


def test_every_non_edge_is_rejected(db, make_case, advocate, admin, as_actor):
    for current in CaseStatus:
        allowed = STATUS_TRANSITIONS[current]
        for target in CaseStatus:
            if target in allowed:
                continue
            case = make_case(primary=advocate, status=current)
            with pytest.raises(InvalidTransitionError):
                workflow_service.change_status(db, case.id, target, as_actor(admin), FULL_OPTIONS)
            db.refresh(case)
            assert case.status == current.value


def test_every_edge_logs_one_status_change(db, make_case, advocate, admin, as_actor):
    for current, targets in STATUS_TRANSITIONS.items():
        for target in targets:
            case = make_case(primary=advocate, status=current)
            workflow_service.change_status(db, case.id, target, as_actor(admin), FULL_OPTIONS)
            [activity] = _status_activities(db, case.id)
            assert activity.details["previous_status"] == current.value
            assert activity.details["new_status"] == target.value


# =============================================================================
# Transitions and history
# =============================================================================

def test_available_transitions_for_admin(make_case, advocate, admin, as_actor):
    case = make_case(primary=advocate, status=CaseStatus.CLOSED)

    options = workflow_service.get_available_transitions(case, as_actor(admin))

    assert [o["status"] for o in options] == ["archived"]
    assert options[0]["label"] == "Archived"
    assert options[0]["requirements"]["requires_approval"] is True


def test_available_transitions_filtered_by_role(make_case, advocate, as_actor):
    case = make_case(primary=advocate, status=CaseStatus.CLOSED)

    assert workflow_service.get_available_transitions(case, as_actor(advocate)) == []


def test_available_transitions_from_open(make_case, advocate, as_actor):
    case = make_case(primary=advocate, status=CaseStatus.OPEN)

    options = workflow_service.get_available_transitions(case, as_actor(advocate))

    assert [o["status"] for o in options] == [
        "in_review",
        "on_hold",
        "pending",
        "closed",
        "dismissed",
    ]


def test_unassigned_advocate_sees_no_transitions(make_case, advocate, other_advocate, as_actor):
    case = make_case(primary=advocate, status=CaseStatus.OPEN)

    assert workflow_service.get_available_transitions(case, as_actor(other_advocate)) == []


def test_status_history_newest_first(db, make_case, advocate, as_actor):
    case = make_case(primary=advocate)
    actor = as_actor(advocate)
    workflow_service.change_status(db, case.id, "open", actor)
    workflow_service.change_status(
        db, case.id, "pending", actor, StatusChangeOptions(reason="Waiting on client documents")
    )

    history = workflow_service.get_status_history(db, case.id, actor=actor)

    assert [(h["previous_status"], h["new_status"]) for h in history] == [
        ("open", "pending"),
        ("draft", "open"),
    ]
    assert history[0]["reason"] == "Waiting on client documents"
    assert history[0]["changed_by_name"] == advocate.full_name


def test_status_history_checks_access(db, make_case, advocate, client_user, as_actor):
    case = make_case(primary=advocate)

    with pytest.raises(ForbiddenError):
        workflow_service.get_status_history(db, case.id, actor=as_actor(client_user))


# =============================================================================
# Bulk changes
# =============================================================================

def test_bulk_change_collects_failures(db, make_case, advocate, admin, as_actor):
    ready = make_case(primary=advocate)
    unassigned = make_case()

    result = workflow_service.bulk_change_status(
        db, [ready.id, unassigned.id], "open", as_actor(admin)
    )

    assert result["total"] == 2
    assert [r["case"].id for r in result["successful"]] == [ready.id]
    [failure] = result["failed"]
    assert failure["case_id"] == unassigned.id
    assert "primary advocate" in failure["error"]


def test_bulk_default_reason_satisfies_requirement(db, make_case, advocate, admin, as_actor):
    cases = [make_case(primary=advocate, status=CaseStatus.OPEN) for _ in range(2)]

    result = workflow_service.bulk_change_status(
        db, [c.id for c in cases], "on_hold", as_actor(admin)
    )

    assert len(result["successful"]) == 2
    assert result["failed"] == []
    history = workflow_service.get_status_history(db, cases[0].id)
    assert history[0]["reason"] == workflow_service.BULK_DEFAULT_REASON


def test_bulk_change_is_admin_only(db, make_case, advocate, as_actor):
    case = make_case(primary=advocate)

    with pytest.raises(ForbiddenError):
        workflow_service.bulk_change_status(db, [case.id], "open", as_actor(advocate))


# =============================================================================
# Configuration and statistics
# =============================================================================

def test_workflow_config_lists_all_statuses():
    config = workflow_service.get_workflow_config()

    assert [s["value"] for s in config["statuses"]] == [s.value for s in CaseStatus]
    assert config["transitions"]["draft"] == ["open", "dismissed"]
    assert config["permissions"]["archived"] == ["admin", "super_admin"]
    assert config["actions"]["closed"]["requires_outcome"] is True


def test_status_statistics(db, make_case, advocate):
    make_case(primary=advocate, status=CaseStatus.OPEN, progress=10)
    make_case(primary=advocate, status=CaseStatus.OPEN, progress=30, priority=CasePriority.URGENT)
    make_case(
        primary=advocate,
        status=CaseStatus.PENDING,
        progress=50,
        expected_completion=utcnow() - timedelta(days=3),
    )
    make_case(status=CaseStatus.CLOSED, progress=100, priority=CasePriority.URGENT)
    make_case(status=CaseStatus.OPEN, is_active=False)

    stats = workflow_service.get_status_statistics(db)

    breakdown = {entry["status"]: entry for entry in stats["status_breakdown"]}
    assert stats["total_cases"] == 4
    assert breakdown["open"]["count"] == 2
    assert breakdown["open"]["avg_progress"] == 20.0
    assert breakdown["open"]["label"] == "Open"
    assert stats["average_progress"] == 47.5
    assert stats["metrics"]["overdue_cases"] == 1
    # Urgent only counts non-terminal cases
    assert stats["metrics"]["urgent_cases"] == 1
    assert stats["metrics"]["created_last_30_days"] == 4
    assert stats["metrics"]["urgent_percentage"] == 25.0


def test_status_statistics_filters(db, make_case, advocate, other_advocate):
    make_case(primary=advocate, status=CaseStatus.OPEN)
    make_case(primary=other_advocate, status=CaseStatus.OPEN)

    stats = workflow_service.get_status_statistics(
        db, {"primary_advocate_id": advocate.id}
    )

    assert stats["total_cases"] == 1
