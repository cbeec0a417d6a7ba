"""Workflow service - case status state machine.

Status changes are validated against the transition table, role gating and
the target status action profile before anything is written. The case
update and its status_changed activity commit together; notifications and
follow-up hooks are queued afterwards and never undo the change.
"""

import logging
from datetime import timedelta
from typing import TypedDict
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from legalpro.core.status_rules import (
    STATUS_ACTIONS,
    STATUS_DESCRIPTIONS,
    STATUS_LABELS,
    STATUS_PERMISSIONS,
    STATUS_TRANSITIONS,
    TERMINAL_STATUSES,
    can_role_set_status,
    coerce_status,
    get_action_profile,
    is_valid_transition,
)
from legalpro.core.structured_logging import build_log_context
from legalpro.db.base import as_utc, utcnow
from legalpro.db.enums import (
    ActivityPriority,
    ActivityType,
    CasePriority,
    CaseStatus,
    Role,
)
from legalpro.db.models import Case, CaseActivity, User
from legalpro.schemas.auth import Actor
from legalpro.schemas.workflow import StatusChangeOptions
from legalpro.services import activity_service, case_service, notification_service, workflow_hooks
from legalpro.services.errors import (
    CaseServiceError,
    CaseValidationError,
    ForbiddenError,
    InvalidTransitionError,
)

logger = logging.getLogger(__name__)

DEFAULT_REASON = "No reason provided"
BULK_DEFAULT_REASON = "Bulk status change"
STATUS_HISTORY_LIMIT = 50


class StatusChangeResult(TypedDict):
    """Result of a status change operation."""

    case: Case
    previous_status: str
    new_status: str
    message: str


def _label(status: str) -> str:
    coerced = coerce_status(status)
    return STATUS_LABELS[coerced] if coerced else status


def _check_actor_may_set(case: Case, target: str, actor: Actor) -> None:
    if not can_role_set_status(actor.role, target):
        raise ForbiddenError(f"Role '{actor.role.value}' cannot change status to {target}")
    if actor.role == Role.ADVOCATE and not case.is_assigned(actor.user_id):
        raise ForbiddenError("Advocates can only change the status of cases assigned to them")


def _validate_requirements(
    case: Case, target: CaseStatus, options: StatusChangeOptions
) -> None:
    profile = get_action_profile(target)
    label = STATUS_LABELS[target]
    if profile.requires_reason and not (options.reason or "").strip():
        raise CaseValidationError(f"A reason is required to change status to {label}")
    if profile.requires_outcome and not (options.outcome or "").strip():
        raise CaseValidationError(f"An outcome is required to change status to {label}")
    if profile.requires_approval and not options.approved:
        raise CaseValidationError(f"Approval is required to change status to {label}")
    if case.status == CaseStatus.DRAFT.value and case.primary_advocate_id is None:
        raise CaseValidationError("A primary advocate must be assigned before leaving draft")


def change_status(
    db: Session,
    case_id: UUID,
    target_status: str | CaseStatus,
    actor: Actor,
    options: StatusChangeOptions | None = None,
) -> StatusChangeResult:
    """
    Move a case to a new status.

    Raises:
        CaseNotFoundError: case does not exist
        InvalidTransitionError: target not reachable (or not a status at all)
        ForbiddenError: role or assignment does not allow the change
        CaseValidationError: reason/outcome/approval missing, or leaving
            draft without a primary advocate
        ConcurrentModificationError: case updated by someone else meanwhile
    """
    options = options or StatusChangeOptions()
    case = case_service.get_case_or_raise(db, case_id)
    previous_status = case.status
    target_value = target_status.value if isinstance(target_status, CaseStatus) else str(target_status)

    if not is_valid_transition(previous_status, target_value):
        raise InvalidTransitionError(previous_status, target_value)
    target = CaseStatus(target_value)

    _check_actor_may_set(case, target.value, actor)
    _validate_requirements(case, target, options)

    profile = get_action_profile(target)
    now = utcnow()

    case.status = target.value
    case.updated_by_id = actor.user_id
    case.last_activity = now
    if profile.progress is not None:
        case.progress = profile.progress
    if profile.date_field:
        setattr(case, profile.date_field, now)
    if options.outcome:
        case.outcome = options.outcome
    if options.notes:
        case.notes = options.notes

    details = {
        "previous_status": previous_status,
        "new_status": target.value,
        "reason": options.reason or DEFAULT_REASON,
        "outcome": options.outcome,
        "notes": options.notes,
        "approved": options.approved,
        "profile_applied": {
            "progress": profile.progress,
            "date_field": profile.date_field,
        },
    }
    priority = (
        ActivityPriority.HIGH
        if target in (CaseStatus.CLOSED, CaseStatus.DISMISSED)
        else ActivityPriority.MEDIUM
    )

    with case_service.versioned_commit(db, case):
        activity = activity_service.create_activity(
            db,
            case_id=case.id,
            activity_type=ActivityType.STATUS_CHANGED,
            action="Status Changed",
            description=(
                f"Case status changed from {_label(previous_status)} to {STATUS_LABELS[target]}"
            ),
            performed_by_id=actor.user_id,
            priority=priority,
            details=details,
            ip_address=options.ip_address,
            user_agent=options.user_agent,
            commit=False,
        )

    log_context = build_log_context(user_id=str(actor.user_id), case_id=str(case.id))
    logger.info("Case status changed %s -> %s", previous_status, target.value, extra=log_context)

    if profile.notify:
        try:
            notification_service.enqueue_status_notifications(
                db, case, activity, profile.notify, previous_status, target.value
            )
        except Exception:
            db.rollback()
            logger.exception("Failed to queue status notifications", extra=log_context)

    try:
        workflow_hooks.enqueue_status_hook(db, case, target, actor, options)
    except Exception:
        db.rollback()
        logger.exception("Failed to queue workflow hook", extra=log_context)

    return StatusChangeResult(
        case=case,
        previous_status=previous_status,
        new_status=target.value,
        message=f"Case status changed from {_label(previous_status)} to {STATUS_LABELS[target]}",
    )


def get_available_transitions(case: Case, actor: Actor) -> list[dict]:
    """Statuses the actor may move this case to, with their requirements."""
    current = coerce_status(case.status)
    if current is None:
        return []
    if actor.role == Role.ADVOCATE and not case.is_assigned(actor.user_id):
        return []

    return [
        {
            "status": target.value,
            "label": STATUS_LABELS[target],
            "description": STATUS_DESCRIPTIONS[target],
            "requirements": get_action_profile(target).to_requirements(),
        }
        for target in STATUS_TRANSITIONS.get(current, ())
        if can_role_set_status(actor.role, target)
    ]


def get_status_history(
    db: Session,
    case_id: UUID,
    limit: int = STATUS_HISTORY_LIMIT,
    actor: Actor | None = None,
) -> list[dict]:
    """Status changes for a case, newest first."""
    case = case_service.get_case_or_raise(db, case_id)
    if actor is not None and not case_service.can_user_access(case, actor):
        raise ForbiddenError("Access denied to this case")

    rows = (
        db.query(CaseActivity, User)
        .outerjoin(User, User.id == CaseActivity.performed_by_id)
        .filter(
            CaseActivity.case_id == case_id,
            CaseActivity.activity_type == ActivityType.STATUS_CHANGED.value,
        )
        .order_by(CaseActivity.performed_at.desc(), CaseActivity.created_at.desc())
        .limit(limit)
        .all()
    )
    history = []
    for activity, user in rows:
        details = activity.details or {}
        history.append(
            {
                "activity_id": activity.id,
                "previous_status": details.get("previous_status"),
                "new_status": details.get("new_status"),
                "reason": details.get("reason"),
                "outcome": details.get("outcome"),
                "changed_by_id": activity.performed_by_id,
                "changed_by_name": user.full_name if user else None,
                "changed_at": activity.performed_at,
            }
        )
    return history


def bulk_change_status(
    db: Session,
    case_ids: list[UUID],
    target_status: str | CaseStatus,
    actor: Actor,
    reason: str | None = None,
    outcome: str | None = None,
    approved: bool = False,
) -> dict:
    """
    Apply one status change to many cases (admins only).

    Each case succeeds or fails on its own; failures are collected, not raised.
    """
    if not actor.is_admin:
        raise ForbiddenError("Only administrators can change status in bulk")

    options = StatusChangeOptions(
        reason=reason or BULK_DEFAULT_REASON,
        outcome=outcome,
        approved=approved,
    )
    successful: list[StatusChangeResult] = []
    failed: list[dict] = []
    for case_id in case_ids:
        try:
            successful.append(change_status(db, case_id, target_status, actor, options))
        except CaseServiceError as exc:
            failed.append({"case_id": case_id, "error": str(exc)})

    logger.info(
        "Bulk status change: %s succeeded, %s failed",
        len(successful),
        len(failed),
        extra=build_log_context(user_id=str(actor.user_id)),
    )
    return {"successful": successful, "failed": failed, "total": len(case_ids)}


def get_workflow_config() -> dict:
    """Static workflow tables for clients building status UIs."""
    return {
        "statuses": [
            {
                "value": status.value,
                "label": STATUS_LABELS[status],
                "description": STATUS_DESCRIPTIONS[status],
            }
            for status in CaseStatus
        ],
        "transitions": {
            status.value: [target.value for target in targets]
            for status, targets in STATUS_TRANSITIONS.items()
        },
        "permissions": {
            status.value: [role.value for role in roles]
            for status, roles in STATUS_PERMISSIONS.items()
        },
        "actions": {
            status.value: profile.to_requirements() for status, profile in STATUS_ACTIONS.items()
        },
    }


def _filtered_cases(db: Session, filters: dict | None):
    query = db.query(Case).filter(Case.is_active.is_(True))
    filters = filters or {}
    if filters.get("case_type"):
        query = query.filter(Case.case_type == filters["case_type"])
    if filters.get("priority"):
        query = query.filter(Case.priority == filters["priority"])
    if filters.get("primary_advocate_id"):
        query = query.filter(Case.primary_advocate_id == filters["primary_advocate_id"])
    if filters.get("client_id"):
        query = query.filter(Case.client_id == filters["client_id"])
    if filters.get("date_from"):
        query = query.filter(Case.date_created >= filters["date_from"])
    if filters.get("date_to"):
        query = query.filter(Case.date_created <= filters["date_to"])
    return query


def get_status_statistics(db: Session, filters: dict | None = None) -> dict:
    """
    Active case counts per status with progress and age, plus risk metrics.

    Overdue: expected completion passed on a non-terminal case.
    Urgent: urgent priority on a non-terminal case.
    """
    rows = (
        _filtered_cases(db, filters)
        .with_entities(
            Case.status,
            func.count(Case.id),
            func.avg(Case.progress),
            func.min(Case.date_created),
            func.max(Case.date_created),
        )
        .group_by(Case.status)
        .order_by(func.count(Case.id).desc())
        .all()
    )
    breakdown = [
        {
            "status": status,
            "label": _label(status),
            "count": count,
            "avg_progress": round(float(avg_progress or 0), 2),
            "oldest_case": as_utc(oldest),
            "newest_case": as_utc(newest),
        }
        for status, count, avg_progress, oldest, newest in rows
    ]
    total = sum(entry["count"] for entry in breakdown)
    average_progress = (
        round(sum(entry["avg_progress"] * entry["count"] for entry in breakdown) / total, 2)
        if total
        else 0.0
    )

    open_statuses = [s.value for s in CaseStatus if s not in TERMINAL_STATUSES]
    overdue = (
        _filtered_cases(db, filters)
        .filter(
            Case.status.in_(open_statuses),
            Case.expected_completion.isnot(None),
            Case.expected_completion < utcnow(),
        )
        .count()
    )
    urgent = (
        _filtered_cases(db, filters)
        .filter(Case.status.in_(open_statuses), Case.priority == CasePriority.URGENT.value)
        .count()
    )
    recent_cutoff = utcnow() - timedelta(days=30)
    created_recently = (
        _filtered_cases(db, filters).filter(Case.date_created >= recent_cutoff).count()
    )

    def _pct(value: int) -> float:
        return round(value / total * 100, 2) if total else 0.0

    return {
        "status_breakdown": breakdown,
        "total_cases": total,
        "average_progress": average_progress,
        "metrics": {
            "overdue_cases": overdue,
            "urgent_cases": urgent,
            "created_last_30_days": created_recently,
            "overdue_percentage": _pct(overdue),
            "urgent_percentage": _pct(urgent),
        },
    }
