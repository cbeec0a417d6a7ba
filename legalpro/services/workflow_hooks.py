"""Status follow-up hooks.

Entering closed, archived or on_hold queues extra work for the worker:
a closure report entry, the archival flag, or a delayed reminder to the
assigned advocates while the case stays on hold.
"""

import logging
from datetime import timedelta
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from legalpro.core.config import settings
from legalpro.core.structured_logging import build_log_context
from legalpro.db.base import as_utc, utcnow
from legalpro.db.enums import (
    ActivityCategory,
    ActivityPriority,
    ActivitySource,
    ActivityType,
    CaseStatus,
    JobType,
)
from legalpro.db.models import Case, CaseActivity, Job
from legalpro.schemas.auth import Actor
from legalpro.schemas.workflow import StatusChangeOptions
from legalpro.services import activity_service, case_service, job_service, notification_service

logger = logging.getLogger(__name__)

HOOK_CLOSURE_REPORT = "closure_report"
HOOK_ARCHIVAL = "archival"


def enqueue_status_hook(
    db: Session,
    case: Case,
    target: CaseStatus,
    actor: Actor,
    options: StatusChangeOptions,
) -> Job | None:
    """Queue the follow-up job for a status, if it has one."""
    payload = {"case_id": str(case.id), "actor_id": str(actor.user_id)}

    if target == CaseStatus.CLOSED:
        return job_service.schedule_job(
            db,
            JobType.WORKFLOW_HOOK,
            payload={**payload, "hook": HOOK_CLOSURE_REPORT},
            case_id=case.id,
        )
    if target == CaseStatus.ARCHIVED:
        return job_service.schedule_job(
            db,
            JobType.WORKFLOW_HOOK,
            payload={**payload, "hook": HOOK_ARCHIVAL},
            case_id=case.id,
        )
    if target == CaseStatus.ON_HOLD:
        now = utcnow()
        return job_service.schedule_job(
            db,
            JobType.REMINDER,
            payload={
                **payload,
                "hold_started_at": now.isoformat(),
                "reason": options.reason,
            },
            case_id=case.id,
            run_at=now + timedelta(days=settings.ON_HOLD_REMINDER_DAYS),
        )
    return None


def generate_closure_report(db: Session, case_id: UUID, actor_id: UUID) -> CaseActivity:
    """Log a system entry summarising the closed case."""
    case = case_service.get_case_or_raise(db, case_id)
    closed_at = as_utc(case.actual_completion) or utcnow()
    duration = closed_at - as_utc(case.date_created)
    activity_count = (
        db.query(func.count(CaseActivity.id)).filter(CaseActivity.case_id == case.id).scalar()
    ) or 0

    with case_service.versioned_commit(db, case):
        activity = activity_service.create_activity(
            db,
            case_id=case.id,
            activity_type=ActivityType.SYSTEM_ACTION,
            action="Closure Report Generated",
            description=(
                f"Case {case.case_number} closed after {duration.days} days "
                f"with {activity_count} recorded activities"
            ),
            performed_by_id=actor_id,
            priority=ActivityPriority.MEDIUM,
            category=ActivityCategory.SYSTEM,
            details={
                "report": HOOK_CLOSURE_REPORT,
                "duration_days": duration.days,
                "activity_count": activity_count,
                "outcome": case.outcome,
                "closed_at": closed_at,
            },
            is_system_generated=True,
            source=ActivitySource.SYSTEM,
            commit=False,
        )
    return activity


def archive_case(db: Session, case_id: UUID, actor_id: UUID) -> bool:
    """Flag an archived case and log case_archived. False if it is no longer archived."""
    case = case_service.get_case_or_raise(db, case_id)
    log_context = build_log_context(case_id=str(case_id))
    if case.status != CaseStatus.ARCHIVED.value:
        logger.warning("Archival skipped: case is %s", case.status, extra=log_context)
        return False
    if case.is_archived:
        return True

    case.is_archived = True
    with case_service.versioned_commit(db, case):
        activity_service.create_activity(
            db,
            case_id=case.id,
            activity_type=ActivityType.CASE_ARCHIVED,
            action="Case Archived",
            description=f"Case {case.case_number} moved to long-term storage",
            performed_by_id=actor_id,
            priority=ActivityPriority.MEDIUM,
            category=ActivityCategory.SYSTEM,
            is_system_generated=True,
            source=ActivitySource.SYSTEM,
            commit=False,
        )
    logger.info("Case archived", extra=log_context)
    return True


def send_on_hold_reminder(db: Session, case_id: UUID, actor_id: UUID) -> int:
    """
    Remind assigned advocates about a case that is still on hold.

    Returns the number of notifications queued (0 if the case moved on).
    """
    case = case_service.get_case_or_raise(db, case_id)
    if case.status != CaseStatus.ON_HOLD.value:
        logger.info(
            "On-hold reminder skipped: case is %s",
            case.status,
            extra=build_log_context(case_id=str(case_id)),
        )
        return 0

    days = settings.ON_HOLD_REMINDER_DAYS
    with case_service.versioned_commit(db, case):
        activity = activity_service.create_activity(
            db,
            case_id=case.id,
            activity_type=ActivityType.SYSTEM_ACTION,
            action="On Hold Reminder",
            description=f"Case {case.case_number} has been on hold for {days} days",
            performed_by_id=actor_id,
            priority=ActivityPriority.MEDIUM,
            category=ActivityCategory.COMMUNICATION,
            details={"reminder_days": days},
            is_system_generated=True,
            source=ActivitySource.SYSTEM,
            commit=False,
        )

    return notification_service.enqueue_activity_notifications(
        db,
        case,
        activity,
        ("advocate",),
        title=f"Case {case.case_number} still on hold",
        body=f"Case {case.case_number} ({case.title}) has been on hold for {days} days.",
    )
