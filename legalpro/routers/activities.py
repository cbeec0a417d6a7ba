"""Activities router - case timelines, manual entries, statistics and export."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from legalpro.core.deps import get_current_actor, get_db, require_csrf_header, require_roles
from legalpro.db.enums import ActivityCategory, ActivityPriority, ActivityType, Role
from legalpro.schemas.activity import ActivityCreate, ActivityFilters, ActivityPage, ActivityRead
from legalpro.schemas.auth import Actor
from legalpro.services import activity_service, case_service
from legalpro.services.errors import ActivityNotFoundError, ForbiddenError

router = APIRouter()

ADMINS = [Role.ADMIN, Role.SUPER_ADMIN]


def _filters(
    activity_types: list[ActivityType] | None = Query(default=None),
    category: ActivityCategory | None = None,
    priority: ActivityPriority | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    performed_by_id: UUID | None = None,
    include_system: bool = True,
) -> ActivityFilters:
    return ActivityFilters(
        activity_types=activity_types,
        category=category,
        priority=priority,
        date_from=date_from,
        date_to=date_to,
        performed_by_id=performed_by_id,
        include_system=include_system,
    )


@router.get("/cases/{case_id}/activities", response_model=ActivityPage)
def get_case_timeline(
    case_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    filters: ActivityFilters = Depends(_filters),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return activity_service.get_case_timeline(
        db, case_id, filters=filters, page=page, limit=limit, actor=actor
    )


@router.post(
    "/cases/{case_id}/activities",
    response_model=ActivityRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def log_activity(
    case_id: UUID,
    data: ActivityCreate,
    request: Request,
    actor: Actor = Depends(require_roles([Role.ADVOCATE, *ADMINS])),
    db: Session = Depends(get_db),
):
    """Record a manual activity entry on a case."""
    case = case_service.get_case_or_raise(db, case_id)
    if not case_service.can_user_access(case, actor):
        raise ForbiddenError("Access denied to this case")
    return activity_service.create_activity(
        db,
        case_id=case.id,
        activity_type=data.activity_type,
        action=data.action,
        description=data.description,
        performed_by_id=actor.user_id,
        priority=data.priority,
        category=data.category,
        details=data.details,
        tags=data.tags,
        related_document_id=data.related_document_id,
        related_user_id=data.related_user_id,
        related_note_id=data.related_note_id,
        is_important=data.is_important,
        source=data.source,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


@router.post(
    "/activities/{activity_id}/important",
    response_model=ActivityRead,
    dependencies=[Depends(require_csrf_header)],
)
def mark_as_important(
    activity_id: UUID,
    important: bool = True,
    actor: Actor = Depends(require_roles([Role.ADVOCATE, *ADMINS])),
    db: Session = Depends(get_db),
):
    """Pin or unpin an entry. Pinned entries are kept by retention cleanup."""
    activity = activity_service.get_activity(db, activity_id)
    if activity is None:
        raise ActivityNotFoundError(activity_id)
    case = case_service.get_case_or_raise(db, activity.case_id)
    if not case_service.can_user_access(case, actor):
        raise ForbiddenError("Access denied to this case")
    return activity_service.mark_as_important(db, activity_id, important)


@router.post(
    "/activities/{activity_id}/hide",
    response_model=ActivityRead,
    dependencies=[Depends(require_csrf_header)],
)
def hide_activity(
    activity_id: UUID,
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    return activity_service.hide_activity(db, activity_id)


@router.get("/activities/summary")
def get_activity_summary(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    summary = activity_service.get_activity_summary(db, actor)
    summary["recent"] = [ActivityRead.model_validate(a) for a in summary["recent"]]
    return summary


@router.get("/activities/statistics")
def get_activity_statistics(
    filters: ActivityFilters = Depends(_filters),
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    return activity_service.get_activity_statistics(db, filters)


@router.get("/activities/export")
def export_activities(
    format: str = Query("json", pattern="^(json|csv)$"),
    filters: ActivityFilters = Depends(_filters),
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    exported = activity_service.export_activities(db, filters, fmt=format)
    if format == "csv":
        return Response(
            content=exported,
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="activities.csv"'},
        )
    return exported


@router.get("/users/{user_id}/activities", response_model=ActivityPage)
def get_user_activity(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    filters: ActivityFilters = Depends(_filters),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    if not actor.is_admin and actor.user_id != user_id:
        raise ForbiddenError("You can only view your own activity")
    return activity_service.get_user_activity(db, user_id, filters=filters, page=page, limit=limit)


@router.post("/activities/cleanup", dependencies=[Depends(require_csrf_header)])
def cleanup_old_activities(
    days_to_keep: int | None = Query(None, ge=0),
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    """Hide activities past the retention window (important/critical are kept)."""
    return activity_service.cleanup_old_activities(db, days_to_keep)
