"""Activity service - append-only case activity log.

Entries are never deleted. The only mutations after creation are the
importance flag, visibility (soft hide) and notification bookkeeping.
"""

import csv
import io
import logging
import math
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from uuid import UUID

from sqlalchemy import false, func, or_, select
from sqlalchemy.orm import Query, Session

from legalpro.core.config import settings
from legalpro.db.base import as_utc, utcnow
from legalpro.db.enums import (
    ActivityCategory,
    ActivityPriority,
    ActivitySource,
    ActivityType,
    NotificationDeliveryStatus,
    NotificationMethod,
    Role,
)
from legalpro.db.models import (
    ActivityNotificationRecipient,
    Case,
    CaseActivity,
    User,
    case_secondary_advocates,
)
from legalpro.schemas.activity import ActivityFilters
from legalpro.schemas.auth import Actor
from legalpro.services.errors import (
    ActivityNotFoundError,
    CaseNotFoundError,
    CaseValidationError,
    ForbiddenError,
)

logger = logging.getLogger(__name__)

EXPORT_LIMIT = 10000
TOP_PERFORMERS_LIMIT = 10
DAILY_STATS_DAYS = 30
SUMMARY_RECENT_LIMIT = 5

EXPORT_COLUMNS = [
    "id",
    "case_id",
    "case_number",
    "activity_type",
    "action",
    "description",
    "performed_by_id",
    "performed_by_name",
    "performed_at",
    "priority",
    "category",
    "is_system_generated",
    "is_important",
]


def _jsonable(value):
    """Convert UUIDs, datetimes and enums so details can be stored as JSON."""
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _coerce(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise CaseValidationError(f"Invalid {field_name}: {value}")


# =============================================================================
# Create
# =============================================================================


def create_activity(
    db: Session,
    *,
    case_id: UUID | None,
    activity_type: ActivityType | str | None,
    action: str | None,
    description: str | None,
    performed_by_id: UUID | None,
    priority: ActivityPriority | str = ActivityPriority.MEDIUM,
    category: ActivityCategory | str = ActivityCategory.CASE_MANAGEMENT,
    details: dict | None = None,
    tags: list[str] | None = None,
    related_document_id: UUID | None = None,
    related_user_id: UUID | None = None,
    related_note_id: UUID | None = None,
    is_system_generated: bool = False,
    is_important: bool = False,
    source: ActivitySource | str = ActivitySource.WEB,
    ip_address: str | None = None,
    user_agent: str | None = None,
    commit: bool = True,
) -> CaseActivity:
    """
    Append an activity to a case and bump the case's last_activity.

    With commit=False the entry is only flushed so it lands in the caller's
    transaction (the workflow engine commits case + activity together).

    Raises:
        CaseValidationError: a required field is missing or an enum is invalid
        CaseNotFoundError: case does not exist
    """
    missing = [
        name
        for name, value in (
            ("case_id", case_id),
            ("activity_type", activity_type),
            ("action", action),
            ("description", description),
            ("performed_by_id", performed_by_id),
        )
        if not value
    ]
    if missing:
        raise CaseValidationError(f"Missing required activity fields: {', '.join(missing)}")

    activity_type = _coerce(ActivityType, activity_type, "activity type")
    priority = _coerce(ActivityPriority, priority, "priority")
    category = _coerce(ActivityCategory, category, "category")
    source = _coerce(ActivitySource, source, "source")

    case = db.get(Case, case_id)
    if case is None:
        raise CaseNotFoundError(case_id)

    performed_at = utcnow()
    enriched = dict(details or {})
    enriched.update(
        {
            "timestamp": performed_at.isoformat(),
            "source": "system" if is_system_generated else "user",
            "environment": settings.ENV,
            "version": settings.VERSION,
        }
    )
    if ip_address:
        enriched["ip_address"] = ip_address
    if user_agent:
        enriched["user_agent"] = user_agent

    activity = CaseActivity(
        case_id=case_id,
        activity_type=activity_type.value,
        action=action,
        description=description,
        performed_by_id=performed_by_id,
        performed_at=performed_at,
        priority=priority.value,
        category=category.value,
        details=_jsonable(enriched),
        tags=list(tags or []),
        related_document_id=related_document_id,
        related_user_id=related_user_id,
        related_note_id=related_note_id,
        is_system_generated=is_system_generated,
        is_important=is_important,
        source=source.value,
        version=settings.VERSION,
        environment=settings.ENV,
    )
    db.add(activity)
    case.last_activity = performed_at

    if commit:
        db.commit()
        db.refresh(activity)
    else:
        db.flush()
    return activity


def get_activity(db: Session, activity_id: UUID) -> CaseActivity | None:
    return db.get(CaseActivity, activity_id)


def _get_activity_or_raise(db: Session, activity_id: UUID) -> CaseActivity:
    activity = db.get(CaseActivity, activity_id)
    if activity is None:
        raise ActivityNotFoundError(activity_id)
    return activity


# =============================================================================
# Permitted mutations
# =============================================================================


def mark_as_important(db: Session, activity_id: UUID, important: bool = True) -> CaseActivity:
    activity = _get_activity_or_raise(db, activity_id)
    activity.is_important = important
    db.commit()
    db.refresh(activity)
    return activity


def hide_activity(db: Session, activity_id: UUID) -> CaseActivity:
    """Soft-hide an entry from timelines. The row is kept."""
    activity = _get_activity_or_raise(db, activity_id)
    activity.is_visible = False
    db.commit()
    db.refresh(activity)
    return activity


def add_notification_recipient(
    db: Session,
    activity_id: UUID,
    user_id: UUID,
    method: NotificationMethod | str = NotificationMethod.IN_APP,
    commit: bool = True,
) -> ActivityNotificationRecipient:
    """Register a notification recipient (idempotent per user + method)."""
    activity = _get_activity_or_raise(db, activity_id)
    method = _coerce(NotificationMethod, method, "notification method")

    for recipient in activity.recipients:
        if recipient.user_id == user_id and recipient.method == method.value:
            return recipient

    recipient = ActivityNotificationRecipient(
        activity_id=activity.id,
        user_id=user_id,
        method=method.value,
        status=NotificationDeliveryStatus.PENDING.value,
    )
    activity.recipients.append(recipient)
    if commit:
        db.commit()
        db.refresh(recipient)
    else:
        db.flush()
    return recipient


def update_notification_status(
    db: Session,
    activity_id: UUID,
    user_id: UUID,
    status: NotificationDeliveryStatus | str,
) -> CaseActivity:
    """Record delivery status for a recipient; marks the activity notified once sent."""
    activity = _get_activity_or_raise(db, activity_id)
    status = _coerce(NotificationDeliveryStatus, status, "notification status")

    matched = [r for r in activity.recipients if r.user_id == user_id]
    if not matched:
        raise CaseValidationError(f"User {user_id} is not a recipient of activity {activity_id}")

    delivered = status in (NotificationDeliveryStatus.SENT, NotificationDeliveryStatus.DELIVERED)
    for recipient in matched:
        recipient.status = status.value
        if delivered and recipient.sent_at is None:
            recipient.sent_at = utcnow()
    if delivered:
        activity.notification_sent = True

    db.commit()
    db.refresh(activity)
    return activity


# =============================================================================
# Queries
# =============================================================================


def _apply_filters(query: Query, filters: ActivityFilters | None) -> Query:
    if filters is None:
        return query
    if filters.activity_types:
        query = query.filter(
            CaseActivity.activity_type.in_([t.value for t in filters.activity_types])
        )
    if filters.category:
        query = query.filter(CaseActivity.category == filters.category.value)
    if filters.priority:
        query = query.filter(CaseActivity.priority == filters.priority.value)
    if filters.date_from:
        query = query.filter(CaseActivity.performed_at >= filters.date_from)
    if filters.date_to:
        query = query.filter(CaseActivity.performed_at <= filters.date_to)
    if filters.performed_by_id:
        query = query.filter(CaseActivity.performed_by_id == filters.performed_by_id)
    if filters.case_id:
        query = query.filter(CaseActivity.case_id == filters.case_id)
    if not filters.include_system:
        query = query.filter(CaseActivity.is_system_generated.is_(False))
    return query


def _paginate(query: Query, page: int, limit: int) -> tuple[list[CaseActivity], dict]:
    page = max(page, 1)
    limit = max(limit, 1)
    total = query.count()
    items = (
        query.order_by(CaseActivity.performed_at.desc(), CaseActivity.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }
    return items, pagination


def get_case_timeline(
    db: Session,
    case_id: UUID,
    filters: ActivityFilters | None = None,
    page: int = 1,
    limit: int = 20,
    actor: Actor | None = None,
) -> dict:
    """
    Visible activities for a case, newest first.

    When an actor is given their read access to the case is checked.
    """
    from legalpro.services import case_service

    case = case_service.get_case_or_raise(db, case_id)
    if actor is not None and not case_service.can_user_access(case, actor):
        raise ForbiddenError("Access denied to this case")

    query = db.query(CaseActivity).filter(
        CaseActivity.case_id == case_id,
        CaseActivity.is_visible.is_(True),
    )
    query = _apply_filters(query, filters)
    items, pagination = _paginate(query, page, limit)
    return {"items": items, "pagination": pagination}


def get_user_activity(
    db: Session,
    user_id: UUID,
    filters: ActivityFilters | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """Visible activities performed by a user across all cases."""
    query = db.query(CaseActivity).filter(
        CaseActivity.performed_by_id == user_id,
        CaseActivity.is_visible.is_(True),
    )
    query = _apply_filters(query, filters)
    items, pagination = _paginate(query, page, limit)
    return {"items": items, "pagination": pagination}


def get_activity_statistics(db: Session, filters: ActivityFilters | None = None) -> dict:
    """Counts by type and category, top performers and a daily series."""

    def _base():
        return _apply_filters(
            db.query(CaseActivity).filter(CaseActivity.is_visible.is_(True)), filters
        )

    by_type = {
        activity_type: count
        for activity_type, count in _base()
        .with_entities(CaseActivity.activity_type, func.count(CaseActivity.id))
        .group_by(CaseActivity.activity_type)
        .all()
    }
    by_category = {
        category: count
        for category, count in _base()
        .with_entities(CaseActivity.category, func.count(CaseActivity.id))
        .group_by(CaseActivity.category)
        .all()
    }

    performer_rows = (
        _base()
        .filter(CaseActivity.performed_by_id.isnot(None))
        .with_entities(CaseActivity.performed_by_id, func.count(CaseActivity.id).label("count"))
        .group_by(CaseActivity.performed_by_id)
        .order_by(func.count(CaseActivity.id).desc())
        .limit(TOP_PERFORMERS_LIMIT)
        .all()
    )
    users = {}
    if performer_rows:
        user_ids = [row[0] for row in performer_rows]
        users = {u.id: u for u in db.query(User).filter(User.id.in_(user_ids)).all()}
    top_performers = [
        {
            "user_id": user_id,
            "name": users[user_id].full_name if user_id in users else None,
            "count": count,
        }
        for user_id, count in performer_rows
    ]

    since = utcnow() - timedelta(days=DAILY_STATS_DAYS)
    day = func.date(CaseActivity.performed_at)
    daily = [
        {"date": str(activity_date), "count": count}
        for activity_date, count in _base()
        .filter(CaseActivity.performed_at >= since)
        .with_entities(day, func.count(CaseActivity.id))
        .group_by(day)
        .order_by(day)
        .all()
    ]

    return {
        "by_type": by_type,
        "by_category": by_category,
        "top_performers": top_performers,
        "daily": daily,
        "total": sum(by_type.values()),
    }


def export_activities(
    db: Session,
    filters: ActivityFilters | None = None,
    fmt: str = "json",
) -> list[dict] | str:
    """
    Export visible activities (newest first, capped at EXPORT_LIMIT).

    Returns a list of row dicts for "json" and CSV text for "csv".
    """
    if fmt not in ("json", "csv"):
        raise CaseValidationError(f"Unsupported export format: {fmt}")

    query = _apply_filters(
        db.query(CaseActivity, Case.case_number, User)
        .join(Case, Case.id == CaseActivity.case_id)
        .outerjoin(User, User.id == CaseActivity.performed_by_id)
        .filter(CaseActivity.is_visible.is_(True)),
        filters,
    )
    rows = []
    for activity, case_number, performer in (
        query.order_by(CaseActivity.performed_at.desc()).limit(EXPORT_LIMIT).all()
    ):
        rows.append(
            {
                "id": str(activity.id),
                "case_id": str(activity.case_id),
                "case_number": case_number,
                "activity_type": activity.activity_type,
                "action": activity.action,
                "description": activity.description,
                "performed_by_id": str(activity.performed_by_id) if activity.performed_by_id else "",
                "performed_by_name": performer.full_name if performer else "",
                "performed_at": as_utc(activity.performed_at).isoformat(),
                "priority": activity.priority,
                "category": activity.category,
                "is_system_generated": activity.is_system_generated,
                "is_important": activity.is_important,
            }
        )

    if fmt == "json":
        return rows

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def _accessible_case_ids(actor: Actor):
    """Subquery of case ids the actor may read; None means unrestricted."""
    if actor.role in (Role.ADMIN, Role.SUPER_ADMIN):
        return None
    if actor.role == Role.ADVOCATE:
        secondary = select(case_secondary_advocates.c.case_id).where(
            case_secondary_advocates.c.user_id == actor.user_id
        )
        return select(Case.id).where(
            or_(Case.primary_advocate_id == actor.user_id, Case.id.in_(secondary))
        )
    if actor.role == Role.CLIENT:
        return select(Case.id).where(Case.client_id == actor.user_id)
    return select(Case.id).where(false())


def get_activity_summary(db: Session, actor: Actor) -> dict:
    """Today / this week counts and the most recent entries visible to the actor."""
    query = db.query(CaseActivity).filter(CaseActivity.is_visible.is_(True))
    scope = _accessible_case_ids(actor)
    if scope is not None:
        query = query.filter(CaseActivity.case_id.in_(scope))

    now = utcnow()
    start_of_day = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)
    week_ago = now - timedelta(days=7)

    return {
        "today": query.filter(CaseActivity.performed_at >= start_of_day).count(),
        "this_week": query.filter(CaseActivity.performed_at >= week_ago).count(),
        "recent": query.order_by(CaseActivity.performed_at.desc())
        .limit(SUMMARY_RECENT_LIMIT)
        .all(),
    }


# =============================================================================
# Retention
# =============================================================================


def cleanup_old_activities(db: Session, days_to_keep: int | None = None) -> dict:
    """
    Hide activities older than the retention window.

    Important and critical entries are never hidden. Nothing is deleted.
    """
    if days_to_keep is None:
        days_to_keep = settings.ACTIVITY_RETENTION_DAYS
    if days_to_keep < 0:
        raise CaseValidationError("days_to_keep must be zero or more")

    cutoff = utcnow() - timedelta(days=days_to_keep)
    hidden = (
        db.query(CaseActivity)
        .filter(
            CaseActivity.performed_at < cutoff,
            CaseActivity.is_visible.is_(True),
            CaseActivity.is_important.is_(False),
            CaseActivity.priority != ActivityPriority.CRITICAL.value,
        )
        .update({CaseActivity.is_visible: False}, synchronize_session="fetch")
    )
    db.commit()

    logger.info("Activity retention hid %s entries older than %s days", hidden, days_to_keep)
    return {
        "hidden_activities": hidden,
        "cutoff_date": cutoff,
        "days_to_keep": days_to_keep,
    }
