"""Notification service - recipient resolution, enqueueing and delivery.

Notifications are queued as NOTIFICATION jobs after the case change is
committed and delivered by the worker. Delivery posts to the configured
gateway webhook; without one it only logs (dry run).
"""

import logging
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from legalpro.core.config import settings
from legalpro.core.status_rules import STATUS_LABELS, coerce_status
from legalpro.db.enums import (
    ADMIN_ROLES,
    JobType,
    NotificationDeliveryStatus,
    NotificationMethod,
)
from legalpro.db.models import Case, CaseActivity, User
from legalpro.jobs.utils import safe_url
from legalpro.services import activity_service, job_service

logger = logging.getLogger(__name__)


def resolve_recipients(db: Session, case: Case, roles: tuple[str, ...] | list[str]) -> list[dict]:
    """
    Expand recipient roles into concrete users.

    advocate -> primary and secondary advocates, client -> the case client,
    admin -> every active admin. Each user appears once (first role wins).
    """
    recipients: list[dict] = []
    seen: set[UUID] = set()

    def _add(user_id: UUID | None, role: str) -> None:
        if user_id and user_id not in seen:
            seen.add(user_id)
            recipients.append({"user_id": user_id, "role": role})

    for role in roles:
        if role == "advocate":
            _add(case.primary_advocate_id, role)
            for advocate_id in case.secondary_advocate_ids:
                _add(advocate_id, role)
        elif role == "client":
            _add(case.client_id, role)
        elif role == "admin":
            admins = (
                db.query(User.id)
                .filter(User.role.in_([r.value for r in ADMIN_ROLES]), User.is_active.is_(True))
                .order_by(User.created_at)
                .all()
            )
            for (admin_id,) in admins:
                _add(admin_id, role)
        else:
            logger.warning("Unknown notification recipient role '%s'", role)
    return recipients


def _status_label(status: str | None) -> str:
    coerced = coerce_status(status) if status else None
    return STATUS_LABELS[coerced] if coerced else (status or "")


def build_status_message(case: Case, previous_status: str, new_status: str) -> dict:
    return {
        "title": f"Case {case.case_number} status updated",
        "body": (
            f"Case {case.case_number} ({case.title}) moved from "
            f"{_status_label(previous_status)} to {_status_label(new_status)}."
        ),
    }


def enqueue_activity_notifications(
    db: Session,
    case: Case,
    activity: CaseActivity,
    roles: tuple[str, ...] | list[str],
    title: str,
    body: str,
    method: NotificationMethod = NotificationMethod.IN_APP,
) -> int:
    """
    Register recipients on the activity and queue one delivery job each.

    Commits. Returns the number of jobs queued.
    """
    recipients = resolve_recipients(db, case, roles)
    for recipient in recipients:
        activity_service.add_notification_recipient(
            db, activity.id, recipient["user_id"], method, commit=False
        )
        job_service.schedule_job(
            db,
            JobType.NOTIFICATION,
            payload={
                "activity_id": str(activity.id),
                "case_id": str(case.id),
                "case_number": case.case_number,
                "user_id": str(recipient["user_id"]),
                "role": recipient["role"],
                "method": method.value,
                "title": title,
                "body": body,
            },
            case_id=case.id,
            idempotency_key=f"notify:{activity.id}:{recipient['user_id']}:{method.value}",
            commit=False,
        )
    db.commit()
    return len(recipients)


def enqueue_status_notifications(
    db: Session,
    case: Case,
    activity: CaseActivity,
    roles: tuple[str, ...] | list[str],
    previous_status: str,
    new_status: str,
) -> int:
    message = build_status_message(case, previous_status, new_status)
    return enqueue_activity_notifications(
        db, case, activity, roles, title=message["title"], body=message["body"]
    )


async def send_notification(payload: dict) -> None:
    """
    Deliver one notification through the gateway webhook.

    Dry run (log only) when NOTIFICATION_WEBHOOK_URL is not set.
    """
    url = settings.NOTIFICATION_WEBHOOK_URL
    if not url:
        logger.info(
            "[DRY RUN] Notification for activity=%s user=%s skipped",
            payload.get("activity_id"),
            payload.get("user_id"),
        )
        return

    headers = {}
    if settings.NOTIFICATION_WEBHOOK_TOKEN:
        headers["Authorization"] = f"Bearer {settings.NOTIFICATION_WEBHOOK_TOKEN}"

    async with httpx.AsyncClient(timeout=settings.NOTIFICATION_TIMEOUT_SECONDS) as client:
        response = await client.post(url, json=payload, headers=headers)
        response.raise_for_status()
    logger.info("Notification delivered via %s", safe_url(url))


async def deliver_notification(db: Session, payload: dict) -> None:
    """
    Send a queued notification and record the outcome on the activity.

    Delivery errors mark the recipient failed and are re-raised so the job
    is retried.
    """
    activity_id = payload.get("activity_id")
    user_id = payload.get("user_id")
    if not activity_id or not user_id:
        raise ValueError("Notification payload missing activity_id or user_id")
    activity_uuid = UUID(str(activity_id))
    user_uuid = UUID(str(user_id))

    try:
        await send_notification(payload)
    except Exception:
        activity_service.update_notification_status(
            db, activity_uuid, user_uuid, NotificationDeliveryStatus.FAILED
        )
        raise

    activity_service.update_notification_status(
        db, activity_uuid, user_uuid, NotificationDeliveryStatus.SENT
    )
