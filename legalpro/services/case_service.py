"""Case service - case creation, lookup, access checks and versioned commits."""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from legalpro.core.structured_logging import build_log_context
from legalpro.db.enums import ActivityPriority, ActivityType, Role
from legalpro.db.models import Case
from legalpro.schemas.auth import Actor
from legalpro.schemas.case import CaseCreate
from legalpro.services.errors import CaseNotFoundError, ConcurrentModificationError

logger = logging.getLogger(__name__)


def generate_case_number(db: Session, year: int | None = None, offset: int = 0) -> str:
    """
    Generate the next case number for the calendar year: CASE-YYYY-NNNN.

    NNNN is 1 + the number of cases created that year. `offset` skips ahead
    after a collision.
    """
    year = year or datetime.now(timezone.utc).year
    start = datetime(year, 1, 1, tzinfo=timezone.utc)
    end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    count = (
        db.query(func.count(Case.id))
        .filter(Case.date_created >= start, Case.date_created < end)
        .scalar()
    ) or 0
    return f"CASE-{year}-{count + 1 + offset:04d}"


def _is_case_number_conflict(error: IntegrityError) -> bool:
    constraint_name = getattr(getattr(error.orig, "diag", None), "constraint_name", None)
    if constraint_name == "uq_case_number":
        return True
    message = str(error.orig) if error.orig else str(error)
    # SQLite reports the column instead of the constraint name
    return "uq_case_number" in message or "cases.case_number" in message


def create_case(db: Session, actor: Actor, data: CaseCreate) -> Case:
    """
    Create a new draft case with a generated case number.

    Logs a case_created activity. Collisions on the case number are retried.
    """
    from legalpro.services import activity_service

    case = None
    for attempt in range(3):
        case = Case(
            case_number=generate_case_number(db, offset=attempt),
            title=data.title.strip(),
            description=data.description,
            case_type=data.case_type.value,
            priority=data.priority.value,
            client_id=data.client_id,
            expected_completion=data.expected_completion,
            notes=data.notes,
            created_by_id=actor.user_id,
            updated_by_id=actor.user_id,
        )
        db.add(case)
        try:
            db.commit()
            db.refresh(case)
            break
        except IntegrityError as exc:
            db.rollback()
            if case in db:
                db.expunge(case)
            if _is_case_number_conflict(exc) and attempt < 2:
                logger.warning(
                    "Case number collision, retrying",
                    extra=build_log_context(user_id=str(actor.user_id)),
                )
                continue
            raise

    activity_service.create_activity(
        db,
        case_id=case.id,
        activity_type=ActivityType.CASE_CREATED,
        action="Case Created",
        description=f"Case {case.case_number} created: {case.title}",
        performed_by_id=actor.user_id,
        priority=ActivityPriority.MEDIUM,
        details={
            "case_number": case.case_number,
            "case_type": case.case_type,
            "priority": case.priority,
        },
    )
    return case


def get_case(db: Session, case_id: UUID) -> Case | None:
    return db.get(Case, case_id)


def get_case_or_raise(db: Session, case_id: UUID) -> Case:
    case = db.get(Case, case_id)
    if case is None:
        raise CaseNotFoundError(case_id)
    return case


def get_case_by_number(db: Session, case_number: str) -> Case | None:
    return db.query(Case).filter(Case.case_number == case_number).first()


def can_user_access(case: Case, actor: Actor) -> bool:
    """
    Read access to a case.

    Admins see everything, advocates see cases they are assigned to and
    clients see their own cases.
    """
    if actor.role in (Role.ADMIN, Role.SUPER_ADMIN):
        return True
    if actor.role == Role.ADVOCATE:
        return case.is_assigned(actor.user_id)
    if actor.role == Role.CLIENT:
        return case.client_id == actor.user_id
    return False


@contextmanager
def versioned_commit(db: Session, case: Case) -> Iterator[None]:
    """
    Commit everything written inside the block together with the case.

    The case version is checked on flush; a mismatch means another request
    updated the case after it was loaded and nothing is persisted. Any other
    error rolls the whole block back as well.
    """
    case_id = case.id
    try:
        yield
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.warning(
            "Concurrent modification detected",
            extra=build_log_context(case_id=str(case_id)),
        )
        raise ConcurrentModificationError(
            f"Case {case_id} was modified by another request; reload and retry"
        ) from exc
    except Exception:
        db.rollback()
        raise
    db.refresh(case)
