"""Assignment service - primary/secondary advocates, workload and auto-assignment."""

import logging
from typing import TypedDict
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from legalpro.core.config import settings
from legalpro.core.structured_logging import build_log_context
from legalpro.db.base import utcnow
from legalpro.db.enums import (
    ACTIVE_CASE_STATUSES,
    ADVOCATE_ROLES,
    ActivityPriority,
    ActivityType,
    CasePriority,
    WorkloadLevel,
)
from legalpro.db.models import Case, CaseActivity, User, case_secondary_advocates
from legalpro.schemas.auth import Actor
from legalpro.services import activity_service, case_service
from legalpro.services.errors import (
    AdvocateNotFoundError,
    AlreadyAssignedError,
    CapacityExceededError,
    CaseValidationError,
    ForbiddenError,
    InvalidRoleError,
    NoCandidatesError,
    NotAssignedError,
)

logger = logging.getLogger(__name__)

AUTO_ASSIGN_REASON = "Auto-assignment based on workload and criteria"
REPLACEMENT_REASON = "Replacement for removed advocate"

# Auto-assignment scoring
WORKLOAD_SCORES: dict[WorkloadLevel, int] = {
    WorkloadLevel.NONE: 10,
    WorkloadLevel.LIGHT: 8,
    WorkloadLevel.MODERATE: 6,
    WorkloadLevel.HEAVY: 4,
    WorkloadLevel.OVERLOADED: 0,
}
MAX_EXPERIENCE_POINTS = 10
SPECIALIZATION_BONUS = 15


class AssignmentResult(TypedDict):
    """Result of a primary advocate assignment."""

    case: Case
    advocate: User
    previous_advocate_id: UUID | None
    message: str


# =============================================================================
# Workload
# =============================================================================


def calculate_workload_level(active_cases: int, urgent_cases: int) -> WorkloadLevel:
    if active_cases == 0:
        return WorkloadLevel.NONE
    if active_cases <= 10 and urgent_cases <= 2:
        return WorkloadLevel.LIGHT
    if active_cases <= 25 and urgent_cases <= 5:
        return WorkloadLevel.MODERATE
    if active_cases <= 40 and urgent_cases <= 10:
        return WorkloadLevel.HEAVY
    return WorkloadLevel.OVERLOADED


def _advocate_cases(db: Session, advocate_id: UUID):
    """Active-flagged cases where the advocate is primary or secondary."""
    secondary = select(case_secondary_advocates.c.case_id).where(
        case_secondary_advocates.c.user_id == advocate_id
    )
    return db.query(Case).filter(
        or_(Case.primary_advocate_id == advocate_id, Case.id.in_(secondary)),
        Case.is_active.is_(True),
    )


def get_advocate_workload(db: Session, advocate_id: UUID) -> dict:
    """Caseload counts for an advocate, derived from current case rows."""
    active_values = [s.value for s in ACTIVE_CASE_STATUSES]
    status_distribution = {
        status: count
        for status, count in _advocate_cases(db, advocate_id)
        .with_entities(Case.status, func.count(Case.id))
        .group_by(Case.status)
        .all()
    }
    active_cases = sum(status_distribution.get(status, 0) for status in active_values)
    urgent_cases = (
        _advocate_cases(db, advocate_id)
        .filter(Case.status.in_(active_values), Case.priority == CasePriority.URGENT.value)
        .count()
    )
    return {
        "advocate_id": advocate_id,
        "active_cases": active_cases,
        "total_cases": sum(status_distribution.values()),
        "urgent_cases": urgent_cases,
        "status_distribution": status_distribution,
        "workload_level": calculate_workload_level(active_cases, urgent_cases),
    }


def _get_advocate_or_raise(db: Session, advocate_id: UUID) -> User:
    advocate = db.get(User, advocate_id)
    if advocate is None:
        raise AdvocateNotFoundError(advocate_id)
    if advocate.role not in ADVOCATE_ROLES:
        raise InvalidRoleError(
            f"User {advocate_id} with role '{advocate.role}' cannot be assigned to cases"
        )
    return advocate


def _specialization_matches(advocate: User, specialization: str) -> bool:
    needle = specialization.lower()
    return any(needle in (entry or "").lower() for entry in advocate.specialization or [])


# =============================================================================
# Assignment
# =============================================================================


def _check_primary_assignment(
    db: Session, case: Case, advocate_id: UUID, max_cases: int | None
) -> tuple[User, dict]:
    advocate = _get_advocate_or_raise(db, advocate_id)
    if case.primary_advocate_id == advocate.id:
        raise AlreadyAssignedError("Advocate is already the primary advocate on this case")

    limit = max_cases if max_cases is not None else settings.MAX_ACTIVE_CASES_PER_ADVOCATE
    workload = get_advocate_workload(db, advocate.id)
    if workload["active_cases"] >= limit:
        raise CapacityExceededError(advocate.id, workload["active_cases"], limit)
    return advocate, workload


def _stage_primary_assignment(
    db: Session,
    case: Case,
    advocate: User,
    workload: dict,
    actor: Actor,
    reason: str | None,
) -> AssignmentResult:
    """Apply a checked assignment and flush its activities without committing."""
    previous_advocate_id = case.primary_advocate_id
    previous_advocate = db.get(User, previous_advocate_id) if previous_advocate_id else None
    previous_workload = (
        get_advocate_workload(db, previous_advocate_id) if previous_advocate_id else None
    )
    counts_as_active = case.is_active and case.status in {s.value for s in ACTIVE_CASE_STATUSES}
    was_secondary = advocate.id in case.secondary_advocate_ids

    case.primary_advocate_id = advocate.id
    if was_secondary:
        case.secondary_advocates = [a for a in case.secondary_advocates if a.id != advocate.id]
    if case.date_assigned is None:
        case.date_assigned = utcnow()
    case.updated_by_id = actor.user_id

    # A promoted secondary was already counted on this case
    gained = counts_as_active and not was_secondary
    workload_after = workload["active_cases"] + (1 if gained else 0)

    activity_service.create_activity(
        db,
        case_id=case.id,
        activity_type=ActivityType.ADVOCATE_ASSIGNED,
        action="Primary Advocate Assigned",
        description=f"{advocate.full_name} was assigned as primary advocate",
        performed_by_id=actor.user_id,
        related_user_id=advocate.id,
        priority=ActivityPriority.HIGH,
        details={
            "advocate_name": advocate.full_name,
            "advocate_email": advocate.email,
            "previous_advocate_id": previous_advocate_id,
            "assignment_type": "primary",
            "promoted_from_secondary": was_secondary,
            "reason": reason or "Case assignment",
            "workload_before": workload["active_cases"],
            "workload_after": workload_after,
        },
        commit=False,
    )
    if previous_advocate is not None:
        before = previous_workload["active_cases"]
        activity_service.create_activity(
            db,
            case_id=case.id,
            activity_type=ActivityType.ADVOCATE_REMOVED,
            action="Previous Advocate Removed",
            description=f"{previous_advocate.full_name} was removed as primary advocate",
            performed_by_id=actor.user_id,
            related_user_id=previous_advocate.id,
            priority=ActivityPriority.HIGH,
            details={
                "advocate_name": previous_advocate.full_name,
                "removal_type": "primary",
                "reason": "Reassignment to new advocate",
                "replacement_advocate_id": advocate.id,
                "workload_before": before,
                "workload_after": before - 1 if counts_as_active else before,
            },
            commit=False,
        )

    return AssignmentResult(
        case=case,
        advocate=advocate,
        previous_advocate_id=previous_advocate_id,
        message="Primary advocate assigned successfully",
    )


def assign_primary_advocate(
    db: Session,
    case_id: UUID,
    advocate_id: UUID,
    actor: Actor,
    reason: str | None = None,
    max_cases: int | None = None,
) -> AssignmentResult:
    """
    Make an advocate the primary on a case.

    A secondary advocate being promoted leaves the secondary list. The
    previous primary (if any) gets an advocate_removed entry.

    Raises:
        CaseNotFoundError, AdvocateNotFoundError, InvalidRoleError
        AlreadyAssignedError: advocate is already the primary
        CapacityExceededError: advocate is at the active case limit
    """
    case = case_service.get_case_or_raise(db, case_id)
    advocate, workload = _check_primary_assignment(db, case, advocate_id, max_cases)

    with case_service.versioned_commit(db, case):
        result = _stage_primary_assignment(db, case, advocate, workload, actor, reason)

    logger.info(
        "Primary advocate assigned",
        extra=build_log_context(user_id=str(actor.user_id), case_id=str(case.id)),
    )
    return result


def add_secondary_advocate(
    db: Session,
    case_id: UUID,
    advocate_id: UUID,
    actor: Actor,
    reason: str | None = None,
) -> dict:
    """
    Add a supporting advocate to a case.

    Only admins and the case's primary advocate may add secondaries.
    """
    case = case_service.get_case_or_raise(db, case_id)
    if not actor.is_admin and case.primary_advocate_id != actor.user_id:
        raise ForbiddenError("Only admins or the primary advocate can add secondary advocates")
    advocate = _get_advocate_or_raise(db, advocate_id)
    if case.primary_advocate_id == advocate.id:
        raise AlreadyAssignedError("Advocate is already assigned as primary advocate")
    if advocate.id in case.secondary_advocate_ids:
        raise AlreadyAssignedError("Advocate is already assigned as secondary advocate")

    case.secondary_advocates.append(advocate)
    case.updated_by_id = actor.user_id

    with case_service.versioned_commit(db, case):
        activity_service.create_activity(
            db,
            case_id=case.id,
            activity_type=ActivityType.ADVOCATE_ASSIGNED,
            action="Secondary Advocate Added",
            description=f"{advocate.full_name} was added as secondary advocate",
            performed_by_id=actor.user_id,
            related_user_id=advocate.id,
            priority=ActivityPriority.MEDIUM,
            details={
                "advocate_name": advocate.full_name,
                "advocate_email": advocate.email,
                "assignment_type": "secondary",
                "reason": reason or "Additional support",
            },
            commit=False,
        )

    return {
        "case": case,
        "advocate": advocate,
        "message": "Secondary advocate added successfully",
    }


def remove_advocate(
    db: Session,
    case_id: UUID,
    advocate_id: UUID,
    actor: Actor,
    reason: str | None = None,
    replacement_advocate_id: UUID | None = None,
) -> dict:
    """
    Remove an advocate from a case.

    Removing the primary requires a replacement, who is assigned first.

    Raises:
        NotAssignedError: advocate is neither primary nor secondary
        CaseValidationError: primary removal without a replacement
    """
    case = case_service.get_case_or_raise(db, case_id)
    advocate = db.get(User, advocate_id)
    if advocate is None:
        raise AdvocateNotFoundError(advocate_id)

    if case.primary_advocate_id == advocate.id:
        if not replacement_advocate_id:
            raise CaseValidationError("Cannot remove primary advocate without a replacement")
        if replacement_advocate_id == advocate.id:
            raise CaseValidationError("Replacement must be a different advocate")
        # The replacement's assignment logs the removal of the outgoing primary
        result = assign_primary_advocate(
            db, case.id, replacement_advocate_id, actor, reason=reason or REPLACEMENT_REASON
        )
        return {
            "case": result["case"],
            "advocate": advocate,
            "removal_type": "primary",
            "replacement_advocate_id": replacement_advocate_id,
            "message": "Primary advocate removed successfully",
        }

    if advocate.id not in case.secondary_advocate_ids:
        raise NotAssignedError("Advocate is not assigned to this case")

    case.secondary_advocates = [a for a in case.secondary_advocates if a.id != advocate.id]
    case.updated_by_id = actor.user_id

    with case_service.versioned_commit(db, case):
        activity_service.create_activity(
            db,
            case_id=case.id,
            activity_type=ActivityType.ADVOCATE_REMOVED,
            action="Advocate Removed",
            description=f"{advocate.full_name} was removed as secondary advocate",
            performed_by_id=actor.user_id,
            related_user_id=advocate.id,
            priority=ActivityPriority.HIGH,
            details={
                "advocate_name": advocate.full_name,
                "removal_type": "secondary",
                "reason": reason or "No reason provided",
            },
            commit=False,
        )

    return {
        "case": case,
        "advocate": advocate,
        "removal_type": "secondary",
        "replacement_advocate_id": None,
        "message": "Secondary advocate removed successfully",
    }


# =============================================================================
# Candidate search and auto-assignment
# =============================================================================


def get_available_advocates(
    db: Session,
    specialization: str | None = None,
    max_workload: WorkloadLevel | str = WorkloadLevel.HEAVY,
    exclude_ids: list[UUID] | None = None,
) -> list[dict]:
    """
    Active, verified advocates at or below a workload band.

    Specialization is a case-insensitive substring match against any entry
    of the advocate's specialization list.
    """
    ceiling = WorkloadLevel(max_workload)
    query = db.query(User).filter(
        User.role.in_([r.value for r in ADVOCATE_ROLES]),
        User.is_active.is_(True),
        User.is_verified.is_(True),
    )
    if exclude_ids:
        query = query.filter(User.id.notin_(exclude_ids))

    available = []
    for advocate in query.order_by(User.first_name, User.last_name).all():
        if specialization and not _specialization_matches(advocate, specialization):
            continue
        workload = get_advocate_workload(db, advocate.id)
        if workload["workload_level"].rank > ceiling.rank:
            continue
        available.append({"advocate": advocate, "workload": workload})
    return available


def score_advocate(
    candidate: dict,
    preferred_specialization: str | None = None,
    prioritize_experience: bool = True,
) -> int:
    advocate: User = candidate["advocate"]
    score = WORKLOAD_SCORES[candidate["workload"]["workload_level"]]
    if prioritize_experience and advocate.experience_years:
        score += min(advocate.experience_years, MAX_EXPERIENCE_POINTS)
    if preferred_specialization and _specialization_matches(advocate, preferred_specialization):
        score += SPECIALIZATION_BONUS
    return score


def auto_assign_case(
    db: Session,
    case_id: UUID,
    actor: Actor,
    preferred_specialization: str | None = None,
    max_workload: WorkloadLevel | str = WorkloadLevel.MODERATE,
    prioritize_experience: bool = True,
) -> dict:
    """
    Pick the best-scoring available advocate and assign them as primary.

    Ties go to the lowest advocate id (string order).

    Raises:
        AlreadyAssignedError: case already has a primary advocate
        NoCandidatesError: nobody matches; the case is left untouched
    """
    case = case_service.get_case_or_raise(db, case_id)
    if case.primary_advocate_id is not None:
        raise AlreadyAssignedError("Case already has a primary advocate assigned")

    criteria = {
        "preferred_specialization": preferred_specialization,
        "max_workload": WorkloadLevel(max_workload).value,
        "prioritize_experience": prioritize_experience,
    }
    candidates = get_available_advocates(
        db, specialization=preferred_specialization, max_workload=max_workload
    )
    if not candidates:
        raise NoCandidatesError("No available advocates found matching criteria")

    scored = sorted(
        (
            (score_advocate(c, preferred_specialization, prioritize_experience), c)
            for c in candidates
        ),
        key=lambda item: (-item[0], str(item[1]["advocate"].id)),
    )
    best_score, best = scored[0]

    result = assign_primary_advocate(
        db, case.id, best["advocate"].id, actor, reason=AUTO_ASSIGN_REASON
    )
    return {
        **result,
        "auto_assignment": True,
        "selected_from": len(candidates),
        "selection_criteria": criteria,
        "advocate_score": best_score,
    }


def transfer_case(
    db: Session,
    case_id: UUID,
    from_advocate_id: UUID,
    to_advocate_id: UUID,
    actor: Actor,
    reason: str | None = None,
    notes: str | None = None,
) -> dict:
    """
    Hand a case from its current primary advocate to another advocate.

    The reassignment and the transfer entry are committed together.
    """
    case = case_service.get_case_or_raise(db, case_id)
    if case.primary_advocate_id != from_advocate_id:
        raise NotAssignedError("Case is not assigned to the specified advocate")

    from_advocate = db.get(User, from_advocate_id)
    from_name = from_advocate.full_name if from_advocate else str(from_advocate_id)
    reason = reason or "Case transfer"
    to_advocate, workload = _check_primary_assignment(db, case, to_advocate_id, None)

    with case_service.versioned_commit(db, case):
        result = _stage_primary_assignment(db, case, to_advocate, workload, actor, reason)
        activity_service.create_activity(
            db,
            case_id=case.id,
            activity_type=ActivityType.CASE_UPDATED,
            action="Case Transferred",
            description=f"Case transferred from {from_name} to {to_advocate.full_name}",
            performed_by_id=actor.user_id,
            priority=ActivityPriority.HIGH,
            details={
                "from_advocate": {"id": from_advocate_id, "name": from_name},
                "to_advocate": {"id": to_advocate.id, "name": to_advocate.full_name},
                "reason": reason,
                "transfer_notes": notes,
            },
            commit=False,
        )

    logger.info(
        "Case transferred",
        extra=build_log_context(user_id=str(actor.user_id), case_id=str(case.id)),
    )
    return {
        **result,
        "transfer": True,
        "from_advocate_id": from_advocate_id,
        "to_advocate_id": to_advocate.id,
    }


# =============================================================================
# History and statistics
# =============================================================================


def get_case_assignment_history(
    db: Session, case_id: UUID, actor: Actor | None = None
) -> list[dict]:
    """Assigned/removed entries for a case, newest first."""
    case = case_service.get_case_or_raise(db, case_id)
    if actor is not None and not case_service.can_user_access(case, actor):
        raise ForbiddenError("Access denied to this case")

    activities = (
        db.query(CaseActivity)
        .filter(
            CaseActivity.case_id == case_id,
            CaseActivity.activity_type.in_(
                [ActivityType.ADVOCATE_ASSIGNED.value, ActivityType.ADVOCATE_REMOVED.value]
            ),
        )
        .order_by(CaseActivity.performed_at.desc(), CaseActivity.created_at.desc())
        .all()
    )
    return [
        {
            "id": activity.id,
            "type": activity.activity_type,
            "action": activity.action,
            "description": activity.description,
            "advocate_id": activity.related_user_id,
            "performed_by_id": activity.performed_by_id,
            "performed_at": activity.performed_at,
            "details": activity.details,
        }
        for activity in activities
    ]


def get_assignment_statistics(db: Session) -> dict:
    """Workload for every active advocate plus firm-wide totals."""
    advocates = (
        db.query(User)
        .filter(User.role.in_([r.value for r in ADVOCATE_ROLES]), User.is_active.is_(True))
        .order_by(User.first_name, User.last_name)
        .all()
    )
    workloads = []
    distribution = {level.value: 0 for level in WorkloadLevel}
    for advocate in advocates:
        workload = get_advocate_workload(db, advocate.id)
        distribution[workload["workload_level"].value] += 1
        workloads.append({"advocate_id": advocate.id, "name": advocate.full_name, **workload})

    total_active = sum(w["active_cases"] for w in workloads)
    unassigned = (
        db.query(func.count(Case.id))
        .filter(Case.is_active.is_(True), Case.primary_advocate_id.is_(None))
        .scalar()
    ) or 0
    return {
        "advocates": workloads,
        "total_advocates": len(workloads),
        "total_active_cases": total_active,
        "unassigned_cases": unassigned,
        "average_active_cases": round(total_active / len(workloads), 2) if workloads else 0.0,
        "workload_distribution": distribution,
    }
