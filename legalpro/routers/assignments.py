"""Assignments router - advocate assignment, workload and auto-assignment."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from legalpro.core.deps import get_current_actor, get_db, require_csrf_header, require_roles
from legalpro.db.enums import Role, WorkloadLevel
from legalpro.db.models import User
from legalpro.schemas.assignment import (
    AddSecondaryRequest,
    AdvocateSummary,
    AssignmentResponse,
    AssignPrimaryRequest,
    AutoAssignRequest,
    AutoAssignResponse,
    AvailableAdvocate,
    RemoveAdvocateRequest,
    TransferRequest,
    WorkloadRead,
)
from legalpro.schemas.auth import Actor
from legalpro.schemas.case import CaseRead
from legalpro.services import assignment_service
from legalpro.services.errors import ForbiddenError

router = APIRouter()

ADMINS = [Role.ADMIN, Role.SUPER_ADMIN]
ASSIGNERS = [Role.ADVOCATE, *ADMINS]


def _summary(user: User) -> AdvocateSummary:
    return AdvocateSummary(
        id=user.id,
        name=user.full_name,
        email=user.email,
        specialization=user.specialization or [],
        experience_years=user.experience_years or 0,
    )


def _assignment_response(result: dict) -> AssignmentResponse:
    return AssignmentResponse(
        case=CaseRead.model_validate(result["case"]),
        advocate=_summary(result["advocate"]),
        previous_advocate_id=result.get("previous_advocate_id"),
        message=result["message"],
    )


@router.post(
    "/cases/{case_id}/advocates/primary",
    response_model=AssignmentResponse,
    dependencies=[Depends(require_csrf_header)],
)
def assign_primary_advocate(
    case_id: UUID,
    data: AssignPrimaryRequest,
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    result = assignment_service.assign_primary_advocate(
        db, case_id, data.advocate_id, actor, reason=data.reason, max_cases=data.max_cases
    )
    return _assignment_response(result)


@router.post(
    "/cases/{case_id}/advocates/secondary",
    response_model=AssignmentResponse,
    dependencies=[Depends(require_csrf_header)],
)
def add_secondary_advocate(
    case_id: UUID,
    data: AddSecondaryRequest,
    actor: Actor = Depends(require_roles(ASSIGNERS)),
    db: Session = Depends(get_db),
):
    result = assignment_service.add_secondary_advocate(
        db, case_id, data.advocate_id, actor, reason=data.reason
    )
    return _assignment_response(result)


@router.post(
    "/cases/{case_id}/advocates/remove",
    response_model=AssignmentResponse,
    dependencies=[Depends(require_csrf_header)],
)
def remove_advocate(
    case_id: UUID,
    data: RemoveAdvocateRequest,
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    result = assignment_service.remove_advocate(
        db,
        case_id,
        data.advocate_id,
        actor,
        reason=data.reason,
        replacement_advocate_id=data.replacement_advocate_id,
    )
    return _assignment_response(result)


@router.post(
    "/cases/{case_id}/auto-assign",
    response_model=AutoAssignResponse,
    dependencies=[Depends(require_csrf_header)],
)
def auto_assign_case(
    case_id: UUID,
    data: AutoAssignRequest,
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    """Assign the best-scoring available advocate as primary."""
    result = assignment_service.auto_assign_case(
        db,
        case_id,
        actor,
        preferred_specialization=data.preferred_specialization,
        max_workload=data.max_workload,
        prioritize_experience=data.prioritize_experience,
    )
    base = _assignment_response(result)
    return AutoAssignResponse(
        **base.model_dump(),
        auto_assignment=True,
        selected_from=result["selected_from"],
        selection_criteria=result["selection_criteria"],
        advocate_score=result["advocate_score"],
    )


@router.post(
    "/cases/{case_id}/transfer",
    response_model=AssignmentResponse,
    dependencies=[Depends(require_csrf_header)],
)
def transfer_case(
    case_id: UUID,
    data: TransferRequest,
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    result = assignment_service.transfer_case(
        db,
        case_id,
        data.from_advocate_id,
        data.to_advocate_id,
        actor,
        reason=data.reason,
        notes=data.notes,
    )
    return _assignment_response(result)


@router.get("/cases/{case_id}/assignment-history")
def get_case_assignment_history(
    case_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return assignment_service.get_case_assignment_history(db, case_id, actor=actor)


@router.get("/advocates/available", response_model=list[AvailableAdvocate])
def get_available_advocates(
    specialization: str | None = None,
    max_workload: WorkloadLevel = WorkloadLevel.HEAVY,
    exclude: list[UUID] = Query(default=[]),
    actor: Actor = Depends(require_roles(ASSIGNERS)),
    db: Session = Depends(get_db),
):
    candidates = assignment_service.get_available_advocates(
        db, specialization=specialization, max_workload=max_workload, exclude_ids=exclude
    )
    return [
        AvailableAdvocate(
            **_summary(c["advocate"]).model_dump(),
            workload=WorkloadRead(**c["workload"]),
        )
        for c in candidates
    ]


@router.get("/advocates/{advocate_id}/workload", response_model=WorkloadRead)
def get_advocate_workload(
    advocate_id: UUID,
    actor: Actor = Depends(require_roles(ASSIGNERS)),
    db: Session = Depends(get_db),
):
    if actor.role == Role.ADVOCATE and actor.user_id != advocate_id:
        raise ForbiddenError("Advocates can only view their own workload")
    return WorkloadRead(**assignment_service.get_advocate_workload(db, advocate_id))


@router.get("/assignments/statistics")
def get_assignment_statistics(
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    return assignment_service.get_assignment_statistics(db)
