"""Workflow router - status changes, transitions, history and statistics."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from legalpro.core.deps import get_current_actor, get_db, require_csrf_header, require_roles
from legalpro.db.enums import CasePriority, CaseType, Role
from legalpro.schemas.auth import Actor
from legalpro.schemas.case import CaseRead
from legalpro.schemas.workflow import (
    BulkStatusChangeRequest,
    BulkStatusChangeResponse,
    StatusChangeRequest,
    StatusChangeResponse,
    StatusHistoryEntry,
    TransitionOption,
)
from legalpro.services import case_service, workflow_service
from legalpro.services.errors import ForbiddenError

router = APIRouter()

ADMINS = [Role.ADMIN, Role.SUPER_ADMIN]


def _to_response(result: dict) -> StatusChangeResponse:
    return StatusChangeResponse(
        case=CaseRead.model_validate(result["case"]),
        previous_status=result["previous_status"],
        new_status=result["new_status"],
        message=result["message"],
    )


@router.post(
    "/cases/{case_id}/status",
    response_model=StatusChangeResponse,
    dependencies=[Depends(require_csrf_header)],
)
def change_status(
    case_id: UUID,
    data: StatusChangeRequest,
    request: Request,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Move a case to a new status."""
    options = data.model_copy(
        update={
            "ip_address": data.ip_address or (request.client.host if request.client else None),
            "user_agent": data.user_agent or request.headers.get("user-agent"),
        }
    )
    result = workflow_service.change_status(db, case_id, data.status, actor, options)
    return _to_response(result)


@router.get("/cases/{case_id}/transitions", response_model=list[TransitionOption])
def get_available_transitions(
    case_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    case = case_service.get_case_or_raise(db, case_id)
    if not case_service.can_user_access(case, actor):
        raise ForbiddenError("Access denied to this case")
    return workflow_service.get_available_transitions(case, actor)


@router.get("/cases/{case_id}/status-history", response_model=list[StatusHistoryEntry])
def get_status_history(
    case_id: UUID,
    limit: int = 50,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return workflow_service.get_status_history(db, case_id, limit=min(limit, 200), actor=actor)


@router.post(
    "/workflow/bulk-status",
    response_model=BulkStatusChangeResponse,
    dependencies=[Depends(require_csrf_header)],
)
def bulk_change_status(
    data: BulkStatusChangeRequest,
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    """Apply one status change to many cases (admin only)."""
    result = workflow_service.bulk_change_status(
        db,
        data.case_ids,
        data.status,
        actor,
        reason=data.reason,
        outcome=data.outcome,
        approved=data.approved,
    )
    return BulkStatusChangeResponse(
        successful=[_to_response(item) for item in result["successful"]],
        failed=result["failed"],
        total=result["total"],
    )


@router.get("/workflow/config")
def get_workflow_config(actor: Actor = Depends(get_current_actor)):
    return workflow_service.get_workflow_config()


@router.get("/workflow/statistics")
def get_status_statistics(
    case_type: CaseType | None = None,
    priority: CasePriority | None = None,
    primary_advocate_id: UUID | None = None,
    actor: Actor = Depends(require_roles([Role.ADVOCATE, *ADMINS])),
    db: Session = Depends(get_db),
):
    """Per-status counts for dashboards. Advocates only see their own caseload."""
    if actor.role == Role.ADVOCATE:
        primary_advocate_id = actor.user_id
    filters = {
        "case_type": case_type.value if case_type else None,
        "priority": priority.value if priority else None,
        "primary_advocate_id": primary_advocate_id,
    }
    return workflow_service.get_status_statistics(db, filters)
