"""Cases router - draft case creation and detail."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from legalpro.core.deps import get_current_actor, get_db, require_csrf_header, require_roles
from legalpro.db.enums import Role
from legalpro.schemas.auth import Actor
from legalpro.schemas.case import CaseCreate, CaseRead
from legalpro.services import case_service

router = APIRouter()


@router.post(
    "",
    response_model=CaseRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_case(
    data: CaseCreate,
    actor: Actor = Depends(require_roles([Role.ADVOCATE, Role.ADMIN, Role.SUPER_ADMIN])),
    db: Session = Depends(get_db),
):
    """Create a draft case with a generated case number."""
    case = case_service.create_case(db, actor, data)
    return CaseRead.model_validate(case)


@router.get("/{case_id}", response_model=CaseRead)
def get_case(
    case_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    case = case_service.get_case(db, case_id)
    # Hide existence from users without access
    if not case or not case_service.can_user_access(case, actor):
        raise HTTPException(status_code=404, detail="Case not found")
    return CaseRead.model_validate(case)
