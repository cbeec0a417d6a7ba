"""Pydantic schemas for cases."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from legalpro.db.enums import CasePriority, CaseType


class CaseCreate(BaseModel):
    """Request schema for creating a draft case."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    case_type: CaseType = CaseType.OTHER
    priority: CasePriority = CasePriority.MEDIUM
    client_id: UUID | None = None
    expected_completion: datetime | None = None
    notes: str | None = None


class CaseRead(BaseModel):
    """Full case response for detail views."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_number: str
    title: str
    description: str | None
    case_type: str
    status: str
    priority: str
    progress: int

    client_id: UUID | None
    primary_advocate_id: UUID | None
    secondary_advocate_ids: list[UUID] = []

    date_created: datetime
    date_assigned: datetime | None
    expected_completion: datetime | None
    actual_completion: datetime | None
    last_activity: datetime

    outcome: str | None
    notes: str | None
    is_active: bool
    is_archived: bool

    created_by_id: UUID | None
    updated_by_id: UUID | None
    created_at: datetime
    updated_at: datetime
    version: int
