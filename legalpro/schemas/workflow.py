"""Pydantic schemas for the case status workflow."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from legalpro.schemas.case import CaseRead


class StatusChangeOptions(BaseModel):
    """Optional inputs for a status change."""

    reason: str | None = None
    outcome: str | None = None
    notes: str | None = None
    approved: bool = False
    ip_address: str | None = None
    user_agent: str | None = None


class StatusChangeRequest(StatusChangeOptions):
    status: str = Field(..., min_length=1, max_length=30)


class BulkStatusChangeRequest(BaseModel):
    case_ids: list[UUID] = Field(..., min_length=1, max_length=100)
    status: str = Field(..., min_length=1, max_length=30)
    reason: str | None = None
    outcome: str | None = None
    approved: bool = False


class StatusChangeResponse(BaseModel):
    case: CaseRead
    previous_status: str
    new_status: str
    message: str


class TransitionRequirements(BaseModel):
    requires_reason: bool
    requires_outcome: bool
    requires_approval: bool
    notifications: list[str]
    auto_updates: dict


class TransitionOption(BaseModel):
    status: str
    label: str
    description: str
    requirements: TransitionRequirements


class StatusHistoryEntry(BaseModel):
    activity_id: UUID
    previous_status: str | None
    new_status: str | None
    reason: str | None
    outcome: str | None
    changed_by_id: UUID | None
    changed_by_name: str | None
    changed_at: datetime


class BulkStatusChangeFailure(BaseModel):
    case_id: UUID
    error: str


class BulkStatusChangeResponse(BaseModel):
    successful: list[StatusChangeResponse]
    failed: list[BulkStatusChangeFailure]
    total: int
