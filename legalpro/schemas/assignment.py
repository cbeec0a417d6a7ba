"""Pydantic schemas for advocate assignment."""

from uuid import UUID

from pydantic import BaseModel, Field

from legalpro.db.enums import WorkloadLevel
from legalpro.schemas.case import CaseRead


class AssignPrimaryRequest(BaseModel):
    advocate_id: UUID
    reason: str | None = Field(None, max_length=1000)
    max_cases: int | None = Field(None, ge=1)


class AddSecondaryRequest(BaseModel):
    advocate_id: UUID
    reason: str | None = Field(None, max_length=1000)


class RemoveAdvocateRequest(BaseModel):
    advocate_id: UUID
    reason: str | None = Field(None, max_length=1000)
    replacement_advocate_id: UUID | None = None


class AutoAssignRequest(BaseModel):
    preferred_specialization: str | None = None
    max_workload: WorkloadLevel = WorkloadLevel.MODERATE
    prioritize_experience: bool = True


class TransferRequest(BaseModel):
    from_advocate_id: UUID
    to_advocate_id: UUID
    reason: str | None = Field(None, max_length=1000)
    notes: str | None = None


class AdvocateSummary(BaseModel):
    id: UUID
    name: str
    email: str
    specialization: list[str] = []
    experience_years: int = 0


class WorkloadRead(BaseModel):
    advocate_id: UUID
    active_cases: int
    total_cases: int
    urgent_cases: int
    status_distribution: dict[str, int]
    workload_level: WorkloadLevel


class AvailableAdvocate(AdvocateSummary):
    workload: WorkloadRead


class AssignmentResponse(BaseModel):
    case: CaseRead
    advocate: AdvocateSummary
    previous_advocate_id: UUID | None = None
    message: str


class AutoAssignResponse(AssignmentResponse):
    auto_assignment: bool = True
    selected_from: int
    selection_criteria: dict
    advocate_score: float
