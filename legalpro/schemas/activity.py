"""Pydantic schemas for the case activity log."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from legalpro.db.enums import (
    ActivityCategory,
    ActivityPriority,
    ActivitySource,
    ActivityType,
    NotificationMethod,
)


class ActivityCreate(BaseModel):
    """Request schema for logging a manual activity."""

    activity_type: ActivityType
    action: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    priority: ActivityPriority = ActivityPriority.MEDIUM
    category: ActivityCategory = ActivityCategory.CASE_MANAGEMENT
    details: dict = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    related_document_id: UUID | None = None
    related_user_id: UUID | None = None
    related_note_id: UUID | None = None
    is_important: bool = False
    source: ActivitySource = ActivitySource.WEB


class ActivityFilters(BaseModel):
    """Timeline / user activity filters."""

    activity_types: list[ActivityType] | None = None
    category: ActivityCategory | None = None
    priority: ActivityPriority | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    performed_by_id: UUID | None = None
    case_id: UUID | None = None
    include_system: bool = True


class RecipientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    method: str
    status: str
    sent_at: datetime | None


class ActivityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_id: UUID
    activity_type: str
    action: str
    description: str
    performed_by_id: UUID | None
    performed_at: datetime
    priority: str
    category: str
    details: dict
    tags: list[str]
    related_document_id: UUID | None
    related_user_id: UUID | None
    related_note_id: UUID | None
    is_system_generated: bool
    is_visible: bool
    is_important: bool
    notification_sent: bool
    source: str
    recipients: list[RecipientRead] = []


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ActivityPage(BaseModel):
    items: list[ActivityRead]
    pagination: Pagination


class RecipientCreate(BaseModel):
    user_id: UUID
    method: NotificationMethod = NotificationMethod.IN_APP
