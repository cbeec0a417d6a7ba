"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from legalpro.db.base import Base, JSONType, utcnow
from legalpro.db.enums import (
    ActivityCategory,
    ActivityPriority,
    ActivitySource,
    NotificationDeliveryStatus,
)

if TYPE_CHECKING:
    from legalpro.db.models import Case, User


class CaseActivity(Base):
    """
    Append-only audit entry for a case.

    Rows are never deleted. After creation only `is_important`, `is_visible`
    and the notification bookkeeping may change; retention hides rows by
    clearing `is_visible`.
    """

    __tablename__ = "case_activities"
    __table_args__ = (
        Index("idx_case_activities_case_performed", "case_id", "performed_at"),
        Index("idx_case_activities_performer", "performed_by_id", "performed_at"),
        Index("idx_case_activities_type", "activity_type", "performed_at"),
        Index("idx_case_activities_visible", "is_visible", "performed_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )

    activity_type: Mapped[str] = mapped_column(String(40), nullable=False)
    action: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    performed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    performed_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    priority: Mapped[str] = mapped_column(
        String(20), default=ActivityPriority.MEDIUM.value, nullable=False
    )
    category: Mapped[str] = mapped_column(
        String(30), default=ActivityCategory.CASE_MANAGEMENT.value, nullable=False
    )
    details: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)

    # Related entities (documents and notes live in other services)
    related_document_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    related_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    related_note_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    is_system_generated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_important: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notification_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Audit trail
    source: Mapped[str] = mapped_column(
        String(20), default=ActivitySource.WEB.value, nullable=False
    )
    version: Mapped[str] = mapped_column(String(20), default="1.0", nullable=False)
    environment: Mapped[str] = mapped_column(String(20), default="development", nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    case: Mapped["Case"] = relationship()
    performed_by: Mapped["User | None"] = relationship(foreign_keys=[performed_by_id])
    recipients: Mapped[list["ActivityNotificationRecipient"]] = relationship(
        back_populates="activity", cascade="all, delete-orphan", lazy="selectin"
    )


class ActivityNotificationRecipient(Base):
    """Delivery bookkeeping for one recipient of an activity notification."""

    __tablename__ = "activity_notification_recipients"
    __table_args__ = (Index("idx_activity_recipients_activity", "activity_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    activity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("case_activities.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=NotificationDeliveryStatus.PENDING.value, nullable=False
    )
    sent_at: Mapped[datetime | None] = mapped_column(nullable=True)

    activity: Mapped["CaseActivity"] = relationship(back_populates="recipients")
