"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from legalpro.db.base import Base, utcnow
from legalpro.db.enums import DEFAULT_CASE_PRIORITY, DEFAULT_CASE_STATUS, CaseType

if TYPE_CHECKING:
    from legalpro.db.models import User


case_secondary_advocates = Table(
    "case_secondary_advocates",
    Base.metadata,
    Column("case_id", Uuid, ForeignKey("cases.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Case(Base):
    """
    A legal case.

    Status moves only through the workflow engine; progress and the completion
    dates are derived from the status action profile. Updates are guarded by
    the `version` column (optimistic locking).
    """

    __tablename__ = "cases"
    __table_args__ = (
        UniqueConstraint("case_number", name="uq_case_number"),
        Index("idx_cases_status", "status"),
        Index("idx_cases_primary_advocate", "primary_advocate_id", "is_active"),
        Index("idx_cases_client", "client_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_number: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    case_type: Mapped[str] = mapped_column(
        String(40), default=CaseType.OTHER.value, nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_CASE_STATUS.value, nullable=False
    )
    priority: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_CASE_PRIORITY.value, nullable=False
    )
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Assignment
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    primary_advocate_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Dates
    date_created: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    date_assigned: Mapped[datetime | None] = mapped_column(nullable=True)
    expected_completion: Mapped[datetime | None] = mapped_column(nullable=True)
    actual_completion: Mapped[datetime | None] = mapped_column(nullable=True)
    last_activity: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    outcome: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Audit
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    updated_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    client: Mapped["User | None"] = relationship(foreign_keys=[client_id])
    primary_advocate: Mapped["User | None"] = relationship(foreign_keys=[primary_advocate_id])
    secondary_advocates: Mapped[list["User"]] = relationship(
        secondary=case_secondary_advocates, lazy="selectin"
    )

    @property
    def secondary_advocate_ids(self) -> list[uuid.UUID]:
        return [advocate.id for advocate in self.secondary_advocates]

    def is_assigned(self, user_id: uuid.UUID) -> bool:
        """True if the user is the primary or a secondary advocate."""
        return self.primary_advocate_id == user_id or user_id in self.secondary_advocate_ids
