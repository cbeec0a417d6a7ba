"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Index, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from legalpro.db.base import Base, JSONType, utcnow


class User(Base):
    """
    A firm user: advocate, admin, client or staff.

    The workflow core only reads users; accounts are provisioned elsewhere
    (or through the CLI for advocates).
    """

    __tablename__ = "users"
    __table_args__ = (Index("idx_users_role_active", "role", "is_active"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)

    # Advocate profile
    specialization: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    experience_years: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Bumped to revoke outstanding session tokens
    token_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
