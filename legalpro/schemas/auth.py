"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from legalpro.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    role: str
    token_version: int


class Actor(BaseModel):
    """
    The user performing a workflow or assignment operation.

    Returned by the get_current_actor dependency; the CLI and worker build
    one directly.
    """
    user_id: UUID
    role: Role
    display_name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.ADMIN, Role.SUPER_ADMIN)
