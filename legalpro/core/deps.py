"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator
from uuid import UUID

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from legalpro.core.security import decode_session_token
from legalpro.db.enums import Role
from legalpro.db.session import SessionLocal
from legalpro.schemas.auth import Actor


# Cookie and header names
COOKIE_NAME = "legalpro_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _extract_token(request: Request) -> str | None:
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


def get_current_user(request: Request, db: Session = Depends(get_db)):
    """
    Get authenticated user from the session cookie or bearer token.

    Validates:
    - Token exists
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)

    Raises:
        HTTPException 401: Authentication failed
    """
    # Import here to avoid circular imports
    from legalpro.db.models import User

    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_session_token(token)
        user_id = UUID(str(payload["sub"]))
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid session")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    if user.token_version != payload.get("token_version"):
        raise HTTPException(status_code=401, detail="Session revoked")

    return user


def get_current_actor(request: Request, db: Session = Depends(get_db)) -> Actor:
    """
    Resolve the acting user for workflow operations.

    The role comes from the user record, not the token, so role changes take
    effect immediately.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: Unknown role
    """
    user = get_current_user(request, db)
    if not Role.has_value(user.role):
        raise HTTPException(status_code=403, detail="Unknown role")
    return Actor(user_id=user.id, role=Role(user.role), display_name=user.full_name)


def require_roles(allowed_roles: list):
    """
    Dependency factory for role-based authorization.

    Usage:
        @router.post("/bulk", dependencies=[Depends(require_roles([Role.ADMIN]))])
    """

    def dependency(request: Request, db: Session = Depends(get_db)) -> Actor:
        actor = get_current_actor(request, db)
        if actor.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{actor.role.value}' not authorized for this action",
            )
        return actor

    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on cookie-authenticated mutations.

    Bearer-token clients are not exposed to CSRF and skip the check.

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if not request.cookies.get(COOKIE_NAME):
        return
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(status_code=403, detail="Missing or invalid CSRF header")
