"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite database per test
- User and case factories for each role
- JWT token minting and HTTPX AsyncClient for router tests
"""
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Callable, Generator

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NOTIFICATION_WEBHOOK_URL"] = ""
os.environ["ENV"] = "test"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from legalpro.core.deps import COOKIE_NAME, get_db
from legalpro.core.security import create_session_token
from legalpro.db.base import Base
from legalpro.db.enums import CasePriority, CaseStatus, CaseType, Role
from legalpro.db.models import Case, User
from legalpro.main import app
from legalpro.schemas.auth import Actor
from legalpro.schemas.case import CaseCreate
from legalpro.services import case_service


def actor_for(user: User) -> Actor:
    return Actor(user_id=user.id, role=Role(user.role), display_name=user.full_name)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Session on a private in-memory database.

    StaticPool keeps a single connection so the schema survives across
    the threads FastAPI runs sync endpoints in.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


# =============================================================================
# User Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def make_user(db: Session) -> Callable[..., User]:
    def _make(role: Role = Role.ADVOCATE, **overrides) -> User:
        suffix = uuid.uuid4().hex[:8]
        fields = {
            "email": f"{role.value}-{suffix}@legalpro.test",
            "first_name": role.value.replace("_", " ").title(),
            "last_name": suffix,
            "role": role.value,
            "is_verified": True,
        }
        fields.update(overrides)
        user = User(**fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture(scope="function")
def admin(make_user) -> User:
    return make_user(Role.ADMIN)


@pytest.fixture(scope="function")
def advocate(make_user) -> User:
    return make_user(Role.ADVOCATE, specialization=["Criminal Law"], experience_years=6)


@pytest.fixture(scope="function")
def other_advocate(make_user) -> User:
    return make_user(Role.ADVOCATE, specialization=["Family Law"], experience_years=3)


@pytest.fixture(scope="function")
def client_user(make_user) -> User:
    return make_user(Role.CLIENT)


# =============================================================================
# Case Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def make_case(db: Session, admin: User) -> Callable[..., Case]:
    """
    Create a case through the service, then force its state for the test.

    Status and assignment are written directly so tests can start from any
    point of the workflow.
    """

    def _make(
        primary: User | None = None,
        secondary: tuple[User, ...] = (),
        client: User | None = None,
        status: CaseStatus | None = None,
        priority: CasePriority = CasePriority.MEDIUM,
        **fields,
    ) -> Case:
        case = case_service.create_case(
            db,
            actor_for(admin),
            CaseCreate(
                title=f"Case {uuid.uuid4().hex[:6]}",
                case_type=CaseType.CIVIL,
                priority=priority,
                client_id=client.id if client else None,
            ),
        )
        if primary is not None:
            case.primary_advocate_id = primary.id
        for advocate in secondary:
            case.secondary_advocates.append(advocate)
        if status is not None:
            case.status = status.value
        for name, value in fields.items():
            setattr(case, name, value)
        db.commit()
        db.refresh(case)
        return case

    return _make


# =============================================================================
# Auth / Client Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str
    cookie_name: str = COOKIE_NAME


@pytest.fixture(scope="function")
def auth_headers() -> Callable[[User], dict]:
    """Bearer headers for a user (bearer clients skip the CSRF check)."""

    def _headers(user: User) -> dict:
        token = create_session_token(user.id, user.role, token_version=user.token_version)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture(scope="function")
def admin_auth(admin: User) -> TestAuth:
    token = create_session_token(admin.id, admin.role, token_version=admin.token_version)
    return TestAuth(user=admin, token=token)


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient with no credentials."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    admin_auth: TestAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """Admin AsyncClient with session cookie and CSRF header."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={admin_auth.cookie_name: admin_auth.token},
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def as_actor() -> Callable[[User], Actor]:
    """Build the Actor a service call would receive for a user."""
    return actor_for
