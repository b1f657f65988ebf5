"""
Pytest Configuration and Fixtures

Shared test fixtures for unit and API tests. Tests run against an in-memory
SQLite database unless DATABASE_URL points at a real server.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from collections.abc import Callable  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import configure_mappers  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from cohortly.auth import Caller, TokenManager  # noqa: E402
from cohortly.core.database import get_db  # noqa: E402
from cohortly.core.models import (  # noqa: E402
    Base,
    Profile,
    Program,
    ProgramStatus,
    UserRole,
)

# Ensure all mappers are configured
configure_mappers()

TEST_DATABASE_URL = os.environ["DATABASE_URL"]


@pytest.fixture
async def async_engine():
    """Create async engine with a fresh schema for each test."""
    kwargs = {}
    if TEST_DATABASE_URL.startswith("sqlite"):
        # one shared connection so every session sees the same in-memory database
        kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, **kwargs)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncSession:
    """Create database session for testing."""
    session_maker = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(db_session):
    """Create test client with database dependency override."""
    from cohortly.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ============================================================================
# Auth helpers
# ============================================================================


@pytest.fixture
def token_manager() -> TokenManager:
    return TokenManager()


@pytest.fixture
def auth_headers(token_manager: TokenManager) -> Callable[[Profile], dict[str, str]]:
    """Build an Authorization header for a profile."""

    def build(profile: Profile) -> dict[str, str]:
        token = token_manager.issue(str(profile.id), role=profile.role)
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture
def as_caller() -> Callable[[Profile], Caller]:
    """Caller for invoking workflow functions directly."""

    def build(profile: Profile) -> Caller:
        return Caller(id=profile.id, role=UserRole(profile.role), profile=profile)

    return build


# ============================================================================
# Seed data
# ============================================================================


@pytest.fixture
def make_profile(db_session: AsyncSession):
    """Factory: persist a profile."""

    async def create(
        email: str,
        role: UserRole = UserRole.STUDENT,
        is_approved: bool | None = True,
        full_name: str | None = None,
    ) -> Profile:
        profile = Profile(email=email, full_name=full_name, role=role, is_approved=is_approved)
        db_session.add(profile)
        await db_session.commit()
        return profile

    return create


@pytest.fixture
def make_program(db_session: AsyncSession):
    """Factory: persist a program (open and unlimited unless told otherwise)."""

    async def create(
        title: str = "Data Fellowship",
        max_students: int | None = None,
        status: ProgramStatus | None = ProgramStatus.OPEN,
        mentor_id=None,
        created_by=None,
    ) -> Program:
        program = Program(
            title=title,
            description="Twelve weeks of applied data work",
            max_students=max_students,
            status=status,
            mentor_id=mentor_id,
            created_by=created_by,
        )
        db_session.add(program)
        await db_session.commit()
        return program

    return create


@pytest.fixture
async def admin(make_profile) -> Profile:
    # admins never go through approval
    return await make_profile(
        "admin@example.com", UserRole.ADMIN, is_approved=None, full_name="Ada Admin"
    )


@pytest.fixture
async def mentor(make_profile) -> Profile:
    return await make_profile("mentor@example.com", UserRole.MENTOR, full_name="Mona Mentor")


@pytest.fixture
async def other_mentor(make_profile) -> Profile:
    return await make_profile("mentor2@example.com", UserRole.MENTOR, full_name="Otto Mentor")


@pytest.fixture
async def student(make_profile) -> Profile:
    return await make_profile("student@example.com", UserRole.STUDENT, full_name="Sam Student")


@pytest.fixture
async def other_student(make_profile) -> Profile:
    return await make_profile("student2@example.com", UserRole.STUDENT, full_name="Sue Student")


@pytest.fixture
async def pending_student(make_profile) -> Profile:
    return await make_profile("new@example.com", UserRole.STUDENT, is_approved=False)


@pytest.fixture
async def program(make_program, admin: Profile) -> Program:
    """Open program without a capacity limit."""
    return await make_program(created_by=admin.id)
