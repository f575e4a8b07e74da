"""Pytest fixtures for quadrant tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from quadrant.database import enable_sqlite_savepoints
from quadrant.models import (
    Base,
    Employee,
    EmployeeSkill,
    Skill,
    Track,
    User,
    Workspace,
    WorkspaceMember,
)

# One in-memory SQLite database per test, shared by every connection
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = enable_sqlite_savepoints(
        create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@dataclass
class Seed:
    owner: User
    manager: User
    workspace: Workspace
    team: Track
    employees: list[Employee]
    skills: dict[str, Skill]


@pytest.fixture
async def owner(session: AsyncSession) -> User:
    """Create the workspace owner."""
    user = User(email="owner@example.com", name="Olga Owner")
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
async def manager(session: AsyncSession) -> User:
    """Create a manager user."""
    user = User(email="manager@example.com", name="Max Manager")
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
async def workspace(session: AsyncSession, owner: User, manager: User) -> Workspace:
    """Create a workspace with an owner and a manager member."""
    workspace = Workspace(name="Acme", owner_user_id=owner.id)
    session.add(workspace)
    await session.flush()
    session.add_all(
        [
            WorkspaceMember(workspace_id=workspace.id, user_id=owner.id, role="owner"),
            WorkspaceMember(workspace_id=workspace.id, user_id=manager.id, role="manager"),
        ]
    )
    await session.flush()
    return workspace


@pytest.fixture
async def team(session: AsyncSession, workspace: Workspace, manager: User) -> Track:
    """Create a team managed by the manager."""
    track = Track(workspace_id=workspace.id, name="Platform", manager_user_id=manager.id)
    session.add(track)
    await session.flush()
    return track


@pytest.fixture
async def employees(session: AsyncSession, workspace: Workspace, team: Track) -> list[Employee]:
    """Create three employees on the team."""
    people = [
        Employee(workspace_id=workspace.id, name="Alice", position="Backend", level="Senior", primary_track_id=team.id),
        Employee(workspace_id=workspace.id, name="Bob", position="Backend", level="Middle", primary_track_id=team.id),
        Employee(workspace_id=workspace.id, name="Carol", position="QA", level="Junior", primary_track_id=team.id),
    ]
    session.add_all(people)
    await session.flush()
    return people


@pytest.fixture
async def skills(session: AsyncSession, workspace: Workspace) -> dict[str, Skill]:
    """Create the workspace skills."""
    rows = {
        "GoLang": Skill(workspace_id=workspace.id, name="GoLang", type="hard"),
        "Python": Skill(workspace_id=workspace.id, name="Python", type="hard"),
        "Kafka": Skill(workspace_id=workspace.id, name="Kafka", type="hard"),
    }
    session.add_all(rows.values())
    await session.flush()
    return rows


@pytest.fixture
async def seed(
    session: AsyncSession,
    owner: User,
    manager: User,
    workspace: Workspace,
    team: Track,
    employees: list[Employee],
    skills: dict[str, Skill],
) -> Seed:
    """Workspace where only Alice knows GoLang and Alice and Bob know Python."""
    alice, bob, _ = employees
    session.add_all(
        [
            EmployeeSkill(employee_id=alice.id, skill_id=skills["GoLang"].id, level=4),
            EmployeeSkill(employee_id=alice.id, skill_id=skills["Python"].id, level=5),
            EmployeeSkill(employee_id=bob.id, skill_id=skills["Python"].id, level=3),
        ]
    )
    await session.flush()
    return Seed(
        owner=owner,
        manager=manager,
        workspace=workspace,
        team=team,
        employees=employees,
        skills=skills,
    )


@pytest.fixture
async def client(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the test session."""
    from quadrant.api.app import create_app
    from quadrant.api.dependencies import get_db_session

    app = create_app()

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_db_session] = override_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def owner_headers(seed: Seed) -> dict[str, str]:
    """Workspace and user headers for API calls made by the owner."""
    return {"X-Workspace-ID": seed.workspace.id, "X-User-ID": seed.owner.id}


@pytest.fixture
def manager_headers(seed: Seed) -> dict[str, str]:
    return {"X-Workspace-ID": seed.workspace.id, "X-User-ID": seed.manager.id}
