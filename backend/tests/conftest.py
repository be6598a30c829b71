"""
Pytest configuration and fixtures for Planboard tests.

Tests run against an in-memory SQLite database; the application's own engine
is never created.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

# Set test environment variables before importing config
os.environ["DATABASE_URL"] = ""
os.environ.setdefault("ENVIRONMENT", "development")

import httpx
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from planboard.api.v1.auth import get_current_user_id
from planboard.db.base import Base
from planboard.db.session import get_db_session
from planboard.main import app
from planboard.models import Block, Project, Section, Subtask, Task
from planboard.services.relation_graph import RelationGraph
from planboard.types import EntityKind, EntityRef

TEST_ACTOR_ID = 42


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@dataclass
class Seed:
    """Ids of the seeded project hierarchy."""

    project: int
    block: int
    section: int
    tasks: list[int]
    subtask: int

    def task(self, index: int) -> EntityRef:
        return EntityRef(EntityKind.TASK, self.tasks[index])

    @property
    def project_ref(self) -> EntityRef:
        return EntityRef(EntityKind.PROJECT, self.project)


@pytest_asyncio.fixture
async def seed(db) -> Seed:
    """One project → block → section holding four tasks and a subtask."""
    project = Project(user_id=TEST_ACTOR_ID, name="Launch", extra_data={})
    db.add(project)
    await db.flush()

    block = Block(project_id=project.id, number=1, title="Build", extra_data={})
    db.add(block)
    await db.flush()

    section = Section(block_id=block.id, title="Backend", extra_data={})
    db.add(section)
    await db.flush()

    task_rows = [
        Task(
            section_id=section.id,
            title="Schema",
            status="completed",
            priority="high",
            estimated_hours=Decimal("2.50"),
            deadline=datetime(2026, 3, 1, tzinfo=timezone.utc),
            extra_data={"points": 3, "owner": {"name": "Ada"}},
        ),
        Task(
            section_id=section.id,
            title="API",
            status="completed",
            priority="medium",
            estimated_hours=Decimal("4.00"),
            deadline=datetime(2026, 3, 11, tzinfo=timezone.utc),
            extra_data={"points": 5, "owner": {"name": "Grace"}},
        ),
        Task(
            section_id=section.id,
            title="Docs",
            status="in_progress",
            priority="low",
            estimated_hours=None,
            deadline=None,
            extra_data={"points": 1},
        ),
        Task(
            section_id=section.id,
            title="Release",
            status="not_started",
            priority="high",
            estimated_hours=Decimal("1.25"),
            deadline=datetime(2026, 3, 4, 12, tzinfo=timezone.utc),
            extra_data={},
        ),
    ]
    db.add_all(task_rows)
    await db.flush()

    subtask = Subtask(task_id=task_rows[0].id, title="Write migration", status="done")
    db.add(subtask)
    await db.commit()

    return Seed(
        project=project.id,
        block=block.id,
        section=section.id,
        tasks=[t.id for t in task_rows],
        subtask=subtask.id,
    )


@pytest_asyncio.fixture
async def project_with_tasks(db, seed) -> Seed:
    """Seeded project related to all four tasks with parent_child."""
    graph = RelationGraph(db)
    for index in range(len(seed.tasks)):
        await graph.create_relation(seed.project_ref, seed.task(index), "parent_child", actor_id=TEST_ACTOR_ID)
    return seed


@pytest_asyncio.fixture
async def async_client(session_factory):
    """Async HTTP client against the ASGI app, bound to the test database."""

    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_current_user_id] = lambda: TEST_ACTOR_ID
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def offline_client():
    """Client for an app with no persistence backend configured."""

    async def no_session():
        yield None

    app.dependency_overrides[get_db_session] = no_session
    app.dependency_overrides[get_current_user_id] = lambda: TEST_ACTOR_ID
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
