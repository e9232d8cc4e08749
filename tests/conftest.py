from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from app.db import get_session
from app.main import app
from app.models import SQLModel
from app.models.enums import UserRole
from app.services.catalog import build_default_catalog, set_leave_category_catalog
from app.services.directory import InMemoryUserDirectory, UserInfo, set_user_directory
from app.services.notification import InMemoryNotificationDispatcher, set_notification_inbox

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Fresh SQLite database per test with every table created."""
    _engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Yield a session that the services commit and roll back for real."""
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


@dataclass
class People:
    """Well-known directory users for workflow tests."""

    hr: UserInfo
    manager: UserInfo
    employee: UserInfo
    peer: UserInfo
    solo: UserInfo
    directory: InMemoryUserDirectory

    @staticmethod
    def headers(user: UserInfo, role: str = "employee") -> dict[str, str]:
        return {"X-User-Id": str(user.id), "X-Role": role}


@pytest.fixture(autouse=True)
def _reset_collaborators() -> Iterator[None]:
    """Give every test an empty directory, the default catalog and an empty inbox."""
    set_user_directory(InMemoryUserDirectory())
    set_leave_category_catalog(build_default_catalog())
    set_notification_inbox(InMemoryNotificationDispatcher())
    yield
    set_user_directory(InMemoryUserDirectory())
    set_leave_category_catalog(build_default_catalog())
    set_notification_inbox(InMemoryNotificationDispatcher())


@pytest.fixture
def people() -> People:
    """Seed an HR admin, a manager with two reports, and an employee with no manager."""
    directory = InMemoryUserDirectory()
    hr = UserInfo(id=uuid.uuid4(), name="Hanna HR", email="hr@example.com", role=UserRole.HR_ADMIN)
    manager = UserInfo(id=uuid.uuid4(), name="Mark Manager", email="mark@example.com", role=UserRole.MANAGER)
    employee = UserInfo(
        id=uuid.uuid4(), name="Alice Employee", email="alice@example.com", manager_id=manager.id
    )
    peer = UserInfo(id=uuid.uuid4(), name="Bob Employee", email="bob@example.com", manager_id=manager.id)
    solo = UserInfo(id=uuid.uuid4(), name="Olivia Solo", email="olivia@example.com", role=UserRole.MANAGER)
    for user in (hr, manager, employee, peer, solo):
        directory.seed(user)
    set_user_directory(directory)
    return People(hr=hr, manager=manager, employee=employee, peer=peer, solo=solo, directory=directory)
