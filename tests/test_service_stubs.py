"""Tests for the User Directory and Leave Category Catalog stubs."""

from __future__ import annotations

import uuid

from app.models.enums import UserRole
from app.services.catalog import (
    DEFAULT_CATEGORIES,
    InMemoryLeaveCategoryCatalog,
    LeaveCategory,
    LeaveCategoryCatalog,
    build_default_catalog,
)
from app.services.directory import InMemoryUserDirectory, UserDirectory, UserInfo


def _make_user(name: str = "Jane", role: UserRole = UserRole.EMPLOYEE, manager_id: uuid.UUID | None = None) -> UserInfo:
    return UserInfo(
        id=uuid.uuid4(),
        name=name,
        email=f"{name.lower()}@example.com",
        role=role,
        manager_id=manager_id,
    )


# ---------------------------------------------------------------------------
# InMemoryUserDirectory tests
# ---------------------------------------------------------------------------


def test_directory_satisfies_protocol() -> None:
    assert isinstance(InMemoryUserDirectory(), UserDirectory)


async def test_directory_get_not_found() -> None:
    directory = InMemoryUserDirectory()
    assert await directory.get_user(uuid.uuid4()) is None


async def test_directory_seed_and_get() -> None:
    directory = InMemoryUserDirectory()
    user = _make_user()
    directory.seed(user)
    result = await directory.get_user(user.id)
    assert result is not None
    assert result.email == "jane@example.com"


async def test_directory_manager_of() -> None:
    directory = InMemoryUserDirectory()
    manager = _make_user("Mark", UserRole.MANAGER)
    report = _make_user("Alice", manager_id=manager.id)
    directory.seed(manager)
    directory.seed(report)

    assert await directory.get_manager_of(report.id) == manager.id
    assert await directory.get_manager_of(manager.id) is None
    assert await directory.get_manager_of(uuid.uuid4()) is None


async def test_directory_super_admin_holds_hr_role() -> None:
    directory = InMemoryUserDirectory()
    hr = _make_user("Hanna", UserRole.HR_ADMIN)
    root = _make_user("Sam", UserRole.SUPER_ADMIN)
    manager = _make_user("Mark", UserRole.MANAGER)
    for user in (hr, root, manager):
        directory.seed(user)

    assert await directory.has_role(hr.id, UserRole.HR_ADMIN)
    assert await directory.has_role(root.id, UserRole.HR_ADMIN)
    assert not await directory.has_role(manager.id, UserRole.HR_ADMIN)
    assert not await directory.has_role(hr.id, UserRole.SUPER_ADMIN)
    assert await directory.list_by_role(UserRole.HR_ADMIN) == {hr.id, root.id}


async def test_directory_unknown_user_has_no_role() -> None:
    directory = InMemoryUserDirectory()
    assert not await directory.has_role(uuid.uuid4(), UserRole.EMPLOYEE)


async def test_directory_seed_replaces_user() -> None:
    directory = InMemoryUserDirectory()
    user = _make_user()
    directory.seed(user)
    directory.seed(user.model_copy(update={"role": UserRole.MANAGER}))

    users = await directory.list_users()
    assert len(users) == 1
    assert users[0].role == UserRole.MANAGER


# ---------------------------------------------------------------------------
# InMemoryLeaveCategoryCatalog tests
# ---------------------------------------------------------------------------


def test_catalog_satisfies_protocol() -> None:
    assert isinstance(InMemoryLeaveCategoryCatalog(), LeaveCategoryCatalog)


async def test_catalog_get_not_found() -> None:
    assert await InMemoryLeaveCategoryCatalog().get(uuid.uuid4()) is None


async def test_default_catalog_contents() -> None:
    catalog = build_default_catalog()
    categories = await catalog.list_categories()
    assert len(categories) == len(DEFAULT_CATEGORIES)
    assert [c.name for c in categories] == sorted(c.name for c in DEFAULT_CATEGORIES)

    by_name = {c.name: c for c in categories}
    assert by_name["Annual Leave"].max_days == 30
    assert by_name["Annual Leave"].requires_hr_approval
    assert not by_name["Sick Leave"].requires_hr_approval


def test_default_category_ids_are_stable() -> None:
    ids_a = {c.name: c.id for c in DEFAULT_CATEGORIES}
    ids_b = {c.name: c.id for c in build_default_catalog()._categories.values()}
    assert ids_a == ids_b


async def test_catalog_seed_and_get() -> None:
    catalog = InMemoryLeaveCategoryCatalog()
    category = LeaveCategory(id=uuid.uuid4(), name="Sabbatical", max_days=60)
    catalog.seed(category)

    result = await catalog.get(category.id)
    assert result is not None
    assert result.requires_hr_approval
    assert result.is_active
