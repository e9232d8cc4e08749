# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from app.models.enums import UserRole

# Roles that pass the HR guard and receive HR-pool notifications.
HR_ROLES = frozenset({UserRole.HR_ADMIN, UserRole.SUPER_ADMIN})


class UserInfo(BaseModel):
    """User metadata from the User Directory."""

    id: uuid.UUID
    name: str
    email: str
    role: UserRole = UserRole.EMPLOYEE
    department: str | None = None
    manager_id: uuid.UUID | None = None


@runtime_checkable
class UserDirectory(Protocol):
    """Interface for the User Directory."""

    async def get_user(self, user_id: uuid.UUID) -> UserInfo | None:
        """Fetch a user. Returns None if not found."""
        ...

    async def get_manager_of(self, user_id: uuid.UUID) -> uuid.UUID | None:
        """Return the id of the user's manager, or None when they have none."""
        ...

    async def has_role(self, user_id: uuid.UUID, role: UserRole) -> bool:
        """Return True if the user holds the role. HR_ADMIN is also held by SUPER_ADMIN."""
        ...

    async def list_by_role(self, role: UserRole) -> set[uuid.UUID]:
        """Return the ids of every user holding the role."""
        ...

    async def list_users(self) -> list[UserInfo]:
        """List all users."""
        ...


class InMemoryUserDirectory:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._users: dict[uuid.UUID, UserInfo] = {}

    def seed(self, user: UserInfo) -> None:
        """Seed a user for testing."""
        self._users[user.id] = user

    async def get_user(self, user_id: uuid.UUID) -> UserInfo | None:
        return self._users.get(user_id)

    async def get_manager_of(self, user_id: uuid.UUID) -> uuid.UUID | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        return user.manager_id

    async def has_role(self, user_id: uuid.UUID, role: UserRole) -> bool:
        user = self._users.get(user_id)
        if user is None:
            return False
        if role == UserRole.HR_ADMIN:
            return user.role in HR_ROLES
        return user.role == role

    async def list_by_role(self, role: UserRole) -> set[uuid.UUID]:
        return {user.id for user in self._users.values() if await self.has_role(user.id, role)}

    async def list_users(self) -> list[UserInfo]:
        return list(self._users.values())


_user_directory: UserDirectory = InMemoryUserDirectory()


def get_user_directory() -> UserDirectory:
    """Return the active User Directory."""
    return _user_directory


def set_user_directory(directory: UserDirectory) -> None:
    """Override the directory (for testing or production wiring)."""
    global _user_directory
    _user_directory = directory
