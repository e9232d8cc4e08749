# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


class LeaveCategory(BaseModel):
    """Leave-type definition from the Leave Category Catalog."""

    id: uuid.UUID
    name: str
    max_days: int
    requires_hr_approval: bool = True
    carry_over: bool = False
    is_active: bool = True
    description: str | None = None


@runtime_checkable
class LeaveCategoryCatalog(Protocol):
    """Interface for the Leave Category Catalog."""

    async def get(self, leave_category_id: uuid.UUID) -> LeaveCategory | None:
        """Fetch a category. Returns None if not found."""
        ...

    async def list_categories(self) -> list[LeaveCategory]:
        """List all categories, active or not."""
        ...


class InMemoryLeaveCategoryCatalog:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._categories: dict[uuid.UUID, LeaveCategory] = {}

    def seed(self, category: LeaveCategory) -> None:
        """Seed a category for testing."""
        self._categories[category.id] = category

    async def get(self, leave_category_id: uuid.UUID) -> LeaveCategory | None:
        return self._categories.get(leave_category_id)

    async def list_categories(self) -> list[LeaveCategory]:
        return sorted(self._categories.values(), key=lambda c: c.name)


def _category_id(name: str) -> uuid.UUID:
    return uuid.uuid5(uuid.NAMESPACE_URL, f"leave-category:{name}")


# Standard leave types an organisation starts with.
DEFAULT_CATEGORIES: tuple[LeaveCategory, ...] = (
    LeaveCategory(
        id=_category_id("annual"),
        name="Annual Leave",
        max_days=30,
        requires_hr_approval=True,
        carry_over=True,
        description="Paid yearly vacation",
    ),
    LeaveCategory(
        id=_category_id("sick"),
        name="Sick Leave",
        max_days=15,
        requires_hr_approval=False,
        description="Medical leave",
    ),
    LeaveCategory(
        id=_category_id("maternity"),
        name="Maternity Leave",
        max_days=120,
        requires_hr_approval=True,
    ),
    LeaveCategory(
        id=_category_id("paternity"),
        name="Paternity Leave",
        max_days=7,
        requires_hr_approval=False,
    ),
    LeaveCategory(
        id=_category_id("emergency"),
        name="Emergency Leave",
        max_days=5,
        requires_hr_approval=False,
    ),
    LeaveCategory(
        id=_category_id("study"),
        name="Study Leave",
        max_days=30,
        requires_hr_approval=True,
    ),
)


def build_default_catalog() -> InMemoryLeaveCategoryCatalog:
    """Return a catalog seeded with the standard leave types."""
    catalog = InMemoryLeaveCategoryCatalog()
    for category in DEFAULT_CATEGORIES:
        catalog.seed(category)
    return catalog


_catalog: LeaveCategoryCatalog = build_default_catalog()


def get_leave_category_catalog() -> LeaveCategoryCatalog:
    """Return the active Leave Category Catalog."""
    return _catalog


def set_leave_category_catalog(catalog: LeaveCategoryCatalog) -> None:
    """Override the catalog (for testing or production wiring)."""
    global _catalog
    _catalog = catalog
