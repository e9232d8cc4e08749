"""Seed script for development data.

Run with:  python -m app.seed

The user directory and category catalog are in-memory stubs, so seed again
after every API restart.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import date, timedelta

import httpx

BASE_URL = "http://localhost:8000"
ADMIN_USER_ID = "00000000-0000-0000-0000-000000000001"

ADMIN_HEADERS = {
    "Content-Type": "application/json",
    "X-User-Id": ADMIN_USER_ID,
    "X-Role": "admin",
}

# Well-known user UUIDs
HANNA_ID = "00000000-0000-0000-0000-000000000002"  # HR
MARK_ID = "00000000-0000-0000-0000-000000000003"  # manager
ALICE_ID = "00000000-0000-0000-0000-000000000004"  # reports to Mark
BOB_ID = "00000000-0000-0000-0000-000000000005"  # reports to Mark
CEO_ID = "00000000-0000-0000-0000-000000000006"  # no manager

USERS = [
    {
        "id": ADMIN_USER_ID,
        "name": "Sam Admin",
        "email": "sam.admin@example.com",
        "role": "SUPER_ADMIN",
        "department": "IT",
        "manager_id": None,
    },
    {
        "id": HANNA_ID,
        "name": "Hanna Reyes",
        "email": "hanna.reyes@example.com",
        "role": "HR_ADMIN",
        "department": "Human Resources",
        "manager_id": None,
    },
    {
        "id": CEO_ID,
        "name": "Olivia Chen",
        "email": "olivia.chen@example.com",
        "role": "MANAGER",
        "department": "Executive",
        "manager_id": None,
    },
    {
        "id": MARK_ID,
        "name": "Mark Davis",
        "email": "mark.davis@example.com",
        "role": "MANAGER",
        "department": "Engineering",
        "manager_id": CEO_ID,
    },
    {
        "id": ALICE_ID,
        "name": "Alice Johnson",
        "email": "alice.johnson@example.com",
        "role": "EMPLOYEE",
        "department": "Engineering",
        "manager_id": MARK_ID,
    },
    {
        "id": BOB_ID,
        "name": "Bob Smith",
        "email": "bob.smith@example.com",
        "role": "EMPLOYEE",
        "department": "Engineering",
        "manager_id": MARK_ID,
    },
]


def _headers_for(user_id: str, role: str = "employee") -> dict[str, str]:
    return {"Content-Type": "application/json", "X-User-Id": user_id, "X-Role": role}


async def _safe_post(
    client: httpx.AsyncClient, url: str, json: dict, label: str, headers: dict[str, str]
) -> dict | None:
    """POST and report; a 409 or 422 means the data is already there."""
    resp = await client.post(url, json=json, headers=headers)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    if resp.status_code in (409, 422):
        print(f"  [SKIP] {label} ({resp.json().get('detail')})")
        return None
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def _safe_put(client: httpx.AsyncClient, url: str, json: dict, label: str) -> dict | None:
    resp = await client.put(url, json=json, headers=ADMIN_HEADERS)
    if resp.status_code == 200:
        print(f"  [OK] {label}")
        return resp.json()
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def seed_users(client: httpx.AsyncClient) -> None:
    """Seed the user directory; each upsert also provisions this year's balances."""
    print("\n--- Seeding users ---")
    for user in USERS:
        body = {k: v for k, v in user.items() if k != "id"}
        await _safe_put(client, f"{BASE_URL}/users/{user['id']}", body, f"User: {user['name']}")


async def fetch_category_ids(client: httpx.AsyncClient) -> dict[str, str]:
    """Map category name to id."""
    resp = await client.get(f"{BASE_URL}/leave-categories", headers=ADMIN_HEADERS)
    resp.raise_for_status()
    return {item["name"]: item["id"] for item in resp.json()["items"]}


async def seed_requests(client: httpx.AsyncClient, category_ids: dict[str, str]) -> None:
    """Seed leave requests in a few different states."""
    print("\n--- Seeding requests ---")
    today = date.today()

    # Alice: annual leave, manager approves, stays PENDING_HR
    result = await _safe_post(
        client,
        f"{BASE_URL}/leave-requests",
        {
            "leave_category_id": category_ids["Annual Leave"],
            "start_date": (today + timedelta(days=14)).isoformat(),
            "end_date": (today + timedelta(days=18)).isoformat(),
            "reason": "Family vacation at the coast",
        },
        "Request: Alice 5-day annual leave",
        _headers_for(ALICE_ID),
    )
    if result:
        await _safe_post(
            client,
            f"{BASE_URL}/leave-requests/{result['id']}/manager-decision",
            {"approve": True, "notes": "Enjoy the break"},
            "Mark approves Alice's annual leave (-> PENDING_HR)",
            _headers_for(MARK_ID, "manager"),
        )

    # Bob: sick leave, manager approves, fully APPROVED and debited
    result = await _safe_post(
        client,
        f"{BASE_URL}/leave-requests",
        {
            "leave_category_id": category_ids["Sick Leave"],
            "start_date": today.isoformat(),
            "end_date": (today + timedelta(days=1)).isoformat(),
            "reason": "Recovering from the flu",
        },
        "Request: Bob 2-day sick leave",
        _headers_for(BOB_ID),
    )
    if result:
        await _safe_post(
            client,
            f"{BASE_URL}/leave-requests/{result['id']}/manager-decision",
            {"approve": True, "notes": "Get well soon"},
            "Mark approves Bob's sick leave (-> APPROVED)",
            _headers_for(MARK_ID, "manager"),
        )

    # Olivia: no manager, study leave goes straight to HR
    await _safe_post(
        client,
        f"{BASE_URL}/leave-requests",
        {
            "leave_category_id": category_ids["Study Leave"],
            "start_date": (today + timedelta(days=30)).isoformat(),
            "end_date": (today + timedelta(days=32)).isoformat(),
            "reason": "Executive leadership course",
        },
        "Request: Olivia 3-day study leave (PENDING_HR)",
        _headers_for(CEO_ID, "manager"),
    )


async def main() -> None:
    print("=" * 60)
    print("  Leave Workflow - Development Seed Script")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            sys.exit(1)

        await seed_users(client)
        category_ids = await fetch_category_ids(client)
        await seed_requests(client, category_ids)

    print("\n" + "=" * 60)
    print("  Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
