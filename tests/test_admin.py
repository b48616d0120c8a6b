import csv
from datetime import datetime
from io import StringIO

import pytest

from app.platform.config import settings
from tests.factories import create_user

ADMIN_KEY = "admin-secret"


@pytest.fixture(autouse=True)
def admin_key(monkeypatch):
    monkeypatch.setattr(settings, "WAITLIST_ADMIN_KEY", ADMIN_KEY)


@pytest.fixture
async def members(db):
    referrer = await create_user(
        db, "referrer@example.com", referral_count=3, current_tier=1, created_at=datetime(2026, 1, 1)
    )
    friend = await create_user(db, "friend@example.com", referrer=referrer, created_at=datetime(2026, 1, 2))
    pending = await create_user(db, "pending@example.com", verified=False, created_at=datetime(2026, 1, 3))
    return referrer, friend, pending


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"X-Admin-Key": "wrong"}])
async def test_admin_requires_key(client, headers):
    for path in ("/waitlist/admin/users", "/waitlist/admin/export"):
        response = await client.get(path, headers=headers)
        assert response.status_code == 401
        assert response.json()["message"] == "Unauthorized"


@pytest.mark.asyncio
async def test_admin_disabled_without_configured_key(client, monkeypatch):
    monkeypatch.setattr(settings, "WAITLIST_ADMIN_KEY", None)

    response = await client.get("/waitlist/admin/users", headers={"X-Admin-Key": ""})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_users(client, members):
    referrer, friend, pending = members

    response = await client.get("/waitlist/admin/users", headers={"X-Admin-Key": ADMIN_KEY})

    assert response.status_code == 200
    data = response.json()["data"]
    assert [u["email"] for u in data["users"]] == [pending.email, friend.email, referrer.email]
    assert data["pagination"] == {"page": 1, "limit": 50, "total": 3, "pages": 1}
    assert data["stats"]["verified"] == 2
    assert data["stats"]["unverified"] == 1
    assert data["stats"]["tier_breakdown"] == {"tier0": 1, "tier1": 1}
    assert all("verification_token" not in u for u in data["users"])


@pytest.mark.asyncio
async def test_list_users_sorting_and_paging(client, members):
    referrer, _, _ = members

    response = await client.get(
        "/waitlist/admin/users",
        params={"sort": "-referral_count", "limit": 1},
        headers={"X-Admin-Key": ADMIN_KEY},
    )

    data = response.json()["data"]
    assert [u["email"] for u in data["users"]] == [referrer.email]
    assert data["pagination"]["pages"] == 3


@pytest.mark.asyncio
async def test_list_users_rejects_unknown_sort(client):
    response = await client.get(
        "/waitlist/admin/users", params={"sort": "password"}, headers={"X-Admin-Key": ADMIN_KEY}
    )

    assert response.status_code == 400
    assert "email" in response.json()["data"]["sortable"]


@pytest.mark.asyncio
async def test_export_csv(client, members):
    referrer, friend, _ = members

    response = await client.get("/waitlist/admin/export", headers={"X-Admin-Key": ADMIN_KEY})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "waitlist-export.csv" in response.headers["content-disposition"]

    rows = list(csv.reader(StringIO(response.text)))
    assert rows[0] == ["Email", "Referral Code", "Referral Count", "Tier", "Referred By", "Joined At"]
    assert rows[1] == [friend.email, friend.referral_code, "0", "0", referrer.referral_code, "2026-01-02T00:00:00"]
    assert rows[2][0] == referrer.email
    assert len(rows) == 3
