# tests/test_rate_limit.py
import pytest
from httpx import ASGITransport, AsyncClient

from app.platform.config import settings


@pytest.mark.asyncio
async def test_resend_link_rate_limit(test_app, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMITS", {"/waitlist/resend-link": (2, 60)})

    async with AsyncClient(
        transport=ASGITransport(app=test_app, client=("198.51.100.10", 1234)),
        base_url="http://testserver",
    ) as ac:
        # Requests under limit should succeed
        for _ in range(2):
            res = await ac.post("/waitlist/resend-link", json={"email": "someone@example.com"})
            assert res.status_code == 200

        # Next request should be blocked
        res = await ac.post("/waitlist/resend-link", json={"email": "someone@example.com"})
        assert res.status_code == 429
        assert int(res.headers["Retry-After"]) > 0
        assert res.json()["data"]["retry_after"] == int(res.headers["Retry-After"])

        # Other paths are unaffected
        res = await ac.get("/waitlist/stats")
        assert res.status_code == 200


@pytest.mark.asyncio
async def test_rate_limit_is_per_client(test_app, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMITS", {"/waitlist/signup": (1, 60)})

    for ip in ("198.51.100.20", "198.51.100.21"):
        async with AsyncClient(
            transport=ASGITransport(app=test_app, client=(ip, 1234)),
            base_url="http://testserver",
        ) as ac:
            res = await ac.post("/waitlist/signup", json={"email": f"user-{ip}@example.com"})
            assert res.status_code == 201


@pytest.mark.asyncio
async def test_whitelisted_ip_is_not_limited(test_app, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMITS", {"/waitlist/resend-link": (1, 60)})
    monkeypatch.setattr(settings, "WHITELIST_IPS", ["198.51.100.30"])

    async with AsyncClient(
        transport=ASGITransport(app=test_app, client=("198.51.100.30", 1234)),
        base_url="http://testserver",
    ) as ac:
        for _ in range(3):
            res = await ac.post("/waitlist/resend-link", json={"email": "someone@example.com"})
            assert res.status_code == 200
