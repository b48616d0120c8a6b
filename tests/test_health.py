import pytest


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200

    payload = response.json()
    assert payload["status_code"] == 200
    assert payload["status"] == "success"
    assert payload["message"] == "Service is healthy"
    assert payload["data"]["status"] == "ok"
    assert payload["data"]["service"] == "Waitlist"
    assert "timestamp" in payload["data"]


@pytest.mark.asyncio
async def test_root_info(client):
    response = await client.get("/")
    assert response.status_code == 200
    payload = response.json()
    assert payload["app_name"] == "Lead Formatter Waitlist API"
    assert payload["version"] == "1.0.0"
    assert payload["docs_url"] == "/docs"
