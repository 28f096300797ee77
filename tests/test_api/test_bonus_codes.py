"""Tests for bonus code API endpoints."""

from datetime import datetime, timedelta, timezone

import pytest


def _create_payload(**overrides) -> dict:
    payload = {
        "code": "WELCOME25",
        "reward_amount": "$25",
        "wagered_requirement": "$10,000 past 30 days",
        "claims_count": "50",
        "expiry_duration": "72 Hours",
        "message_type": "Rainbet Bonus",
        "expires_at": (datetime.now(timezone.utc) + timedelta(hours=72)).isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_list_bonus_codes_empty(client):
    """Test listing bonus codes when none exist."""
    response = await client.get("/api/bonus-codes/")
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_create_bonus_code(client):
    """Test creating a manual bonus code."""
    response = await client.post("/api/bonus-codes/", json=_create_payload())
    assert response.status_code == 200

    data = response.json()
    assert data["code"] == "WELCOME25"
    assert data["source"] == "manual"
    assert data["is_active"] is True
    assert data["chat_id"] == 0
    assert data["id"].startswith("manual_")


@pytest.mark.asyncio
async def test_create_bonus_code_validation(client):
    """Test that invalid manual entries are rejected."""
    response = await client.post("/api/bonus-codes/", json=_create_payload(code="not valid!"))
    assert response.status_code == 422

    response = await client.post("/api/bonus-codes/", json=_create_payload(message_type="Other Bonus"))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_update_delete_bonus_code(client):
    """Test the get, update and delete endpoints."""
    created = await client.post("/api/bonus-codes/", json=_create_payload())
    bonus_code_id = created.json()["id"]

    fetched = await client.get(f"/api/bonus-codes/{bonus_code_id}")
    assert fetched.status_code == 200
    assert fetched.json()["code"] == "WELCOME25"

    updated = await client.put(f"/api/bonus-codes/{bonus_code_id}", json={"is_active": False})
    assert updated.status_code == 200
    assert updated.json()["is_active"] is False

    active = await client.get("/api/bonus-codes/active")
    assert active.json() == []

    inactive = await client.get("/api/bonus-codes/", params={"is_active": "false"})
    assert [c["id"] for c in inactive.json()] == [bonus_code_id]

    deleted = await client.delete(f"/api/bonus-codes/{bonus_code_id}")
    assert deleted.status_code == 200

    missing = await client.get(f"/api/bonus-codes/{bonus_code_id}")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_update_requires_fields_and_existing_code(client):
    """Test empty updates and unknown ids."""
    created = await client.post("/api/bonus-codes/", json=_create_payload())
    bonus_code_id = created.json()["id"]

    empty = await client.put(f"/api/bonus-codes/{bonus_code_id}", json={})
    assert empty.status_code == 422

    missing = await client.put("/api/bonus-codes/does-not-exist", json={"is_active": True})
    assert missing.status_code == 404

    gone = await client.delete("/api/bonus-codes/does-not-exist")
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_filter_by_message_type(client):
    """Test filtering by message type."""
    await client.post("/api/bonus-codes/", json=_create_payload(code="STD1"))
    await client.post("/api/bonus-codes/", json=_create_payload(code="VIP1", message_type="Rainbet Vip Bonus"))

    vip = await client.get("/api/bonus-codes/", params={"message_type": "Rainbet Vip Bonus"})
    assert [c["code"] for c in vip.json()] == ["VIP1"]


@pytest.mark.asyncio
async def test_admin_status_and_cleanup(client):
    """Test the admin status and cleanup endpoints."""
    await client.post("/api/bonus-codes/", json=_create_payload())

    status = await client.get("/api/admin/status")
    assert status.status_code == 200
    assert status.json()["bonus_codes"]["total"] == 1
    assert status.json()["bonus_codes"]["by_source"] == {"manual": 1}

    cleanup = await client.post("/api/admin/bonus-codes/cleanup")
    assert cleanup.json() == {"status": "success", "deactivated": 0}
