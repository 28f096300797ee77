"""Authentication middleware tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app, settings as app_settings


@pytest.mark.asyncio
async def test_auth_blocks_admin_api_when_enabled():
    """Test that admin routes need a session."""
    prev = app_settings.auth_enabled
    app_settings.auth_enabled = True
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/admin/status")
            assert response.status_code == 401
            assert response.json().get("detail") == "Authentication required"

            response = await client.post("/api/bonus-codes/", json={})
            assert response.status_code == 401

            page = await client.get("/admin", follow_redirects=False)
            assert page.status_code == 302
            assert page.headers.get("location") == "/login?next=/admin"
    finally:
        app_settings.auth_enabled = prev


@pytest.mark.asyncio
async def test_public_paths_skip_auth(client):
    """Test that public routes work without a session."""
    prev = app_settings.auth_enabled
    app_settings.auth_enabled = True
    try:
        listing = await client.get("/api/bonus-codes/")
        assert listing.status_code == 200

        active = await client.get("/api/bonus-codes/active")
        assert active.status_code == 200

        webhook = await client.post("/api/telegram/webhook", json={"update_id": 1})
        assert webhook.status_code == 200

        health = await client.get("/health")
        assert health.json()["status"] == "healthy"
    finally:
        app_settings.auth_enabled = prev


@pytest.mark.asyncio
async def test_login_accepts_secondary_user_from_auth_users_json(client):
    """Test login with a user from AUTH_USERS_JSON."""
    prev_enabled = app_settings.auth_enabled
    prev_users_json = app_settings.auth_users_json
    prev_username = app_settings.auth_username
    prev_password = app_settings.auth_password
    app_settings.auth_enabled = True
    app_settings.auth_users_json = '{"admin":"admin-pass","editor":"editor-pass"}'
    app_settings.auth_username = "legacy"
    app_settings.auth_password = "legacy-pass"
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="https://test") as https_client:
            rejected = await https_client.post(
                "/login",
                data={"username": "legacy", "password": "legacy-pass", "next": "/admin"},
                follow_redirects=False,
            )
            assert rejected.status_code == 401

            login = await https_client.post(
                "/login",
                data={"username": "editor", "password": "editor-pass", "next": "/admin"},
                follow_redirects=False,
            )
            assert login.status_code == 303
            assert login.headers.get("location") == "/admin"

            api = await https_client.get("/api/admin/status")
            assert api.status_code == 200
    finally:
        app_settings.auth_enabled = prev_enabled
        app_settings.auth_users_json = prev_users_json
        app_settings.auth_username = prev_username
        app_settings.auth_password = prev_password
