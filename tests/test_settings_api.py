"""Integration tests for the settings REST API."""

import pytest
import sqlalchemy as sa

from tenant_admin.models import Setting

BASE = "/api/admin/settings"


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_settings_grouped(api_client, seeded_settings):
    resp = await api_client.get(BASE)
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["count"] == 6
    assert set(body["data"]) == {"email", "maps"}
    password = next(s for s in body["data"]["email"] if s["setting_key"] == "smtp_password")
    assert password["setting_value"] == "hunter2"


@pytest.mark.asyncio
async def test_list_settings_by_category(api_client, seeded_settings):
    resp = await api_client.get(BASE, params={"category": "maps"})
    body = resp.json()
    assert list(body["data"]) == ["maps"]
    assert body["count"] == 2


@pytest.mark.asyncio
async def test_get_setting_by_id(api_client, seeded_settings):
    resp = await api_client.get(f"{BASE}/{seeded_settings['maps_default_center']}")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["setting_key"] == "maps_default_center"
    assert data["options"] == ["roadmap", "satellite"]


@pytest.mark.asyncio
async def test_get_setting_not_found(api_client, seeded_settings):
    resp = await api_client.get(f"{BASE}/99999")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Setting not found"}


@pytest.mark.asyncio
async def test_get_setting_by_key(api_client, seeded_settings):
    resp = await api_client.get(f"{BASE}/key/smtp_host")
    assert resp.status_code == 200
    assert resp.json()["data"]["setting_value"] == "smtp.example.com"


@pytest.mark.asyncio
async def test_inactive_setting_hidden_by_key(api_client, seeded_settings):
    resp = await api_client.delete(f"{BASE}/{seeded_settings['smtp_host']}")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Setting deactivated successfully"

    resp = await api_client.get(f"{BASE}/key/smtp_host")
    assert resp.status_code == 404

    resp = await api_client.get(BASE, params={"include_inactive": True})
    assert resp.json()["count"] == 6


@pytest.mark.asyncio
async def test_list_categories(api_client, seeded_settings):
    resp = await api_client.get(f"{BASE}/categories/list")
    body = resp.json()
    assert body["data"] == [
        {"setting_category": "email", "setting_count": 4},
        {"setting_category": "maps", "setting_count": 2},
    ]
    assert body["count"] == 2


@pytest.mark.asyncio
async def test_dashboard_overview(api_client, seeded_settings):
    resp = await api_client.get(f"{BASE}/dashboard/overview")
    data = resp.json()["data"]
    assert data["active_services"] == 1
    assert data["services_breakdown"]["email_active"] == 1
    assert data["services_breakdown"]["maps_active"] == 0
    # maps_api_key is empty, so it does not count as an integration
    assert data["api_integrations"] == 0
    assert data["security_status"] == "Encrypted"


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_update_setting_records_actor(api_client, seeded_settings):
    setting_id = seeded_settings["smtp_port"]
    resp = await api_client.put(
        f"{BASE}/{setting_id}",
        json={"setting_value": "2525", "change_reason": "new relay"},
        headers={"X-Admin-User": "alice"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Setting updated successfully"
    assert body["data"]["old_value"] == "587"
    assert body["data"]["new_value"] == "2525"

    resp = await api_client.get(f"{BASE}/history/{setting_id}")
    entries = resp.json()["data"]
    assert len(entries) == 1
    assert entries[0]["changed_by"] == "alice"
    assert entries[0]["change_reason"] == "new relay"


@pytest.mark.asyncio
async def test_update_without_actor_header_uses_system(api_client, seeded_settings):
    setting_id = seeded_settings["smtp_port"]
    await api_client.put(f"{BASE}/{setting_id}", json={"setting_value": "25"})
    entries = (await api_client.get(f"{BASE}/history/{setting_id}")).json()["data"]
    assert entries[0]["changed_by"] == "system"
    assert entries[0]["change_reason"] == "Updated via API"


@pytest.mark.asyncio
async def test_update_encrypted_setting_by_key(api_client, seeded_settings, test_session_factory, codec):
    resp = await api_client.put(f"{BASE}/key/smtp_password", json={"setting_value": "s3cret"})
    assert resp.status_code == 200
    assert resp.json()["data"]["new_value"] == "s3cret"

    async with test_session_factory() as session:
        stored = (
            await session.execute(
                sa.select(Setting.setting_value).where(Setting.setting_key == "smtp_password")
            )
        ).scalar_one()
    assert stored != "s3cret"
    assert codec.decode(stored) == "s3cret"


@pytest.mark.asyncio
async def test_update_missing_value_rejected(api_client, seeded_settings):
    resp = await api_client.put(f"{BASE}/{seeded_settings['smtp_port']}", json={"change_reason": "x"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Setting value is required"


@pytest.mark.asyncio
async def test_update_invalid_value_rejected(api_client, seeded_settings):
    resp = await api_client.put(
        f"{BASE}/{seeded_settings['maps_default_center']}", json={"setting_value": "{broken"}
    )
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Default map center must be valid JSON"}


@pytest.mark.asyncio
async def test_update_unknown_key(api_client, seeded_settings):
    resp = await api_client.put(f"{BASE}/key/nope", json={"setting_value": "x"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_bulk_update(api_client, seeded_settings):
    resp = await api_client.put(
        f"{BASE}/bulk/update",
        json={
            "settings": [
                {"setting_key": "smtp_host", "setting_value": "relay.example.com"},
                {"setting_key": "enable_email", "setting_value": False},
            ]
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "2 settings updated successfully"
    assert body["count"] == 2

    resp = await api_client.get(f"{BASE}/key/enable_email")
    assert resp.json()["data"]["setting_value"] == "false"


@pytest.mark.asyncio
async def test_bulk_update_rejected_as_a_whole(api_client, seeded_settings):
    resp = await api_client.put(
        f"{BASE}/bulk/update",
        json={
            "settings": [
                {"setting_key": "smtp_host", "setting_value": "relay.example.com"},
                {"setting_key": "smtp_port", "setting_value": "abc"},
            ]
        },
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Some settings failed to update"
    assert body["errors"] == [{"setting_key": "smtp_port", "error": "SMTP port must be a number"}]
    assert len(body["results"]) == 1

    resp = await api_client.get(f"{BASE}/key/smtp_host")
    assert resp.json()["data"]["setting_value"] == "smtp.example.com"


@pytest.mark.asyncio
async def test_bulk_update_empty(api_client):
    resp = await api_client.put(f"{BASE}/bulk/update", json={"settings": []})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Settings array is required"


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_setting(api_client):
    resp = await api_client.post(
        BASE,
        json={
            "setting_key": "twilio_sid",
            "setting_category": "sms",
            "setting_name": "Twilio SID",
            "setting_value": "AC123",
            "is_required": True,
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Setting created successfully"
    assert body["data"]["setting_key"] == "twilio_sid"

    resp = await api_client.get(f"{BASE}/{body['data']['id']}")
    assert resp.json()["data"]["setting_value"] == "AC123"


@pytest.mark.asyncio
async def test_create_duplicate(api_client, seeded_settings):
    resp = await api_client.post(
        BASE,
        json={"setting_key": "smtp_host", "setting_category": "email", "setting_name": "Again"},
    )
    assert resp.status_code == 409
    assert resp.json()["message"] == "Setting key already exists"


@pytest.mark.asyncio
async def test_create_missing_fields(api_client):
    resp = await api_client.post(BASE, json={"setting_key": "x"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "setting_key, setting_category, and setting_name are required"


@pytest.mark.asyncio
async def test_validation_error_envelope(api_client):
    resp = await api_client.post(BASE, json={"setting_key": "x", "sort_order": "first"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Invalid request"
    assert body["error"][0]["loc"] == ["body", "sort_order"]


# ---------------------------------------------------------------------------
# Service checks and history
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_service_check_passes(api_client, seeded_settings):
    resp = await api_client.post(f"{BASE}/test/email")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Email service test successful"
    assert body["data"] == {"service": "email", "missing": []}


@pytest.mark.asyncio
async def test_service_check_reports_missing(api_client, seeded_settings):
    resp = await api_client.post(f"{BASE}/test/maps")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Maps service is missing required settings"
    assert body["data"]["missing"] == ["maps_api_key"]


@pytest.mark.asyncio
async def test_service_check_unsupported(api_client):
    resp = await api_client.post(f"{BASE}/test/fax")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Unsupported service type"


@pytest.mark.asyncio
async def test_history_limit_bounds(api_client, seeded_settings):
    resp = await api_client.get(f"{BASE}/history/{seeded_settings['smtp_port']}", params={"limit": 0})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_history_empty(api_client, seeded_settings):
    resp = await api_client.get(f"{BASE}/history/{seeded_settings['smtp_host']}")
    assert resp.status_code == 200
    assert resp.json()["data"] == []
