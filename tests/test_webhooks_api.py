"""Integration tests for webhook registration endpoints."""

import pytest
import sqlalchemy as sa

from tenant_admin.models import Webhook

BASE = "/api/admin/settings/webhook"


async def _create(api_client, **overrides):
    payload = {
        "url": "https://hooks.example.com/tenant",
        "events": ["tenant.created", "tenant.suspended"],
        "description": "CRM sync",
    }
    payload.update(overrides)
    resp = await api_client.post(BASE, json=payload)
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_create_generates_secret(api_client, test_session_factory, codec):
    body = await _create(api_client)
    data = body["data"]

    assert body["warning"] == "Save the webhook secret now. It will not be shown again!"
    assert data["secret"].startswith("whsec_")
    assert data["masked_secret"] == f"whsec_...{data['secret'][-6:]}"
    assert data["events"] == ["tenant.created", "tenant.suspended"]

    async with test_session_factory() as session:
        stored = (await session.execute(sa.select(Webhook.secret))).scalar_one()
    assert codec.decode(stored) == data["secret"]


@pytest.mark.asyncio
async def test_create_keeps_supplied_secret(api_client):
    data = (await _create(api_client, secret="my_own_secret_value"))["data"]
    assert data["secret"] == "my_own_secret_value"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"events": ["a"]}, "Webhook URL is required"),
        ({"url": "ftp://example.com", "events": ["a"]}, "Webhook URL must start with http:// or https://"),
        ({"url": "https://example.com", "events": []}, "At least one event must be selected"),
        ({"url": "https://example.com"}, "At least one event must be selected"),
    ],
)
async def test_create_rejects_bad_input(api_client, payload, message):
    resp = await api_client.post(BASE, json=payload)
    assert resp.status_code == 400
    assert resp.json()["message"] == message


@pytest.mark.asyncio
async def test_read_views_mask_secret(api_client):
    data = (await _create(api_client))["data"]

    listed = await api_client.get(f"{BASE}/list")
    single = await api_client.get(f"{BASE}/{data['id']}")
    for resp in (listed, single):
        assert resp.status_code == 200
        assert data["secret"] not in resp.text

    assert single.json()["data"]["masked_secret"] == data["masked_secret"]
    assert listed.json()["count"] == 1


@pytest.mark.asyncio
async def test_get_missing_webhook(api_client):
    resp = await api_client.get(f"{BASE}/5")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Webhook not found"


@pytest.mark.asyncio
async def test_update_webhook(api_client, test_session_factory, codec):
    webhook_id = (await _create(api_client))["data"]["id"]
    resp = await api_client.put(
        f"{BASE}/{webhook_id}",
        json={"events": ["alert.created"], "secret": "whsec_replaced_value"},
    )
    assert resp.status_code == 200

    data = (await api_client.get(f"{BASE}/{webhook_id}")).json()["data"]
    assert data["events"] == ["alert.created"]
    async with test_session_factory() as session:
        stored = (await session.execute(sa.select(Webhook.secret))).scalar_one()
    assert codec.decode(stored) == "whsec_replaced_value"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [{}, {"url": "nope"}, {"events": []}, {"secret": ""}, {"last_delivery": "2026-01-01"}],
)
async def test_update_rejects_bad_changes(api_client, payload):
    webhook_id = (await _create(api_client))["data"]["id"]
    resp = await api_client.put(f"{BASE}/{webhook_id}", json=payload)
    assert resp.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["is_active", "secret"])
async def test_update_rejects_null_for_required_columns(api_client, field):
    webhook_id = (await _create(api_client))["data"]["id"]
    resp = await api_client.put(f"{BASE}/{webhook_id}", json={field: None})
    assert resp.status_code == 400
    assert resp.json()["message"] == f"Fields cannot be null: {field}"


@pytest.mark.asyncio
async def test_update_allows_null_description(api_client):
    webhook_id = (await _create(api_client))["data"]["id"]
    resp = await api_client.put(f"{BASE}/{webhook_id}", json={"description": None})
    assert resp.status_code == 200
    assert (await api_client.get(f"{BASE}/{webhook_id}")).json()["data"]["description"] is None


@pytest.mark.asyncio
async def test_delete_deactivates_and_notes_reason(api_client, test_session_factory):
    webhook_id = (await _create(api_client))["data"]["id"]
    resp = await api_client.request("DELETE", f"{BASE}/{webhook_id}", json={"reason": "endpoint retired"})
    assert resp.status_code == 200

    assert (await api_client.get(f"{BASE}/list")).json()["data"] == []
    async with test_session_factory() as session:
        row = (await session.execute(sa.select(Webhook))).scalar_one()
    assert row.is_active is False
    assert row.description == "CRM sync [Deleted: endpoint retired]"


@pytest.mark.asyncio
async def test_test_delivery(api_client):
    webhook_id = (await _create(api_client))["data"]["id"]
    resp = await api_client.post(f"{BASE}/{webhook_id}/test")
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Webhook test completed"
    data = body["data"]
    assert data["status"] == "Test request sent successfully"
    assert data["test_payload"]["event"] == "test.delivery"
    assert data["test_payload"]["data"] == {
        "test": True,
        "webhook_id": webhook_id,
        "url": "https://hooks.example.com/tenant",
    }

    single = (await api_client.get(f"{BASE}/{webhook_id}")).json()["data"]
    assert single["last_delivery"] is not None


@pytest.mark.asyncio
async def test_test_delivery_requires_active_webhook(api_client):
    webhook_id = (await _create(api_client))["data"]["id"]
    await api_client.delete(f"{BASE}/{webhook_id}")
    resp = await api_client.post(f"{BASE}/{webhook_id}/test")
    assert resp.status_code == 404
