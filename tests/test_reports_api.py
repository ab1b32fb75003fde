"""Integration tests for report and schedule endpoints."""

from pathlib import Path

import pytest

from tenant_admin.models import Tenant

BASE = "/api/admin/reports"


@pytest.fixture
async def tenant_rows(test_session_factory):
    async with test_session_factory() as session:
        async with session.begin():
            session.add(Tenant(id="t-1", name="Acme"))


async def _generate(api_client, report_queue, **overrides):
    payload = {"report_name": "Tenants Q3", "report_type": "tenants", "period": "Q3 2026"}
    payload.update(overrides)
    resp = await api_client.post(f"{BASE}/generate", json=payload)
    assert resp.status_code == 201
    await report_queue.join()
    return resp.json()


async def _schedule(api_client, **overrides):
    payload = {
        "schedule_name": "Weekly tenants",
        "report_type": "tenants",
        "frequency": "weekly",
        "frequency_config": {"day_of_week": 5},
        "recipients": "ops@example.com, cto@example.com",
        "time": "07:30",
    }
    payload.update(overrides)
    resp = await api_client.post(f"{BASE}/scheduled", json=payload)
    assert resp.status_code == 201
    return resp.json()["data"]


# ---------------------------------------------------------------------------
# Generation and download
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_generate_queues_and_completes(api_client, report_queue, tenant_rows, report_dir):
    body = await _generate(api_client, report_queue)
    assert body["message"] == "Report generation started"
    assert body["data"]["status"] == "pending"
    assert body["data"]["format"] == "JSON"
    report_id = body["data"]["report_id"]

    resp = await api_client.get(f"{BASE}/{report_id}")
    data = resp.json()["data"]
    assert data["status"] == "completed"
    assert Path(data["file_path"]) == report_dir / f"{report_id}.json"
    assert data["file_size"]


@pytest.mark.asyncio
async def test_lookup_by_numeric_id(api_client, report_queue):
    data = (await _generate(api_client, report_queue))["data"]
    resp = await api_client.get(f"{BASE}/{data['id']}")
    assert resp.json()["data"]["report_id"] == data["report_id"]


@pytest.mark.asyncio
async def test_download_counts(api_client, report_queue, tenant_rows):
    report_id = (await _generate(api_client, report_queue, format="csv"))["data"]["report_id"]

    first = await api_client.get(f"{BASE}/{report_id}/download")
    second = await api_client.get(f"{BASE}/{report_id}/download")
    assert first.status_code == 200
    assert first.json()["message"] == "Report ready for download"
    assert first.json()["data"]["format"] == "CSV"
    assert first.json()["data"]["download_count"] == 1
    assert second.json()["data"]["download_count"] == 2

    report = (await api_client.get(f"{BASE}/{report_id}")).json()["data"]
    assert report["download_count"] == 2


@pytest.mark.asyncio
async def test_download_not_ready(api_client, report_queue):
    report_id = (await _generate(api_client, report_queue))["data"]["report_id"]
    await api_client.patch(f"{BASE}/{report_id}/status", json={"status": "pending"})

    resp = await api_client.get(f"{BASE}/{report_id}/download")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Report is not ready for download"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"report_type": "tenants"}, "Report name and type are required"),
        ({"report_name": "x"}, "Report name and type are required"),
        ({"report_name": "x", "report_type": "tenants", "format": "PDF"}, "Invalid format. Must be one of: JSON, CSV"),
    ],
)
async def test_generate_rejects_bad_input(api_client, payload, message):
    resp = await api_client.post(f"{BASE}/generate", json=payload)
    assert resp.status_code == 400
    assert resp.json()["message"] == message


@pytest.mark.asyncio
async def test_update_status(api_client, report_queue):
    report_id = (await _generate(api_client, report_queue))["data"]["report_id"]

    resp = await api_client.patch(f"{BASE}/{report_id}/status", json={"status": "cancelled"})
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "cancelled"

    resp = await api_client.patch(f"{BASE}/{report_id}/status", json={"status": "archived"})
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Invalid status. Must be one of: pending")


@pytest.mark.asyncio
async def test_delete_removes_file(api_client, report_queue, tenant_rows):
    data = (await _generate(api_client, report_queue))["data"]
    file_path = Path((await api_client.get(f"{BASE}/{data['report_id']}")).json()["data"]["file_path"])
    assert file_path.exists()

    resp = await api_client.delete(f"{BASE}/{data['report_id']}")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"deleted_id": data["report_id"], "report_name": "Tenants Q3"}
    assert not file_path.exists()
    assert (await api_client.get(f"{BASE}/{data['report_id']}")).status_code == 404


@pytest.mark.asyncio
async def test_list_filters_and_paginates(api_client, report_queue):
    await _generate(api_client, report_queue, report_name="Usage A", report_type="tenant_usage")
    await _generate(api_client, report_queue, report_name="Usage B", report_type="tenant_usage")
    await _generate(api_client, report_queue, report_name="Alerts", report_type="alerts")

    resp = await api_client.get(BASE, params={"report_type": "tenant_usage", "limit": 1})
    body = resp.json()
    assert len(body["data"]) == 1
    assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "total_pages": 2}

    resp = await api_client.get(BASE, params={"search": "alert"})
    assert [r["report_name"] for r in resp.json()["data"]] == ["Alerts"]


@pytest.mark.asyncio
async def test_missing_report(api_client):
    resp = await api_client.get(f"{BASE}/rep-missing")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Report not found"


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_schedule(api_client):
    data = await _schedule(api_client)
    assert data["schedule_id"].startswith("sch-")
    assert data["recipients_list"] == ["ops@example.com", "cto@example.com"]
    assert data["frequency_config"] == {"day_of_week": 5}
    assert data["next_run"] is not None
    assert data["next_run"].endswith("07:30:00")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [{"recipients": ""}, {"frequency": "hourly"}, {"time": "late"}, {"format": "XLSX"}],
)
async def test_create_schedule_rejects_bad_input(api_client, overrides):
    payload = {
        "schedule_name": "S",
        "report_type": "tenants",
        "frequency": "daily",
        "recipients": "a@example.com",
    }
    payload.update(overrides)
    resp = await api_client.post(f"{BASE}/scheduled", json=payload)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_update_schedule_recomputes_next_run(api_client):
    created = await _schedule(api_client)
    resp = await api_client.put(
        f"{BASE}/scheduled/{created['schedule_id']}",
        json={"frequency": "monthly", "frequency_config": {"day_of_month": 15}},
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["frequency"] == "monthly"
    assert data["next_run"] != created["next_run"]
    assert data["next_run"][8:10] == "15"


@pytest.mark.asyncio
async def test_update_schedule_rejects_unknown_field(api_client):
    created = await _schedule(api_client)
    resp = await api_client.put(f"{BASE}/scheduled/{created['id']}", json={"next_run": "2030-01-01"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_update_schedule_rejects_null_name(api_client):
    created = await _schedule(api_client)
    resp = await api_client.put(
        f"{BASE}/scheduled/{created['schedule_id']}", json={"schedule_name": None}
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Fields cannot be null: schedule_name"


@pytest.mark.asyncio
async def test_list_and_delete_schedule(api_client):
    first = await _schedule(api_client)
    await _schedule(api_client, schedule_name="Daily alerts", report_type="alerts", frequency="daily", is_active=False)

    resp = await api_client.get(f"{BASE}/scheduled/list", params={"is_active": True})
    assert [s["schedule_name"] for s in resp.json()["data"]] == ["Weekly tenants"]

    resp = await api_client.delete(f"{BASE}/scheduled/{first['schedule_id']}")
    assert resp.json()["data"]["deleted_id"] == first["schedule_id"]
    resp = await api_client.get(f"{BASE}/scheduled/list")
    assert resp.json()["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_trigger_schedule(api_client, report_queue, tenant_rows):
    created = await _schedule(api_client)
    resp = await api_client.post(f"{BASE}/scheduled/{created['schedule_id']}/trigger")
    assert resp.status_code == 200
    triggered = resp.json()["data"]
    assert triggered["schedule_id"] == created["schedule_id"]
    await report_queue.join()

    report = (await api_client.get(f"{BASE}/{triggered['report_id']}")).json()["data"]
    assert report["status"] == "completed"
    assert report["generated_by"] == "System (Scheduled)"
    assert report["schedule_id"] == created["schedule_id"]
    assert report["report_name"].startswith("Weekly tenants - ")

    schedules = (await api_client.get(f"{BASE}/scheduled/list")).json()["data"]
    assert schedules[0]["last_run_status"] == "triggered"


@pytest.mark.asyncio
async def test_trigger_missing_schedule(api_client):
    resp = await api_client.post(f"{BASE}/scheduled/sch-nope/trigger")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Schedule not found"
