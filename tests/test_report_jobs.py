"""Tests for background report rendering."""

import csv
import io
import json

import pytest
import sqlalchemy as sa

from tenant_admin.models import Report, Tenant
from tenant_admin.reports import jobs
from tenant_admin.reports.jobs import ReportJobQueue


async def _add_report(factory, report_id="rep-test-000001", **overrides):
    fields = {
        "report_id": report_id,
        "report_name": "Tenant overview",
        "report_type": "tenants",
        "format": "JSON",
        "status": "pending",
    }
    fields.update(overrides)
    async with factory() as session:
        async with session.begin():
            session.add(Report(**fields))
    return report_id


async def _load(factory, report_id):
    async with factory() as session:
        result = await session.execute(sa.select(Report).where(Report.report_id == report_id))
        return result.scalar_one()


@pytest.fixture
async def tenants(test_session_factory):
    async with test_session_factory() as session:
        async with session.begin():
            session.add_all(
                [
                    Tenant(id="t-1", name="Acme", plan="Enterprise"),
                    Tenant(id="t-2", name="Globex", status="suspended"),
                ]
            )


@pytest.fixture
def queue(test_session_factory, report_dir):
    return ReportJobQueue(test_session_factory, output_dir=report_dir, workers=1)


@pytest.mark.asyncio
async def test_process_writes_json_file(queue, test_session_factory, tenants, report_dir):
    report_id = await _add_report(test_session_factory)

    status = await queue.process(report_id)

    assert status == "completed"
    report = await _load(test_session_factory, report_id)
    assert report.status == "completed"
    assert report.completed_at is not None
    assert report.file_path == str(report_dir / f"{report_id}.json")
    assert report.file_size.endswith(("Bytes", "KB"))

    document = json.loads((report_dir / f"{report_id}.json").read_text())
    assert document["report_id"] == report_id
    assert document["row_count"] == 2
    assert [row["name"] for row in document["rows"]] == ["Acme", "Globex"]


@pytest.mark.asyncio
async def test_process_writes_csv_file(queue, test_session_factory, tenants, report_dir):
    report_id = await _add_report(test_session_factory, format="CSV")

    assert await queue.process(report_id) == "completed"

    rows = list(csv.DictReader(io.StringIO((report_dir / f"{report_id}.csv").read_text())))
    assert [row["name"] for row in rows] == ["Acme", "Globex"]
    assert rows[1]["status"] == "suspended"


@pytest.mark.asyncio
async def test_unknown_report_type_renders_empty(queue, test_session_factory, report_dir):
    report_id = await _add_report(test_session_factory, report_type="revenue_forecast")

    assert await queue.process(report_id) == "completed"
    document = json.loads((report_dir / f"{report_id}.json").read_text())
    assert document["rows"] == []


@pytest.mark.asyncio
async def test_render_failure_marks_report_failed(queue, test_session_factory, monkeypatch):
    report_id = await _add_report(test_session_factory)

    def broken_render(report, rows):
        raise RuntimeError("template exploded")

    monkeypatch.setattr(jobs, "render_report", broken_render)

    assert await queue.process(report_id) == "failed"
    report = await _load(test_session_factory, report_id)
    assert report.status == "failed"
    assert report.error_message == "template exploded"
    assert report.file_path is None


@pytest.mark.asyncio
async def test_missing_report(queue):
    assert await queue.process("rep-does-not-exist") is None


@pytest.mark.asyncio
async def test_finished_report_is_not_reprocessed(queue, test_session_factory, report_dir):
    report_id = await _add_report(test_session_factory, status="cancelled")

    assert await queue.process(report_id) == "cancelled"
    assert not (report_dir / f"{report_id}.json").exists()


@pytest.mark.asyncio
async def test_queue_workers_drain_submissions(test_session_factory, report_dir, tenants):
    queue = ReportJobQueue(test_session_factory, output_dir=report_dir, workers=1)
    queue.start()
    try:
        first = await _add_report(test_session_factory, "rep-test-000001")
        second = await _add_report(test_session_factory, "rep-test-000002", format="CSV")
        await queue.submit(first)
        await queue.submit(second)
        await queue.join()
    finally:
        await queue.stop()

    assert not queue.running
    assert (await _load(test_session_factory, first)).status == "completed"
    assert (await _load(test_session_factory, second)).status == "completed"
