"""Report and report-schedule persistence.

Queuing a report only creates a ``pending`` row here; callers hand the
returned ``report_id`` to :class:`~tenant_admin.reports.jobs.ReportJobQueue`.
"""

from __future__ import annotations

import json
from pathlib import Path

import sqlalchemy as sa
import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_admin.db.timestamps import utcnow
from tenant_admin.db.update_builder import (
    NoFieldsToUpdate,
    NullFieldError,
    UnknownFieldError,
    UpdatableFields,
)
from tenant_admin.models.report import Report, ScheduledReport
from tenant_admin.reports.scheduling import FREQUENCIES, compute_next_run, generate_public_id

logger = structlog.get_logger()

REPORT_STATUSES = ("pending", "processing", "completed", "failed", "cancelled")
REPORT_FORMATS = ("JSON", "CSV")
SCHEDULED_BY = "System (Scheduled)"

SCHEDULE_FIELDS = UpdatableFields(
    allowed=frozenset(
        {
            "schedule_name",
            "report_type",
            "frequency",
            "frequency_config",
            "recipients",
            "format",
            "time",
            "is_active",
            "parameters",
        }
    ),
    json_fields=frozenset({"frequency_config", "parameters"}),
    non_nullable=frozenset(
        {"schedule_name", "report_type", "frequency", "recipients", "format", "time", "is_active"}
    ),
)


def _load_json(raw: str | None) -> dict:
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return {}


def _check_format(fmt: str) -> str:
    fmt = fmt.upper()
    if fmt not in REPORT_FORMATS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid format. Must be one of: {', '.join(REPORT_FORMATS)}",
        )
    return fmt


def _next_run_or_400(frequency: str, time_of_day: str, frequency_config: dict | None):
    if frequency not in FREQUENCIES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid frequency. Must be one of: {', '.join(FREQUENCIES)}",
        )
    try:
        return compute_next_run(frequency, time_of_day, frequency_config)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def report_to_dict(report: Report) -> dict:
    return {
        "id": report.id,
        "report_id": report.report_id,
        "report_name": report.report_name,
        "report_type": report.report_type,
        "period": report.period,
        "format": report.format,
        "parameters": report.parameters or {},
        "generated_by": report.generated_by,
        "schedule_id": report.schedule_id,
        "status": report.status,
        "file_path": report.file_path,
        "file_size": report.file_size,
        "error_message": report.error_message,
        "download_count": report.download_count,
        "generated_at": report.generated_at,
        "completed_at": report.completed_at,
    }


def schedule_to_dict(schedule: ScheduledReport) -> dict:
    recipients = schedule.recipients or ""
    return {
        "id": schedule.id,
        "schedule_id": schedule.schedule_id,
        "schedule_name": schedule.schedule_name,
        "report_type": schedule.report_type,
        "frequency": schedule.frequency,
        "frequency_config": _load_json(schedule.frequency_config),
        "recipients": recipients,
        "recipients_list": [r.strip() for r in recipients.split(",") if r.strip()],
        "format": schedule.format,
        "time": schedule.time,
        "parameters": _load_json(schedule.parameters),
        "next_run": schedule.next_run,
        "last_run": schedule.last_run,
        "last_run_status": schedule.last_run_status,
        "created_by": schedule.created_by,
        "is_active": schedule.is_active,
        "created_at": schedule.created_at,
        "updated_at": schedule.updated_at,
    }


def _ref_clause(public_id_column, id_column, ref: str):
    if ref.isdigit():
        return sa.or_(public_id_column == ref, id_column == int(ref))
    return public_id_column == ref


async def _get_report(session: AsyncSession, ref: str) -> Report:
    stmt = sa.select(Report).where(_ref_clause(Report.report_id, Report.id, ref))
    report = (await session.execute(stmt)).scalars().first()
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


async def _get_schedule(session: AsyncSession, ref: str) -> ScheduledReport:
    stmt = sa.select(ScheduledReport).where(
        _ref_clause(ScheduledReport.schedule_id, ScheduledReport.id, ref)
    )
    schedule = (await session.execute(stmt)).scalars().first()
    if schedule is None:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return schedule


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


async def list_reports(
    session: AsyncSession,
    status: str | None = None,
    report_type: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], int]:
    stmt = sa.select(Report)
    if status and status != "all":
        stmt = stmt.where(Report.status == status)
    if report_type and report_type != "all":
        stmt = stmt.where(Report.report_type == report_type)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            sa.or_(
                Report.report_name.ilike(pattern),
                Report.report_type.ilike(pattern),
                Report.generated_by.ilike(pattern),
            )
        )

    total = (
        await session.execute(sa.select(sa.func.count()).select_from(stmt.subquery()))
    ).scalar_one()
    result = await session.execute(
        stmt.order_by(Report.generated_at.desc(), Report.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return [report_to_dict(r) for r in result.scalars().all()], total


async def get_report(session: AsyncSession, ref: str) -> dict:
    return report_to_dict(await _get_report(session, ref))


async def create_report(
    session: AsyncSession,
    report_name: str | None,
    report_type: str | None,
    period: str | None = None,
    fmt: str = "JSON",
    parameters: dict | None = None,
    generated_by: str = "Super Admin",
    schedule_id: str | None = None,
) -> dict:
    """Insert a ``pending`` report row and return it."""
    if not report_name or not report_type:
        raise HTTPException(status_code=400, detail="Report name and type are required")
    fmt = _check_format(fmt)

    report = Report(
        report_id=generate_public_id("rep"),
        report_name=report_name,
        report_type=report_type,
        period=period,
        format=fmt,
        parameters=parameters or {},
        generated_by=generated_by,
        schedule_id=schedule_id,
        status="pending",
        download_count=0,
        generated_at=utcnow(),
    )
    async with session.begin():
        session.add(report)
        await session.flush()

    logger.info("report_created", report_id=report.report_id, report_type=report_type)
    return report_to_dict(report)


async def register_download(session: AsyncSession, ref: str) -> dict:
    """Count a download of a completed report and return where its file is."""
    async with session.begin():
        report = await _get_report(session, ref)
        if report.status != "completed":
            raise HTTPException(status_code=400, detail="Report is not ready for download")
        await session.execute(
            sa.update(Report)
            .where(Report.id == report.id)
            .values(download_count=Report.download_count + 1)
            .execution_options(synchronize_session=False)
        )

    return {
        "report_id": report.report_id,
        "report_name": report.report_name,
        "file_path": report.file_path,
        "file_size": report.file_size,
        "format": report.format,
        "download_count": report.download_count + 1,
    }


async def update_report_status(session: AsyncSession, ref: str, status: str | None) -> dict:
    if status not in REPORT_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Must be one of: {', '.join(REPORT_STATUSES)}",
        )
    async with session.begin():
        report = await _get_report(session, ref)
        report.status = status
        if status in ("completed", "failed", "cancelled") and report.completed_at is None:
            report.completed_at = utcnow()

    logger.info("report_status_changed", report_id=report.report_id, status=status)
    return report_to_dict(report)


async def delete_report(session: AsyncSession, ref: str) -> dict:
    """Delete the row and its rendered file, if any."""
    async with session.begin():
        report = await _get_report(session, ref)
        file_path = report.file_path
        await session.delete(report)

    if file_path:
        Path(file_path).unlink(missing_ok=True)
    logger.info("report_deleted", report_id=report.report_id)
    return {"deleted_id": report.report_id, "report_name": report.report_name}


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------


async def list_schedules(
    session: AsyncSession,
    is_active: bool | None = None,
    report_type: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], int]:
    stmt = sa.select(ScheduledReport)
    if is_active is not None:
        stmt = stmt.where(ScheduledReport.is_active.is_(is_active))
    if report_type and report_type != "all":
        stmt = stmt.where(ScheduledReport.report_type == report_type)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            sa.or_(
                ScheduledReport.schedule_name.ilike(pattern),
                ScheduledReport.report_type.ilike(pattern),
            )
        )

    total = (
        await session.execute(sa.select(sa.func.count()).select_from(stmt.subquery()))
    ).scalar_one()
    result = await session.execute(
        stmt.order_by(ScheduledReport.next_run.asc(), ScheduledReport.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return [schedule_to_dict(s) for s in result.scalars().all()], total


async def create_schedule(session: AsyncSession, payload: dict) -> dict:
    schedule_name = payload.get("schedule_name")
    report_type = payload.get("report_type")
    frequency = payload.get("frequency")
    recipients = payload.get("recipients")
    if not schedule_name or not report_type or not frequency or not recipients:
        raise HTTPException(
            status_code=400,
            detail="Schedule name, report type, frequency, and recipients are required",
        )

    time_of_day = payload.get("time") or "09:00:00"
    frequency_config = payload.get("frequency_config") or {}
    parameters = payload.get("parameters") or {}
    next_run = _next_run_or_400(frequency, time_of_day, frequency_config)
    now = utcnow()

    schedule = ScheduledReport(
        schedule_id=generate_public_id("sch"),
        schedule_name=schedule_name,
        report_type=report_type,
        frequency=frequency,
        frequency_config=json.dumps(frequency_config),
        recipients=recipients,
        format=_check_format(payload.get("format") or "JSON"),
        time=time_of_day,
        parameters=json.dumps(parameters),
        next_run=next_run,
        created_by=payload.get("created_by") or "Super Admin",
        is_active=payload.get("is_active", True),
        created_at=now,
        updated_at=now,
    )
    async with session.begin():
        session.add(schedule)
        await session.flush()

    logger.info("schedule_created", schedule_id=schedule.schedule_id, frequency=frequency)
    return schedule_to_dict(schedule)


async def update_schedule(session: AsyncSession, ref: str, changes: dict) -> dict:
    """Apply allow-listed changes; ``next_run`` is recomputed when timing changes."""
    try:
        values = SCHEDULE_FIELDS.build(changes)
    except (UnknownFieldError, NoFieldsToUpdate, NullFieldError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if "format" in values:
        values["format"] = _check_format(values["format"])

    async with session.begin():
        schedule = await _get_schedule(session, ref)
        if {"frequency", "time", "frequency_config"} & set(changes):
            frequency_config = changes.get("frequency_config")
            if frequency_config is None:
                frequency_config = _load_json(schedule.frequency_config)
            values["next_run"] = _next_run_or_400(
                changes.get("frequency") or schedule.frequency,
                changes.get("time") or schedule.time,
                frequency_config,
            )
        for name, value in values.items():
            setattr(schedule, name, value)
        schedule.updated_at = utcnow()

    logger.info("schedule_updated", schedule_id=schedule.schedule_id, fields=sorted(changes))
    return schedule_to_dict(schedule)


async def delete_schedule(session: AsyncSession, ref: str) -> dict:
    async with session.begin():
        schedule = await _get_schedule(session, ref)
        await session.delete(schedule)

    logger.info("schedule_deleted", schedule_id=schedule.schedule_id)
    return {"deleted_id": schedule.schedule_id, "schedule_name": schedule.schedule_name}


async def trigger_schedule(session: AsyncSession, ref: str) -> dict:
    """Create a pending report for a schedule right now and record the run."""
    async with session.begin():
        schedule = await _get_schedule(session, ref)
        now = utcnow()
        report = Report(
            report_id=generate_public_id("rep"),
            report_name=f"{schedule.schedule_name} - {now.date().isoformat()}",
            report_type=schedule.report_type,
            period=now.strftime("%B %Y"),
            format=schedule.format,
            parameters=_load_json(schedule.parameters),
            generated_by=SCHEDULED_BY,
            schedule_id=schedule.schedule_id,
            status="pending",
            download_count=0,
            generated_at=now,
        )
        session.add(report)
        schedule.last_run = now
        schedule.last_run_status = "triggered"
        schedule.updated_at = now

    logger.info("schedule_triggered", schedule_id=schedule.schedule_id, report_id=report.report_id)
    return {
        "schedule_id": schedule.schedule_id,
        "report_id": report.report_id,
        "status": report.status,
    }
