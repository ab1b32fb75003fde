"""REST API endpoints for reports and report schedules."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_admin.api.deps import get_db, get_report_queue
from tenant_admin.api.schemas import (
    Envelope,
    ReportDeleted,
    ReportDownload,
    ReportGenerate,
    ReportOut,
    ReportStatusUpdate,
    ScheduleCreate,
    ScheduleDeleted,
    ScheduleOut,
    ScheduleTriggered,
    ScheduleUpdate,
    paginate,
)
from tenant_admin.reports import operations
from tenant_admin.reports.jobs import ReportJobQueue

router = APIRouter(prefix="/api/admin/reports", tags=["reports"])


@router.get("", response_model=Envelope[list[ReportOut]])
async def list_reports(
    status: str | None = None,
    report_type: str | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    items, total = await operations.list_reports(
        db, status=status, report_type=report_type, search=search, page=page, limit=limit
    )
    return Envelope(data=items, pagination=paginate(page, limit, total))


@router.post("/generate", response_model=Envelope[ReportOut], status_code=201)
async def generate_report(
    body: ReportGenerate,
    db: AsyncSession = Depends(get_db),
    queue: ReportJobQueue = Depends(get_report_queue),
):
    """Queue a report; it is rendered by a background worker."""
    report = await operations.create_report(
        db,
        report_name=body.report_name,
        report_type=body.report_type,
        period=body.period,
        fmt=body.format,
        parameters=body.parameters,
        generated_by=body.generated_by,
    )
    await queue.submit(report["report_id"])
    return Envelope(message="Report generation started", data=report)


# --- Schedules ---


@router.get("/scheduled/list", response_model=Envelope[list[ScheduleOut]])
async def list_schedules(
    is_active: bool | None = None,
    report_type: str | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    items, total = await operations.list_schedules(
        db, is_active=is_active, report_type=report_type, search=search, page=page, limit=limit
    )
    return Envelope(data=items, pagination=paginate(page, limit, total))


@router.post("/scheduled", response_model=Envelope[ScheduleOut], status_code=201)
async def create_schedule(body: ScheduleCreate, db: AsyncSession = Depends(get_db)):
    schedule = await operations.create_schedule(db, body.model_dump())
    return Envelope(message="Report schedule created successfully", data=schedule)


@router.put("/scheduled/{schedule_ref}", response_model=Envelope[ScheduleOut])
async def update_schedule(
    schedule_ref: str, body: ScheduleUpdate, db: AsyncSession = Depends(get_db)
):
    schedule = await operations.update_schedule(
        db, schedule_ref, body.model_dump(exclude_unset=True)
    )
    return Envelope(message="Schedule updated successfully", data=schedule)


@router.delete("/scheduled/{schedule_ref}", response_model=Envelope[ScheduleDeleted])
async def delete_schedule(schedule_ref: str, db: AsyncSession = Depends(get_db)):
    deleted = await operations.delete_schedule(db, schedule_ref)
    return Envelope(message="Schedule deleted successfully", data=deleted)


@router.post("/scheduled/{schedule_ref}/trigger", response_model=Envelope[ScheduleTriggered])
async def trigger_schedule(
    schedule_ref: str,
    db: AsyncSession = Depends(get_db),
    queue: ReportJobQueue = Depends(get_report_queue),
):
    triggered = await operations.trigger_schedule(db, schedule_ref)
    await queue.submit(triggered["report_id"])
    return Envelope(message="Scheduled report triggered successfully", data=triggered)


# --- Single report ---


@router.get("/{report_ref}", response_model=Envelope[ReportOut])
async def get_report(report_ref: str, db: AsyncSession = Depends(get_db)):
    """Look up by public ``report_id`` or numeric id."""
    return Envelope(data=await operations.get_report(db, report_ref))


@router.get("/{report_ref}/download", response_model=Envelope[ReportDownload])
async def download_report(report_ref: str, db: AsyncSession = Depends(get_db)):
    info = await operations.register_download(db, report_ref)
    return Envelope(message="Report ready for download", data=info)


@router.patch("/{report_ref}/status", response_model=Envelope[ReportOut])
async def update_report_status(
    report_ref: str, body: ReportStatusUpdate, db: AsyncSession = Depends(get_db)
):
    report = await operations.update_report_status(db, report_ref, body.status)
    return Envelope(message="Report status updated successfully", data=report)


@router.delete("/{report_ref}", response_model=Envelope[ReportDeleted])
async def delete_report(report_ref: str, db: AsyncSession = Depends(get_db)):
    deleted = await operations.delete_report(db, report_ref)
    return Envelope(message="Report deleted successfully", data=deleted)
