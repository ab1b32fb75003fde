"""Background report generation.

``ReportJobQueue`` owns an ``asyncio.Queue`` of report ids and a fixed set of
worker tasks. Each job runs outside the HTTP request that queued it, in its
own database session, and moves the report row through
``pending -> processing -> completed | failed``.
"""

from __future__ import annotations

import asyncio
import csv
import io
import json
from pathlib import Path

import sqlalchemy as sa
import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenant_admin.db.timestamps import utcnow
from tenant_admin.models.report import Report
from tenant_admin.models.tenant import SystemAlert, Tenant, TenantUsage
from tenant_admin.reports.scheduling import format_file_size

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Row sources per report type
# ---------------------------------------------------------------------------


async def _tenant_rows(session: AsyncSession) -> list[dict]:
    result = await session.execute(sa.select(Tenant).order_by(Tenant.name))
    return [
        {
            "tenant_id": tenant.id,
            "name": tenant.name,
            "status": tenant.status,
            "health_status": tenant.health_status,
            "plan": tenant.plan,
            "deployment_type": tenant.deployment_type,
        }
        for tenant in result.scalars().all()
    ]


async def _usage_rows(session: AsyncSession) -> list[dict]:
    stmt = (
        sa.select(TenantUsage, Tenant.name)
        .join(Tenant, Tenant.id == TenantUsage.tenant_id)
        .order_by(TenantUsage.metric_date.desc(), Tenant.name)
    )
    result = await session.execute(stmt)
    return [
        {
            "tenant_id": usage.tenant_id,
            "name": name,
            "metric_date": usage.metric_date.isoformat(),
            "current_users": usage.current_users,
            "current_customers": usage.current_customers,
            "current_visits": usage.current_visits,
            "current_storage_gb": usage.current_storage_gb,
            "avg_usage_percentage": usage.avg_usage_percentage,
        }
        for usage, name in result.all()
    ]


async def _alert_rows(session: AsyncSession) -> list[dict]:
    stmt = sa.select(SystemAlert).order_by(SystemAlert.created_at.desc())
    result = await session.execute(stmt)
    return [
        {
            "alert_id": alert.id,
            "tenant_id": alert.tenant_id,
            "alert_type": alert.alert_type,
            "alert_category": alert.alert_category,
            "alert_message": alert.alert_message,
            "is_resolved": alert.is_resolved,
        }
        for alert in result.scalars().all()
    ]


ROW_SOURCES = {
    "tenants": _tenant_rows,
    "tenant_usage": _usage_rows,
    "alerts": _alert_rows,
}


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_report(report: Report, rows: list[dict]) -> str:
    """Render *rows* in the report's format (``JSON`` or ``CSV``)."""
    if report.format == "CSV":
        buffer = io.StringIO()
        if rows:
            writer = csv.DictWriter(buffer, fieldnames=list(rows[0]))
            writer.writeheader()
            writer.writerows(rows)
        return buffer.getvalue()

    document = {
        "report_id": report.report_id,
        "report_name": report.report_name,
        "report_type": report.report_type,
        "period": report.period,
        "parameters": report.parameters or {},
        "generated_at": utcnow().isoformat(),
        "row_count": len(rows),
        "rows": rows,
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def _write_file(path: Path, content: str) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = content.encode("utf-8")
    path.write_bytes(data)
    return len(data)


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------


class ReportJobQueue:
    """Run report generation on background worker tasks.

    Args:
        session_factory: Factory for the sessions each job opens.
        output_dir: Directory rendered report files are written to.
        workers: Number of concurrent worker tasks.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        output_dir: Path,
        workers: int = 2,
    ):
        self.session_factory = session_factory
        self.output_dir = Path(output_dir)
        self.workers = max(1, workers)
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        if self._tasks:
            return
        for index in range(self.workers):
            self._tasks.append(asyncio.create_task(self._work(index), name=f"report-worker-{index}"))
        logger.info("report_queue_started", workers=self.workers, output_dir=str(self.output_dir))

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("report_queue_stopped", pending=self._queue.qsize())

    async def submit(self, report_id: str) -> None:
        await self._queue.put(report_id)
        logger.info("report_queued", report_id=report_id)

    async def join(self) -> None:
        """Wait until every submitted job has finished."""
        await self._queue.join()

    async def _work(self, index: int) -> None:
        log = logger.bind(worker=index)
        while True:
            report_id = await self._queue.get()
            try:
                await self.process(report_id)
            except Exception:
                log.exception("report_job_crashed", report_id=report_id)
            finally:
                self._queue.task_done()

    async def process(self, report_id: str) -> str | None:
        """Run one job. Returns the final status, or ``None`` if the report is gone."""
        log = logger.bind(report_id=report_id)

        async with self.session_factory() as session:
            async with session.begin():
                report = (
                    await session.execute(sa.select(Report).where(Report.report_id == report_id))
                ).scalar_one_or_none()
                if report is None:
                    log.warning("report_job_missing")
                    return None
                if report.status not in ("pending", "processing"):
                    log.info("report_job_skipped", status=report.status)
                    return report.status
                report.status = "processing"

            try:
                source = ROW_SOURCES.get(report.report_type)
                rows = await source(session) if source else []
                content = render_report(report, rows)
                path = self.output_dir / f"{report.report_id}.{report.format.lower()}"
                size = await asyncio.to_thread(_write_file, path, content)
            except Exception as exc:
                await session.rollback()
                async with session.begin():
                    report.status = "failed"
                    report.error_message = str(exc)
                    report.completed_at = utcnow()
                log.error("report_failed", error=str(exc))
                return "failed"

            if session.in_transaction():
                await session.commit()
            async with session.begin():
                report.status = "completed"
                report.file_path = str(path)
                report.file_size = format_file_size(size)
                report.completed_at = utcnow()

        log.info("report_completed", rows=len(rows), file_size=report.file_size)
        return "completed"
