"""Generated reports and their recurring schedules."""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tenant_admin.models.base import Base


class Report(Base):
    """A single report run.

    ``status`` moves ``pending -> processing -> completed | failed`` under
    the report job queue; ``cancelled`` is set manually.
    """

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    report_id: Mapped[str] = mapped_column(sa.String(64), unique=True, index=True)
    report_name: Mapped[str] = mapped_column(sa.String(255))
    report_type: Mapped[str] = mapped_column(sa.String(100), index=True)
    period: Mapped[str | None] = mapped_column(sa.String(100), nullable=True)
    format: Mapped[str] = mapped_column(sa.String(10), default="JSON")
    parameters: Mapped[dict | None] = mapped_column(sa.JSON, nullable=True)
    generated_by: Mapped[str] = mapped_column(sa.String(100), default="Super Admin")
    schedule_id: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)
    status: Mapped[str] = mapped_column(sa.String(20), default="pending", index=True)
    file_path: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)
    file_size: Mapped[str | None] = mapped_column(sa.String(50), nullable=True)
    error_message: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    download_count: Mapped[int] = mapped_column(sa.Integer, default=0)
    generated_at: Mapped[datetime] = mapped_column(
        sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")
    )
    completed_at: Mapped[datetime | None] = mapped_column(sa.DateTime, nullable=True)


class ScheduledReport(Base):
    __tablename__ = "scheduled_reports"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    schedule_id: Mapped[str] = mapped_column(sa.String(64), unique=True, index=True)
    schedule_name: Mapped[str] = mapped_column(sa.String(255))
    report_type: Mapped[str] = mapped_column(sa.String(100))
    frequency: Mapped[str] = mapped_column(sa.String(20))  # daily / weekly / monthly
    frequency_config: Mapped[str | None] = mapped_column(sa.Text, nullable=True)  # JSON
    recipients: Mapped[str] = mapped_column(sa.Text)  # comma separated
    format: Mapped[str] = mapped_column(sa.String(10), default="JSON")
    time: Mapped[str] = mapped_column(sa.String(8), default="09:00:00")
    parameters: Mapped[str | None] = mapped_column(sa.Text, nullable=True)  # JSON
    next_run: Mapped[datetime | None] = mapped_column(sa.DateTime, nullable=True)
    last_run: Mapped[datetime | None] = mapped_column(sa.DateTime, nullable=True)
    last_run_status: Mapped[str | None] = mapped_column(sa.String(20), nullable=True)
    created_by: Mapped[str] = mapped_column(sa.String(100), default="Super Admin")
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")
    )
