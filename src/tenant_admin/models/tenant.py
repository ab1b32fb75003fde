"""Tenants, their daily usage snapshots and system alerts."""

from __future__ import annotations

import datetime as dt

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tenant_admin.models.base import Base


class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True)
    name: Mapped[str] = mapped_column(sa.String(255), index=True)
    status: Mapped[str] = mapped_column(sa.String(20), default="active")
    health_status: Mapped[str] = mapped_column(sa.String(20), default="healthy")
    plan: Mapped[str] = mapped_column(sa.String(50), default="Professional")
    deployment_type: Mapped[str] = mapped_column(sa.String(20), default="centralized")
    is_self_hosted: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_self_managed: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")
    )


class TenantUsage(Base):
    """Usage snapshot; at most one row per tenant per ``metric_date``."""

    __tablename__ = "tenant_usage_details"
    __table_args__ = (sa.UniqueConstraint("tenant_id", "metric_date"),)

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("tenants.id", ondelete="CASCADE"), index=True
    )
    metric_date: Mapped[dt.date] = mapped_column(sa.Date)
    current_users: Mapped[int] = mapped_column(sa.Integer, default=0)
    max_users: Mapped[int] = mapped_column(sa.Integer, default=25)
    current_customers: Mapped[int] = mapped_column(sa.Integer, default=0)
    max_customers: Mapped[int] = mapped_column(sa.Integer, default=1000)
    current_visits: Mapped[int] = mapped_column(sa.Integer, default=0)
    max_visits: Mapped[int] = mapped_column(sa.Integer, default=5000)
    current_storage_gb: Mapped[float] = mapped_column(sa.Float, default=0.0)
    max_storage_gb: Mapped[float] = mapped_column(sa.Float, default=10.0)
    avg_usage_percentage: Mapped[float] = mapped_column(sa.Float, default=0.0)
    api_calls_this_month: Mapped[int] = mapped_column(sa.Integer, default=0)
    monthly_recurring_revenue: Mapped[float] = mapped_column(sa.Float, default=0.0)
    last_activity_date: Mapped[dt.date | None] = mapped_column(sa.Date, nullable=True)


class SystemAlert(Base):
    __tablename__ = "system_alerts"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("tenants.id", ondelete="CASCADE"), index=True
    )
    alert_type: Mapped[str] = mapped_column(sa.String(20), default="warning")  # critical / warning / info
    alert_category: Mapped[str] = mapped_column(sa.String(50))
    alert_message: Mapped[str] = mapped_column(sa.Text)
    current_value: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    max_value: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    percentage: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    is_resolved: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    resolved_at: Mapped[dt.datetime | None] = mapped_column(sa.DateTime, nullable=True)
    acknowledged_by: Mapped[str | None] = mapped_column(sa.String(100), nullable=True)
    acknowledged_at: Mapped[dt.datetime | None] = mapped_column(sa.DateTime, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")
    )
