"""Pydantic request/response schemas for the admin API."""

from __future__ import annotations

import datetime as dt
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class Envelope(BaseModel, Generic[T]):
    """Uniform response body; errors use the same shape with ``success=False``."""

    success: bool = True
    message: str | None = None
    data: T | None = None
    count: int | None = None
    pagination: Pagination | None = None
    warning: str | None = None


def paginate(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, total_pages=-(-total // limit))


# --- Settings schemas ---


class SettingOut(BaseModel):
    id: int
    setting_key: str
    setting_category: str
    setting_name: str
    setting_value: str | None = None
    data_type: str
    input_type: str
    options: Any = None
    is_encrypted: bool
    is_required: bool
    is_active: bool
    sort_order: int
    description: str | None = None
    extra_config: Any = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class SettingValueUpdate(BaseModel):
    """``setting_value`` must be present; ``null`` counts as present."""

    setting_value: Any = None
    change_reason: str | None = None


class SettingValueChanged(BaseModel):
    id: int
    setting_key: str
    old_value: str | None = None
    new_value: str | None = None


class BulkSettingItem(BaseModel):
    setting_key: str | None = None
    setting_value: Any = None


class BulkUpdateRequest(BaseModel):
    settings: list[BulkSettingItem] = []
    change_reason: str | None = None


class BulkItemResult(BaseModel):
    setting_key: str
    id: int
    success: bool = True


class SettingCreate(BaseModel):
    setting_key: str | None = None
    setting_category: str | None = None
    setting_name: str | None = None
    setting_value: Any = None
    data_type: str = "string"
    input_type: str = "text"
    options: list | dict | None = None
    is_encrypted: bool = False
    is_required: bool = False
    is_active: bool = True
    sort_order: int = 0
    description: str | None = None
    extra_config: dict | None = None


class SettingCreated(BaseModel):
    id: int
    setting_key: str
    setting_category: str
    setting_name: str


class SettingHistoryEntry(BaseModel):
    id: int
    setting_id: int
    old_value: str | None = None
    new_value: str | None = None
    changed_by: str
    change_reason: str | None = None
    created_at: dt.datetime | None = None
    username: str | None = None
    email: str | None = None


class CategoryCount(BaseModel):
    setting_category: str
    setting_count: int


class SettingsOverview(BaseModel):
    active_services: int
    api_integrations: int
    webhooks: int
    security_status: str
    services_breakdown: dict[str, int]


class ServiceCheck(BaseModel):
    service: str
    missing: list[str] = []


# --- Credential schemas ---


class ApiKeyGenerate(BaseModel):
    key_name: str | None = None
    permissions: list[str] | None = None
    prefix: str | None = None
    expires_in_days: int | None = 365
    description: str | None = None


class ApiKeyUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    key_name: str | None = None
    permissions: list[str] | None = None
    description: str | None = None


class RevokeRequest(BaseModel):
    reason: str | None = None


class RegenerateRequest(BaseModel):
    prefix: str | None = None


class ApiKeyOut(BaseModel):
    """Listing view; never carries the key itself."""

    id: int
    key_name: str
    key_prefix: str
    display_key: str
    masked_key: str
    last_chars: str
    permissions: list[str] = []
    description: str | None = None
    expires_at: dt.datetime | None = None
    is_active: bool
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class ApiKeyCreated(BaseModel):
    id: int
    key_name: str
    api_key: str
    masked_key: str
    key_prefix: str
    permissions: list[str]
    expires_at: dt.datetime | None = None
    created_at: dt.datetime


class ApiKeyRotated(BaseModel):
    id: int
    key_name: str
    api_key: str
    masked_key: str
    key_prefix: str
    updated_at: dt.datetime


class WebhookCreate(BaseModel):
    url: str | None = None
    events: list[str] | None = None
    secret: str | None = None
    description: str | None = None


class WebhookUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str | None = None
    events: list[str] | None = None
    secret: str | None = None
    is_active: bool | None = None
    description: str | None = None


class WebhookDelete(BaseModel):
    reason: str | None = None


class WebhookOut(BaseModel):
    id: int
    url: str
    events: list[str] = []
    masked_secret: str
    display_secret: str
    description: str | None = None
    is_active: bool
    last_delivery: dt.datetime | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class WebhookCreated(BaseModel):
    id: int
    url: str
    events: list[str]
    secret: str
    masked_secret: str
    description: str | None = None
    is_active: bool
    created_at: dt.datetime


class WebhookTestResult(BaseModel):
    webhook_id: int
    url: str
    events: list[str]
    test_payload: dict
    delivery_time: dt.datetime
    status: str


# --- Report schemas ---


class ReportOut(BaseModel):
    id: int
    report_id: str
    report_name: str
    report_type: str
    period: str | None = None
    format: str
    parameters: dict = {}
    generated_by: str
    schedule_id: str | None = None
    status: str
    file_path: str | None = None
    file_size: str | None = None
    error_message: str | None = None
    download_count: int
    generated_at: dt.datetime | None = None
    completed_at: dt.datetime | None = None


class ReportGenerate(BaseModel):
    report_name: str | None = None
    report_type: str | None = None
    period: str | None = None
    format: str = "JSON"
    parameters: dict = {}
    generated_by: str = "Super Admin"


class ReportStatusUpdate(BaseModel):
    status: str | None = None


class ReportDownload(BaseModel):
    report_id: str
    report_name: str
    file_path: str | None = None
    file_size: str | None = None
    format: str
    download_count: int


class ReportDeleted(BaseModel):
    deleted_id: str
    report_name: str


class ScheduleOut(BaseModel):
    id: int
    schedule_id: str
    schedule_name: str
    report_type: str
    frequency: str
    frequency_config: dict = {}
    recipients: str
    recipients_list: list[str] = []
    format: str
    time: str
    parameters: dict = {}
    next_run: dt.datetime | None = None
    last_run: dt.datetime | None = None
    last_run_status: str | None = None
    created_by: str
    is_active: bool
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class ScheduleCreate(BaseModel):
    schedule_name: str | None = None
    report_type: str | None = None
    frequency: str | None = None
    frequency_config: dict = {}
    recipients: str | None = None
    format: str = "JSON"
    time: str = "09:00:00"
    parameters: dict = {}
    created_by: str = "Super Admin"
    is_active: bool = True


class ScheduleUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    schedule_name: str | None = None
    report_type: str | None = None
    frequency: str | None = None
    frequency_config: dict | None = None
    recipients: str | None = None
    format: str | None = None
    time: str | None = None
    is_active: bool | None = None
    parameters: dict | None = None


class ScheduleDeleted(BaseModel):
    deleted_id: str
    schedule_name: str


class ScheduleTriggered(BaseModel):
    schedule_id: str
    report_id: str
    status: str


# --- Tenant schemas ---


class TenantCreate(BaseModel):
    name: str | None = None
    status: str = "active"
    health_status: str = "healthy"
    plan: str = "Professional"
    deployment_type: str = "centralized"
    is_self_hosted: bool = False
    is_self_managed: bool = False


class TenantOut(BaseModel):
    id: str
    name: str
    status: str
    health_status: str
    plan: str
    deployment_type: str
    is_self_hosted: bool
    is_self_managed: bool
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class TenantListItem(TenantOut):
    usage_percentage: float = 0.0
    usage_details: dict = {}
    critical_alerts_count: int = 0
    warning_alerts_count: int = 0


class AlertOut(BaseModel):
    id: str
    tenant_id: str
    tenant_name: str | None = None
    alert_type: str
    alert_category: str
    alert_message: str
    current_value: float | None = None
    max_value: float | None = None
    percentage: float | None = None
    is_resolved: bool
    resolved_at: dt.datetime | None = None
    acknowledged_by: str | None = None
    created_at: dt.datetime | None = None


class TenantDetail(TenantOut):
    usage_details: dict = {}
    alerts: list[AlertOut] = []


class UsageUpdate(BaseModel):
    current_users: int | None = Field(default=None, ge=0)
    max_users: int | None = Field(default=None, ge=0)
    current_customers: int | None = Field(default=None, ge=0)
    max_customers: int | None = Field(default=None, ge=0)
    current_visits: int | None = Field(default=None, ge=0)
    max_visits: int | None = Field(default=None, ge=0)
    current_storage_gb: float | None = Field(default=None, ge=0)
    max_storage_gb: float | None = Field(default=None, ge=0)
    api_calls_this_month: int | None = None
    monthly_recurring_revenue: float | None = None
    last_activity_date: dt.date | None = None


class UsageResult(BaseModel):
    tenant_id: str
    avg_usage_percentage: float
    health_status: Literal["healthy", "warning", "critical"]


class AlertCreate(BaseModel):
    tenant_id: str | None = None
    alert_type: str = "warning"
    alert_category: str | None = None
    alert_message: str | None = None
    current_value: float | None = None
    max_value: float | None = None
    percentage: float | None = None


class AlertResolve(BaseModel):
    resolved_by: str | None = None


class AlertResolved(BaseModel):
    id: str
    resolved_by: str
    resolved_at: dt.datetime


class DashboardSummary(BaseModel):
    tenants: dict[str, int]
    alerts: dict[str, int]
    last_updated: dt.datetime
