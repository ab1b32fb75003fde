from tenant_admin.models.admin_user import AdminUser
from tenant_admin.models.base import Base
from tenant_admin.models.credentials import ApiKey, Webhook
from tenant_admin.models.report import Report, ScheduledReport
from tenant_admin.models.setting import Setting, SettingHistory
from tenant_admin.models.tenant import SystemAlert, Tenant, TenantUsage

__all__ = [
    "AdminUser",
    "ApiKey",
    "Base",
    "Report",
    "ScheduledReport",
    "Setting",
    "SettingHistory",
    "SystemAlert",
    "Tenant",
    "TenantUsage",
    "Webhook",
]
