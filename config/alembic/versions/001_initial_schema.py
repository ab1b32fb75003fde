"""Initial schema: settings, history, credentials, reports, tenants.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "admin_users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=True),
    )

    op.create_table(
        "system_settings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("setting_key", sa.String(150), nullable=False),
        sa.Column("setting_category", sa.String(100), nullable=False),
        sa.Column("setting_name", sa.String(255), nullable=False),
        sa.Column("setting_value", sa.Text(), nullable=True),
        sa.Column("data_type", sa.String(20), server_default="string", nullable=False),
        sa.Column("input_type", sa.String(20), server_default="text", nullable=False),
        sa.Column("options", sa.Text(), nullable=True),
        sa.Column("is_encrypted", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_required", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("sort_order", sa.Integer(), server_default="0", nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("extra_config", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_system_settings_setting_key", "system_settings", ["setting_key"], unique=True)
    op.create_index("ix_system_settings_setting_category", "system_settings", ["setting_category"])

    op.create_table(
        "settings_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("setting_id", sa.Integer(), sa.ForeignKey("system_settings.id"), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("changed_by", sa.String(64), server_default="system", nullable=False),
        sa.Column("change_reason", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_settings_history_setting_id", "settings_history", ["setting_id"])

    op.create_table(
        "api_keys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("key_name", sa.String(255), nullable=False),
        sa.Column("api_key", sa.Text(), nullable=False),
        sa.Column("key_prefix", sa.String(20), server_default="pk", nullable=False),
        sa.Column("permissions", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("revoked_at", sa.DateTime(), nullable=True),
        sa.Column("revoke_reason", sa.String(500), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "webhooks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("events", sa.Text(), nullable=False),
        sa.Column("secret", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("last_delivery", sa.DateTime(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("report_id", sa.String(64), nullable=False),
        sa.Column("report_name", sa.String(255), nullable=False),
        sa.Column("report_type", sa.String(100), nullable=False),
        sa.Column("period", sa.String(100), nullable=True),
        sa.Column("format", sa.String(10), server_default="JSON", nullable=False),
        sa.Column("parameters", sa.JSON(), nullable=True),
        sa.Column("generated_by", sa.String(100), server_default="Super Admin", nullable=False),
        sa.Column("schedule_id", sa.String(64), nullable=True),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        sa.Column("file_path", sa.String(500), nullable=True),
        sa.Column("file_size", sa.String(50), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("download_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("generated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_reports_report_id", "reports", ["report_id"], unique=True)
    op.create_index("ix_reports_report_type", "reports", ["report_type"])
    op.create_index("ix_reports_status", "reports", ["status"])

    op.create_table(
        "scheduled_reports",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("schedule_id", sa.String(64), nullable=False),
        sa.Column("schedule_name", sa.String(255), nullable=False),
        sa.Column("report_type", sa.String(100), nullable=False),
        sa.Column("frequency", sa.String(20), nullable=False),
        sa.Column("frequency_config", sa.Text(), nullable=True),
        sa.Column("recipients", sa.Text(), nullable=False),
        sa.Column("format", sa.String(10), server_default="JSON", nullable=False),
        sa.Column("time", sa.String(8), server_default="09:00:00", nullable=False),
        sa.Column("parameters", sa.Text(), nullable=True),
        sa.Column("next_run", sa.DateTime(), nullable=True),
        sa.Column("last_run", sa.DateTime(), nullable=True),
        sa.Column("last_run_status", sa.String(20), nullable=True),
        sa.Column("created_by", sa.String(100), server_default="Super Admin", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_scheduled_reports_schedule_id", "scheduled_reports", ["schedule_id"], unique=True)

    op.create_table(
        "tenants",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        sa.Column("health_status", sa.String(20), server_default="healthy", nullable=False),
        sa.Column("plan", sa.String(50), server_default="Professional", nullable=False),
        sa.Column("deployment_type", sa.String(20), server_default="centralized", nullable=False),
        sa.Column("is_self_hosted", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_self_managed", sa.Boolean(), server_default=sa.false(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_tenants_name", "tenants", ["name"])

    op.create_table(
        "tenant_usage_details",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(36), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("metric_date", sa.Date(), nullable=False),
        sa.Column("current_users", sa.Integer(), server_default="0", nullable=False),
        sa.Column("max_users", sa.Integer(), server_default="25", nullable=False),
        sa.Column("current_customers", sa.Integer(), server_default="0", nullable=False),
        sa.Column("max_customers", sa.Integer(), server_default="1000", nullable=False),
        sa.Column("current_visits", sa.Integer(), server_default="0", nullable=False),
        sa.Column("max_visits", sa.Integer(), server_default="5000", nullable=False),
        sa.Column("current_storage_gb", sa.Float(), server_default="0", nullable=False),
        sa.Column("max_storage_gb", sa.Float(), server_default="10", nullable=False),
        sa.Column("avg_usage_percentage", sa.Float(), server_default="0", nullable=False),
        sa.Column("api_calls_this_month", sa.Integer(), server_default="0", nullable=False),
        sa.Column("monthly_recurring_revenue", sa.Float(), server_default="0", nullable=False),
        sa.Column("last_activity_date", sa.Date(), nullable=True),
        sa.UniqueConstraint("tenant_id", "metric_date"),
    )
    op.create_index("ix_tenant_usage_details_tenant_id", "tenant_usage_details", ["tenant_id"])

    op.create_table(
        "system_alerts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tenant_id", sa.String(36), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("alert_type", sa.String(20), server_default="warning", nullable=False),
        sa.Column("alert_category", sa.String(50), nullable=False),
        sa.Column("alert_message", sa.Text(), nullable=False),
        sa.Column("current_value", sa.Float(), nullable=True),
        sa.Column("max_value", sa.Float(), nullable=True),
        sa.Column("percentage", sa.Float(), nullable=True),
        sa.Column("is_resolved", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column("acknowledged_by", sa.String(100), nullable=True),
        sa.Column("acknowledged_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_system_alerts_tenant_id", "system_alerts", ["tenant_id"])


def downgrade() -> None:
    op.drop_table("system_alerts")
    op.drop_table("tenant_usage_details")
    op.drop_table("tenants")
    op.drop_table("scheduled_reports")
    op.drop_table("reports")
    op.drop_table("webhooks")
    op.drop_table("api_keys")
    op.drop_table("settings_history")
    op.drop_table("system_settings")
    op.drop_table("admin_users")
