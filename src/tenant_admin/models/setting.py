"""SQLAlchemy models for typed system settings and their change history."""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tenant_admin.models.base import Base


class Setting(Base):
    """A named, typed configuration value.

    ``setting_value`` is always text. When ``is_encrypted`` is set the text
    is the codec output, never plaintext. ``options`` and ``extra_config``
    hold JSON text. Rows are deactivated, never deleted.
    """

    __tablename__ = "system_settings"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    setting_key: Mapped[str] = mapped_column(sa.String(150), unique=True, index=True)
    setting_category: Mapped[str] = mapped_column(sa.String(100), index=True)
    setting_name: Mapped[str] = mapped_column(sa.String(255))
    setting_value: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    data_type: Mapped[str] = mapped_column(sa.String(20), default="string")
    input_type: Mapped[str] = mapped_column(sa.String(20), default="text")
    options: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    is_encrypted: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_required: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    sort_order: Mapped[int] = mapped_column(sa.Integer, default=0)
    description: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    extra_config: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")
    )


class SettingHistory(Base):
    """One row per committed value change; values are stored as persisted."""

    __tablename__ = "settings_history"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    setting_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("system_settings.id"), index=True
    )
    old_value: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    changed_by: Mapped[str] = mapped_column(sa.String(64), default="system")
    change_reason: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")
    )
