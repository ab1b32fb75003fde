"""Read-only summaries over the settings table."""

from __future__ import annotations

import sqlalchemy as sa
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_admin.models.setting import Setting
from tenant_admin.security.codec import SecretCodec

SERVICE_CATEGORIES = ("email", "sms", "payments", "maps", "ai_services", "webhooks")
TESTABLE_SERVICES = ("email", "sms", "maps", "payments")


async def list_categories(session: AsyncSession) -> list[dict]:
    """Active categories with the number of active settings in each."""
    stmt = (
        sa.select(Setting.setting_category, sa.func.count(Setting.id))
        .where(Setting.is_active.is_(True))
        .group_by(Setting.setting_category)
        .order_by(Setting.setting_category)
    )
    result = await session.execute(stmt)
    return [
        {"setting_category": category, "setting_count": count}
        for category, count in result.all()
    ]


async def dashboard_overview(session: AsyncSession, codec: SecretCodec) -> dict:
    enabled_stmt = (
        sa.select(Setting.setting_category, sa.func.count(Setting.id))
        .where(
            Setting.setting_key.like("enable\\_%", escape="\\"),
            Setting.setting_value == "true",
            Setting.is_active.is_(True),
        )
        .group_by(Setting.setting_category)
    )
    enabled = dict((await session.execute(enabled_stmt)).all())
    breakdown = {f"{category}_active": enabled.get(category, 0) for category in SERVICE_CATEGORIES}

    integrations_stmt = sa.select(sa.func.count(Setting.id)).where(
        sa.or_(
            Setting.setting_key.like("%\\_api\\_key", escape="\\"),
            Setting.setting_key.like("%\\_secret\\_key", escape="\\"),
        ),
        Setting.setting_value.is_not(None),
        Setting.setting_value != "",
        Setting.is_active.is_(True),
    )
    api_integrations = (await session.execute(integrations_stmt)).scalar_one()

    return {
        "active_services": sum(1 for count in enabled.values() if count > 0),
        "api_integrations": api_integrations,
        "webhooks": breakdown["webhooks_active"],
        "security_status": "Encrypted" if codec.mode == "aes-gcm" else "Encoded",
        "services_breakdown": breakdown,
    }


async def check_service_configuration(
    session: AsyncSession, codec: SecretCodec, service: str
) -> dict:
    """Report whether every required active setting of *service* has a value.

    Nothing is contacted; this only inspects stored configuration.
    """
    if service not in TESTABLE_SERVICES:
        raise HTTPException(status_code=400, detail="Unsupported service type")

    stmt = (
        sa.select(Setting)
        .where(Setting.setting_category == service, Setting.is_active.is_(True))
        .order_by(Setting.sort_order, Setting.setting_key)
    )
    settings = (await session.execute(stmt)).scalars().all()

    missing = []
    for setting in settings:
        if not setting.is_required:
            continue
        value = setting.setting_value
        if setting.is_encrypted and value:
            value = codec.decode(value)
        if not value:
            missing.append(setting.setting_key)

    label = service.capitalize()
    if missing:
        return {
            "success": False,
            "message": f"{label} service is missing required settings",
            "service": service,
            "missing": missing,
        }
    return {
        "success": True,
        "message": f"{label} service test successful",
        "service": service,
        "missing": [],
    }
