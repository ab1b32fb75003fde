"""Tenant registry, daily usage snapshots and system alerts."""

from __future__ import annotations

import datetime as dt
import uuid

import sqlalchemy as sa
import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_admin.db.timestamps import utcnow
from tenant_admin.models.tenant import SystemAlert, Tenant, TenantUsage
from tenant_admin.tenants.health import UsageFigures, average_usage_percentage, health_status_for

logger = structlog.get_logger()

TENANT_STATUSES = ("active", "inactive", "suspended")
HEALTH_STATUSES = ("healthy", "warning", "critical")
DEPLOYMENT_TYPES = ("centralized", "self-hosted", "hybrid")
ALERT_TYPES = ("critical", "warning", "info")

USAGE_FIELDS = (
    "current_users",
    "max_users",
    "current_customers",
    "max_customers",
    "current_visits",
    "max_visits",
    "current_storage_gb",
    "max_storage_gb",
)


def check_choice(field: str, value: str | None, choices: tuple[str, ...]) -> None:
    """400 unless *value* is ``None``, ``"all"`` or one of *choices*."""
    if value is None or value == "all" or value in choices:
        return
    raise HTTPException(
        status_code=400,
        detail=f"Invalid {field}. Must be one of: {', '.join(choices)}",
    )


def _today() -> dt.date:
    return utcnow().date()


def usage_to_dict(usage: TenantUsage | None) -> dict:
    if usage is None:
        return {}
    return {
        "metric_date": usage.metric_date,
        **{name: getattr(usage, name) for name in USAGE_FIELDS},
        "avg_usage_percentage": usage.avg_usage_percentage,
        "api_calls_this_month": usage.api_calls_this_month,
        "monthly_recurring_revenue": usage.monthly_recurring_revenue,
        "last_activity_date": usage.last_activity_date,
    }


def tenant_to_dict(tenant: Tenant) -> dict:
    return {
        "id": tenant.id,
        "name": tenant.name,
        "status": tenant.status,
        "health_status": tenant.health_status,
        "plan": tenant.plan,
        "deployment_type": tenant.deployment_type,
        "is_self_hosted": tenant.is_self_hosted,
        "is_self_managed": tenant.is_self_managed,
        "created_at": tenant.created_at,
        "updated_at": tenant.updated_at,
    }


def alert_to_dict(alert: SystemAlert, tenant_name: str | None = None) -> dict:
    return {
        "id": alert.id,
        "tenant_id": alert.tenant_id,
        "tenant_name": tenant_name,
        "alert_type": alert.alert_type,
        "alert_category": alert.alert_category,
        "alert_message": alert.alert_message,
        "current_value": alert.current_value,
        "max_value": alert.max_value,
        "percentage": alert.percentage,
        "is_resolved": alert.is_resolved,
        "resolved_at": alert.resolved_at,
        "acknowledged_by": alert.acknowledged_by,
        "created_at": alert.created_at,
    }


async def _get_tenant(session: AsyncSession, tenant_id: str) -> Tenant:
    tenant = await session.get(Tenant, tenant_id)
    if tenant is None:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant


# ---------------------------------------------------------------------------
# Tenants
# ---------------------------------------------------------------------------


async def list_tenants(
    session: AsyncSession,
    status: str | None = None,
    health_status: str | None = None,
    deployment_type: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], int]:
    """Tenants with their latest usage snapshot and open alert counts."""
    check_choice("status", status, TENANT_STATUSES)
    check_choice("health_status", health_status, HEALTH_STATUSES)
    check_choice("deployment_type", deployment_type, DEPLOYMENT_TYPES)

    stmt = sa.select(Tenant)
    if status and status != "all":
        stmt = stmt.where(Tenant.status == status)
    if health_status and health_status != "all":
        stmt = stmt.where(Tenant.health_status == health_status)
    if deployment_type and deployment_type != "all":
        stmt = stmt.where(Tenant.deployment_type == deployment_type)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(sa.or_(Tenant.name.ilike(pattern), Tenant.plan.ilike(pattern)))

    total = (
        await session.execute(sa.select(sa.func.count()).select_from(stmt.subquery()))
    ).scalar_one()
    result = await session.execute(
        stmt.order_by(Tenant.name).offset((page - 1) * limit).limit(limit)
    )
    tenants = result.scalars().all()
    if not tenants:
        return [], total

    ids = [t.id for t in tenants]
    latest_date = (
        sa.select(TenantUsage.tenant_id, sa.func.max(TenantUsage.metric_date).label("metric_date"))
        .where(TenantUsage.tenant_id.in_(ids))
        .group_by(TenantUsage.tenant_id)
        .subquery()
    )
    usage_rows = await session.execute(
        sa.select(TenantUsage).join(
            latest_date,
            sa.and_(
                TenantUsage.tenant_id == latest_date.c.tenant_id,
                TenantUsage.metric_date == latest_date.c.metric_date,
            ),
        )
    )
    usage_by_tenant = {u.tenant_id: u for u in usage_rows.scalars().all()}

    alert_rows = await session.execute(
        sa.select(SystemAlert.tenant_id, SystemAlert.alert_type, sa.func.count(SystemAlert.id))
        .where(SystemAlert.tenant_id.in_(ids), SystemAlert.is_resolved.is_(False))
        .group_by(SystemAlert.tenant_id, SystemAlert.alert_type)
    )
    alert_counts: dict[tuple[str, str], int] = {
        (tenant_id, alert_type): count for tenant_id, alert_type, count in alert_rows.all()
    }

    items = []
    for tenant in tenants:
        usage = usage_by_tenant.get(tenant.id)
        items.append(
            {
                **tenant_to_dict(tenant),
                "usage_percentage": usage.avg_usage_percentage if usage else 0.0,
                "usage_details": usage_to_dict(usage),
                "critical_alerts_count": alert_counts.get((tenant.id, "critical"), 0),
                "warning_alerts_count": alert_counts.get((tenant.id, "warning"), 0),
            }
        )
    return items, total


async def get_tenant(session: AsyncSession, tenant_id: str) -> dict:
    tenant = await _get_tenant(session, tenant_id)
    usage = (
        await session.execute(
            sa.select(TenantUsage)
            .where(TenantUsage.tenant_id == tenant_id)
            .order_by(TenantUsage.metric_date.desc())
            .limit(1)
        )
    ).scalar_one_or_none()
    alerts = (
        await session.execute(
            sa.select(SystemAlert)
            .where(SystemAlert.tenant_id == tenant_id, SystemAlert.is_resolved.is_(False))
            .order_by(SystemAlert.created_at.desc())
        )
    ).scalars().all()
    return {
        **tenant_to_dict(tenant),
        "usage_details": usage_to_dict(usage),
        "alerts": [alert_to_dict(a, tenant.name) for a in alerts],
    }


async def create_tenant(session: AsyncSession, payload: dict) -> dict:
    """Create a tenant together with an empty usage snapshot for today."""
    name = payload.get("name")
    if not name:
        raise HTTPException(status_code=400, detail="Tenant name is required")

    status = payload.get("status") or "active"
    health_status = payload.get("health_status") or "healthy"
    deployment_type = payload.get("deployment_type") or "centralized"
    check_choice("status", status, TENANT_STATUSES)
    check_choice("health_status", health_status, HEALTH_STATUSES)
    check_choice("deployment_type", deployment_type, DEPLOYMENT_TYPES)

    now = utcnow()
    tenant = Tenant(
        id=str(uuid.uuid4()),
        name=name,
        status=status,
        health_status=health_status,
        plan=payload.get("plan") or "Professional",
        deployment_type=deployment_type,
        is_self_hosted=bool(payload.get("is_self_hosted", False)),
        is_self_managed=bool(payload.get("is_self_managed", False)),
        created_at=now,
        updated_at=now,
    )
    async with session.begin():
        session.add(tenant)
        await session.flush()
        session.add(TenantUsage(tenant_id=tenant.id, metric_date=now.date()))

    logger.info("tenant_created", tenant_id=tenant.id, plan=tenant.plan)
    return tenant_to_dict(tenant)


async def update_tenant_usage(session: AsyncSession, tenant_id: str, payload: dict) -> dict:
    """Upsert today's usage snapshot and derive the tenant's health status."""
    figures = UsageFigures(
        **{name: payload[name] for name in USAGE_FIELDS if payload.get(name) is not None}
    )
    avg_usage = average_usage_percentage(figures)
    health_status = health_status_for(avg_usage)
    today = _today()

    async with session.begin():
        tenant = await _get_tenant(session, tenant_id)
        usage = (
            await session.execute(
                sa.select(TenantUsage).where(
                    TenantUsage.tenant_id == tenant_id, TenantUsage.metric_date == today
                )
            )
        ).scalar_one_or_none()
        if usage is None:
            usage = TenantUsage(
                tenant_id=tenant_id,
                metric_date=today,
                api_calls_this_month=0,
                monthly_recurring_revenue=0.0,
            )
            session.add(usage)

        for name in USAGE_FIELDS:
            setattr(usage, name, getattr(figures, name))
        usage.avg_usage_percentage = avg_usage
        if payload.get("api_calls_this_month") is not None:
            usage.api_calls_this_month = payload["api_calls_this_month"]
        if payload.get("monthly_recurring_revenue") is not None:
            usage.monthly_recurring_revenue = payload["monthly_recurring_revenue"]
        usage.last_activity_date = (
            payload.get("last_activity_date") or usage.last_activity_date or today
        )

        tenant.health_status = health_status
        tenant.updated_at = utcnow()

    logger.info(
        "tenant_usage_updated",
        tenant_id=tenant_id,
        avg_usage=round(avg_usage, 2),
        health_status=health_status,
    )
    return {
        "tenant_id": tenant_id,
        "avg_usage_percentage": avg_usage,
        "health_status": health_status,
    }


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------


async def list_alerts(
    session: AsyncSession,
    alert_type: str | None = None,
    is_resolved: bool | None = None,
    tenant_id: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[dict], int]:
    check_choice("alert_type", alert_type, ALERT_TYPES)

    stmt = sa.select(SystemAlert, Tenant.name).outerjoin(Tenant, Tenant.id == SystemAlert.tenant_id)
    if alert_type and alert_type != "all":
        stmt = stmt.where(SystemAlert.alert_type == alert_type)
    if is_resolved is not None:
        stmt = stmt.where(SystemAlert.is_resolved.is_(is_resolved))
    if tenant_id:
        stmt = stmt.where(SystemAlert.tenant_id == tenant_id)

    total = (
        await session.execute(sa.select(sa.func.count()).select_from(stmt.subquery()))
    ).scalar_one()
    severity = sa.case(
        {"critical": 0, "warning": 1}, value=SystemAlert.alert_type, else_=2
    )
    result = await session.execute(
        stmt.order_by(severity, SystemAlert.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return [alert_to_dict(alert, name) for alert, name in result.all()], total


async def create_alert(session: AsyncSession, payload: dict) -> dict:
    """Open an alert unless an equivalent one was already opened today.

    Raises:
        HTTPException: 400 on missing fields or an unknown type, 404 for an
            unknown tenant, 409 for a duplicate open alert.
    """
    tenant_id = payload.get("tenant_id")
    category = payload.get("alert_category")
    message = payload.get("alert_message")
    if not tenant_id or not category or not message:
        raise HTTPException(
            status_code=400,
            detail="Tenant ID, alert category, and alert message are required",
        )
    alert_type = payload.get("alert_type") or "warning"
    if alert_type not in ALERT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid alert_type. Must be one of: {', '.join(ALERT_TYPES)}",
        )

    now = utcnow()
    start_of_day = dt.datetime.combine(now.date(), dt.time.min)
    async with session.begin():
        await _get_tenant(session, tenant_id)
        duplicate = (
            await session.execute(
                sa.select(SystemAlert.id).where(
                    SystemAlert.tenant_id == tenant_id,
                    SystemAlert.alert_category == category,
                    SystemAlert.alert_type == alert_type,
                    SystemAlert.is_resolved.is_(False),
                    SystemAlert.created_at >= start_of_day,
                )
            )
        ).first()
        if duplicate is not None:
            raise HTTPException(
                status_code=409, detail="Similar active alert already exists for today"
            )

        alert = SystemAlert(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            alert_type=alert_type,
            alert_category=category,
            alert_message=message,
            current_value=payload.get("current_value"),
            max_value=payload.get("max_value"),
            percentage=payload.get("percentage"),
            is_resolved=False,
            created_at=now,
            updated_at=now,
        )
        session.add(alert)

    logger.info("alert_created", alert_id=alert.id, tenant_id=tenant_id, alert_type=alert_type)
    return alert_to_dict(alert)


async def resolve_alert(session: AsyncSession, alert_id: str, resolved_by: str | None = None) -> dict:
    resolved_by = resolved_by or "admin"
    async with session.begin():
        alert = await session.get(SystemAlert, alert_id)
        if alert is None:
            raise HTTPException(status_code=404, detail="Alert not found")
        if alert.is_resolved:
            raise HTTPException(status_code=400, detail="Alert is already resolved")
        now = utcnow()
        alert.is_resolved = True
        alert.resolved_at = now
        alert.acknowledged_by = resolved_by
        alert.acknowledged_at = now
        alert.updated_at = now

    logger.info("alert_resolved", alert_id=alert_id, resolved_by=resolved_by)
    return {"id": alert_id, "resolved_by": resolved_by, "resolved_at": now}


async def dashboard_summary(session: AsyncSession) -> dict:
    """Health breakdown of active tenants and counts of open alerts."""

    def _count_where(condition):
        return sa.func.coalesce(sa.func.sum(sa.case((condition, 1), else_=0)), 0)

    tenant_row = (
        await session.execute(
            sa.select(
                sa.func.count(Tenant.id),
                _count_where(Tenant.health_status == "healthy"),
                _count_where(Tenant.health_status == "warning"),
                _count_where(Tenant.health_status == "critical"),
                _count_where(Tenant.deployment_type == "self-hosted"),
            ).where(Tenant.status == "active")
        )
    ).one()
    alert_row = (
        await session.execute(
            sa.select(
                sa.func.count(SystemAlert.id),
                _count_where(SystemAlert.alert_type == "critical"),
                _count_where(SystemAlert.alert_type == "warning"),
            ).where(SystemAlert.is_resolved.is_(False))
        )
    ).one()

    return {
        "tenants": {
            "total_tenants": tenant_row[0],
            "healthy_tenants": tenant_row[1],
            "warning_tenants": tenant_row[2],
            "critical_tenants": tenant_row[3],
            "self_hosted_tenants": tenant_row[4],
        },
        "alerts": {
            "total_alerts": alert_row[0],
            "critical_alerts": alert_row[1],
            "warning_alerts": alert_row[2],
        },
        "last_updated": utcnow(),
    }
