"""REST API endpoints for tenants, their usage and system alerts."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_admin.api.deps import DEFAULT_ACTOR, get_actor, get_db
from tenant_admin.api.schemas import (
    AlertCreate,
    AlertOut,
    AlertResolve,
    AlertResolved,
    DashboardSummary,
    Envelope,
    TenantCreate,
    TenantDetail,
    TenantListItem,
    TenantOut,
    UsageResult,
    UsageUpdate,
    paginate,
)
from tenant_admin.tenants import operations

router = APIRouter(prefix="/api/admin", tags=["tenants"])


@router.get("/tenants", response_model=Envelope[list[TenantListItem]])
async def list_tenants(
    status: str | None = None,
    health_status: str | None = None,
    deployment_type: str | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    items, total = await operations.list_tenants(
        db,
        status=status,
        health_status=health_status,
        deployment_type=deployment_type,
        search=search,
        page=page,
        limit=limit,
    )
    return Envelope(data=items, pagination=paginate(page, limit, total))


@router.post("/tenants", response_model=Envelope[TenantOut], status_code=201)
async def create_tenant(body: TenantCreate, db: AsyncSession = Depends(get_db)):
    tenant = await operations.create_tenant(db, body.model_dump())
    return Envelope(message="Tenant created successfully", data=tenant)


@router.get("/tenants/{tenant_id}", response_model=Envelope[TenantDetail])
async def get_tenant(tenant_id: str, db: AsyncSession = Depends(get_db)):
    """Tenant with its latest usage snapshot and open alerts."""
    return Envelope(data=await operations.get_tenant(db, tenant_id))


@router.put("/tenants/{tenant_id}/usage", response_model=Envelope[UsageResult])
async def update_usage(tenant_id: str, body: UsageUpdate, db: AsyncSession = Depends(get_db)):
    result = await operations.update_tenant_usage(db, tenant_id, body.model_dump(exclude_unset=True))
    return Envelope(message="Tenant usage updated successfully", data=result)


@router.get("/alerts", response_model=Envelope[list[AlertOut]])
async def list_alerts(
    alert_type: str | None = None,
    is_resolved: bool | None = None,
    tenant_id: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    items, total = await operations.list_alerts(
        db,
        alert_type=alert_type,
        is_resolved=is_resolved,
        tenant_id=tenant_id,
        page=page,
        limit=limit,
    )
    return Envelope(data=items, pagination=paginate(page, limit, total))


@router.post("/alerts", response_model=Envelope[AlertOut], status_code=201)
async def create_alert(body: AlertCreate, db: AsyncSession = Depends(get_db)):
    alert = await operations.create_alert(db, body.model_dump())
    return Envelope(message="Alert created successfully", data=alert)


@router.patch("/alerts/{alert_id}/resolve", response_model=Envelope[AlertResolved])
async def resolve_alert(
    alert_id: str,
    body: AlertResolve | None = None,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Resolve an open alert; the resolver defaults to the acting admin."""
    resolved_by = body.resolved_by if body and body.resolved_by else None
    if resolved_by is None and actor != DEFAULT_ACTOR:
        resolved_by = actor
    result = await operations.resolve_alert(db, alert_id, resolved_by=resolved_by)
    return Envelope(message="Alert resolved successfully", data=result)


@router.get("/dashboard/summary", response_model=Envelope[DashboardSummary])
async def dashboard_summary(db: AsyncSession = Depends(get_db)):
    return Envelope(data=await operations.dashboard_summary(db))
