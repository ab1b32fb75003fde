"""REST API endpoints for typed system settings."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_admin.api.deps import get_actor, get_codec, get_db
from tenant_admin.api.schemas import (
    BulkItemResult,
    BulkUpdateRequest,
    CategoryCount,
    Envelope,
    ServiceCheck,
    SettingCreate,
    SettingCreated,
    SettingHistoryEntry,
    SettingOut,
    SettingsOverview,
    SettingValueChanged,
    SettingValueUpdate,
)
from tenant_admin.security.codec import SecretCodec
from tenant_admin.settings_store import operations, overview

router = APIRouter(prefix="/api/admin/settings", tags=["settings"])


def _require_value(body: SettingValueUpdate) -> None:
    if "setting_value" not in body.model_fields_set:
        raise HTTPException(status_code=400, detail="Setting value is required")


@router.get("", response_model=Envelope[dict[str, list[SettingOut]]])
async def list_settings(
    category: str | None = None,
    key: str | None = None,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
):
    """All settings grouped by category, encrypted values decoded."""
    grouped, total = await operations.list_settings(
        db, codec, category=category, key=key, include_inactive=include_inactive
    )
    return Envelope(data=grouped, count=total)


@router.post("", response_model=Envelope[SettingCreated], status_code=201)
async def create_setting(
    body: SettingCreate,
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
):
    created = await operations.create_setting(db, codec, body.model_dump())
    return Envelope(message="Setting created successfully", data=created)


@router.get("/categories/list", response_model=Envelope[list[CategoryCount]])
async def list_categories(db: AsyncSession = Depends(get_db)):
    categories = await overview.list_categories(db)
    return Envelope(data=categories, count=len(categories))


@router.get("/dashboard/overview", response_model=Envelope[SettingsOverview])
async def settings_overview(
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
):
    return Envelope(data=await overview.dashboard_overview(db, codec))


@router.post("/test/{service}", response_model=Envelope[ServiceCheck])
async def test_service(
    service: str,
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
):
    """Check that a service has every required setting filled in."""
    result = await overview.check_service_configuration(db, codec, service)
    return Envelope(
        success=result["success"],
        message=result["message"],
        data=ServiceCheck(service=result["service"], missing=result["missing"]),
    )


@router.get("/history/{setting_id}", response_model=Envelope[list[SettingHistoryEntry]])
async def setting_history(
    setting_id: int,
    limit: int = Query(default=operations.DEFAULT_HISTORY_LIMIT, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    entries = await operations.list_setting_history(db, setting_id, limit=limit)
    return Envelope(data=entries, count=len(entries))


@router.put("/bulk/update", response_model=Envelope[list[BulkItemResult]])
async def bulk_update(
    body: BulkUpdateRequest,
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
    actor: str = Depends(get_actor),
):
    """Update several settings at once; nothing is saved unless all succeed."""
    items = [item.model_dump(exclude_unset=True) for item in body.settings]
    results = await operations.bulk_update_settings(
        db, codec, items, actor=actor, change_reason=body.change_reason
    )
    return Envelope(
        message=f"{len(results)} settings updated successfully",
        data=results,
        count=len(results),
    )


@router.get("/key/{setting_key}", response_model=Envelope[SettingOut])
async def get_setting_by_key(
    setting_key: str,
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
):
    return Envelope(data=await operations.get_setting_by_key(db, codec, setting_key))


@router.put("/key/{setting_key}", response_model=Envelope[SettingValueChanged])
async def update_setting_by_key(
    setting_key: str,
    body: SettingValueUpdate,
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
    actor: str = Depends(get_actor),
):
    _require_value(body)
    changed = await operations.update_setting_value(
        db,
        codec,
        body.setting_value,
        actor,
        setting_key=setting_key,
        change_reason=body.change_reason,
    )
    return Envelope(message="Setting updated successfully", data=changed)


@router.get("/{setting_id}", response_model=Envelope[SettingOut])
async def get_setting(
    setting_id: int,
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
):
    return Envelope(data=await operations.get_setting(db, codec, setting_id))


@router.put("/{setting_id}", response_model=Envelope[SettingValueChanged])
async def update_setting(
    setting_id: int,
    body: SettingValueUpdate,
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
    actor: str = Depends(get_actor),
):
    _require_value(body)
    changed = await operations.update_setting_value(
        db,
        codec,
        body.setting_value,
        actor,
        setting_id=setting_id,
        change_reason=body.change_reason,
    )
    return Envelope(message="Setting updated successfully", data=changed)


@router.delete("/{setting_id}", response_model=Envelope[None])
async def delete_setting(setting_id: int, db: AsyncSession = Depends(get_db)):
    """Soft delete: the setting is deactivated, its history kept."""
    await operations.soft_delete_setting(db, setting_id)
    return Envelope(message="Setting deactivated successfully")
