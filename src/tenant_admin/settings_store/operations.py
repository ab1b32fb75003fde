"""Settings store operations: read, update with history, bulk update, create.

Every value mutation writes the new value and its ``settings_history`` row
inside one ``session.begin()`` block, so either both are committed or
neither is.
"""

from __future__ import annotations

import json
from typing import Any

import sqlalchemy as sa
import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_admin.db.timestamps import utcnow
from tenant_admin.models.admin_user import AdminUser
from tenant_admin.models.setting import Setting, SettingHistory
from tenant_admin.security.codec import SecretCodec
from tenant_admin.settings_store.validator import (
    is_valid_setting_key,
    to_storage_text,
    validate_setting_value,
)

logger = structlog.get_logger()

DEFAULT_CHANGE_REASON = "Updated via API"
DEFAULT_BULK_CHANGE_REASON = "Bulk update via API"
DEFAULT_HISTORY_LIMIT = 50


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------


def _parse_json_column(raw: str | None, column: str, setting_key: str) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("setting_json_column_invalid", setting_key=setting_key, column=column)
        return None


def _decode_stored(setting: Setting, stored: str | None, codec: SecretCodec) -> str | None:
    if setting.is_encrypted and stored:
        return codec.decode(stored)
    return stored


def setting_to_dict(setting: Setting, codec: SecretCodec) -> dict:
    """Client view of a setting: value decoded, JSON columns parsed."""
    return {
        "id": setting.id,
        "setting_key": setting.setting_key,
        "setting_category": setting.setting_category,
        "setting_name": setting.setting_name,
        "setting_value": _decode_stored(setting, setting.setting_value, codec),
        "data_type": setting.data_type,
        "input_type": setting.input_type,
        "options": _parse_json_column(setting.options, "options", setting.setting_key),
        "is_encrypted": setting.is_encrypted,
        "is_required": setting.is_required,
        "is_active": setting.is_active,
        "sort_order": setting.sort_order,
        "description": setting.description,
        "extra_config": _parse_json_column(
            setting.extra_config, "extra_config", setting.setting_key
        ),
        "created_at": setting.created_at,
        "updated_at": setting.updated_at,
    }


async def _find_by_id(session: AsyncSession, setting_id: int) -> Setting | None:
    result = await session.execute(sa.select(Setting).where(Setting.id == setting_id))
    return result.scalar_one_or_none()


async def _find_by_key(
    session: AsyncSession, setting_key: str, active_only: bool = False
) -> Setting | None:
    stmt = sa.select(Setting).where(Setting.setting_key == setting_key)
    if active_only:
        stmt = stmt.where(Setting.is_active.is_(True))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


def _encode_for_storage(setting: Setting, value: Any, codec: SecretCodec) -> str | None:
    text = to_storage_text(value, setting.data_type)
    if setting.is_encrypted and text:
        return codec.encode(text)
    return text


async def record_history(
    session: AsyncSession,
    setting_id: int,
    old_value: str | None,
    new_value: str | None,
    changed_by: str,
    change_reason: str,
) -> None:
    """Insert one ``settings_history`` row in the caller's transaction."""
    session.add(
        SettingHistory(
            setting_id=setting_id,
            old_value=old_value,
            new_value=new_value,
            changed_by=changed_by,
            change_reason=change_reason,
            created_at=utcnow(),
        )
    )
    await session.flush()


async def _apply_value(
    session: AsyncSession,
    codec: SecretCodec,
    setting: Setting,
    value: Any,
    actor: str,
    change_reason: str,
) -> str | None:
    """Write an already validated value plus its history row. Returns the old stored text."""
    old_stored = setting.setting_value
    new_stored = _encode_for_storage(setting, value, codec)
    setting.setting_value = new_stored
    setting.updated_at = utcnow()
    await session.flush()
    await record_history(session, setting.id, old_stored, new_stored, actor, change_reason)
    return old_stored


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def list_settings(
    session: AsyncSession,
    codec: SecretCodec,
    category: str | None = None,
    key: str | None = None,
    include_inactive: bool = False,
) -> tuple[dict[str, list[dict]], int]:
    """Return settings grouped by category plus the total number of rows."""
    stmt = sa.select(Setting)
    if category:
        stmt = stmt.where(Setting.setting_category == category)
    if key:
        stmt = stmt.where(Setting.setting_key == key)
    if not include_inactive:
        stmt = stmt.where(Setting.is_active.is_(True))
    stmt = stmt.order_by(
        Setting.setting_category, Setting.sort_order, Setting.setting_name
    )

    result = await session.execute(stmt)
    rows = result.scalars().all()

    grouped: dict[str, list[dict]] = {}
    for setting in rows:
        grouped.setdefault(setting.setting_category, []).append(
            setting_to_dict(setting, codec)
        )
    return grouped, len(rows)


async def get_setting(session: AsyncSession, codec: SecretCodec, setting_id: int) -> dict:
    setting = await _find_by_id(session, setting_id)
    if setting is None:
        raise HTTPException(status_code=404, detail="Setting not found")
    return setting_to_dict(setting, codec)


async def get_setting_by_key(session: AsyncSession, codec: SecretCodec, setting_key: str) -> dict:
    """Fetch an active setting by key; inactive settings are reported as missing."""
    setting = await _find_by_key(session, setting_key, active_only=True)
    if setting is None:
        raise HTTPException(status_code=404, detail="Setting not found")
    return setting_to_dict(setting, codec)


async def list_setting_history(
    session: AsyncSession, setting_id: int, limit: int = DEFAULT_HISTORY_LIMIT
) -> list[dict]:
    """Value changes of one setting, newest first, with the actor's display info."""
    stmt = (
        sa.select(SettingHistory, AdminUser.username, AdminUser.email)
        .outerjoin(AdminUser, AdminUser.id == SettingHistory.changed_by)
        .where(SettingHistory.setting_id == setting_id)
        .order_by(SettingHistory.created_at.desc(), SettingHistory.id.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return [
        {
            "id": entry.id,
            "setting_id": entry.setting_id,
            "old_value": entry.old_value,
            "new_value": entry.new_value,
            "changed_by": entry.changed_by,
            "change_reason": entry.change_reason,
            "created_at": entry.created_at,
            "username": username,
            "email": email,
        }
        for entry, username, email in result.all()
    ]


# ---------------------------------------------------------------------------
# Value updates
# ---------------------------------------------------------------------------


async def update_setting_value(
    session: AsyncSession,
    codec: SecretCodec,
    value: Any,
    actor: str,
    setting_id: int | None = None,
    setting_key: str | None = None,
    change_reason: str | None = None,
) -> dict:
    """Validate and store a new value for the setting named by id or key.

    The row update and its history insert share one transaction.

    Raises:
        HTTPException: 404 if the setting does not exist, 400 if the value
            fails validation.
    """
    async with session.begin():
        if setting_id is not None:
            setting = await _find_by_id(session, setting_id)
        else:
            setting = await _find_by_key(session, setting_key)
        if setting is None:
            raise HTTPException(status_code=404, detail="Setting not found")

        check = validate_setting_value(setting, value)
        if not check.valid:
            raise HTTPException(status_code=400, detail=check.error)

        old_stored = await _apply_value(
            session,
            codec,
            setting,
            value,
            actor,
            change_reason or DEFAULT_CHANGE_REASON,
        )

    logger.info("setting_updated", setting_key=setting.setting_key, changed_by=actor)
    return {
        "id": setting.id,
        "setting_key": setting.setting_key,
        "old_value": _decode_stored(setting, old_stored, codec),
        "new_value": _decode_stored(setting, setting.setting_value, codec),
    }


async def bulk_update_settings(
    session: AsyncSession,
    codec: SecretCodec,
    items: list[dict],
    actor: str,
    change_reason: str | None = None,
) -> list[dict]:
    """Apply a batch of ``{setting_key, setting_value}`` changes all-or-nothing.

    Every item is resolved and validated. If any item fails, the whole batch
    is rolled back and a 400 is raised whose detail lists both the items that
    would have succeeded (``results``) and the ones that failed (``errors``).
    """
    if not items:
        raise HTTPException(status_code=400, detail="Settings array is required")

    reason = change_reason or DEFAULT_BULK_CHANGE_REASON
    results: list[dict] = []
    errors: list[dict] = []

    async with session.begin():
        for item in items:
            setting_key = item.get("setting_key")
            if not setting_key or "setting_value" not in item:
                errors.append(
                    {"setting_key": setting_key or "unknown", "error": "Missing key or value"}
                )
                continue

            setting = await _find_by_key(session, setting_key)
            if setting is None:
                errors.append({"setting_key": setting_key, "error": "Setting not found"})
                continue

            value = item["setting_value"]
            check = validate_setting_value(setting, value)
            if not check.valid:
                errors.append({"setting_key": setting_key, "error": check.error})
                continue

            await _apply_value(session, codec, setting, value, actor, reason)
            results.append({"setting_key": setting_key, "id": setting.id, "success": True})

        if errors:
            logger.info(
                "bulk_update_rejected",
                failed=len(errors),
                would_succeed=len(results),
            )
            raise HTTPException(
                status_code=400,
                detail={
                    "message": "Some settings failed to update",
                    "results": results,
                    "errors": errors,
                },
            )

    logger.info("bulk_update_committed", updated=len(results), changed_by=actor)
    return results


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


async def create_setting(session: AsyncSession, codec: SecretCodec, payload: dict) -> dict:
    """Create a setting definition, optionally with an initial value.

    Raises:
        HTTPException: 400 on missing identity fields, a malformed key or an
            invalid initial value; 409 if the key already exists.
    """
    setting_key = payload.get("setting_key")
    category = payload.get("setting_category")
    name = payload.get("setting_name")
    if not setting_key or not category or not name:
        raise HTTPException(
            status_code=400,
            detail="setting_key, setting_category, and setting_name are required",
        )
    if not is_valid_setting_key(setting_key):
        raise HTTPException(
            status_code=400,
            detail="setting_key may only contain lowercase letters, digits and underscores",
        )

    options = payload.get("options")
    extra_config = payload.get("extra_config")
    now = utcnow()
    setting = Setting(
        setting_key=setting_key,
        setting_category=category,
        setting_name=name,
        data_type=payload.get("data_type") or "string",
        input_type=payload.get("input_type") or "text",
        options=json.dumps(options) if options is not None else None,
        is_encrypted=bool(payload.get("is_encrypted", False)),
        is_required=bool(payload.get("is_required", False)),
        is_active=bool(payload.get("is_active", True)),
        sort_order=payload.get("sort_order") or 0,
        description=payload.get("description"),
        extra_config=json.dumps(extra_config) if extra_config is not None else None,
        created_at=now,
        updated_at=now,
    )

    # An initial value is optional; when given it must be storable.
    value = payload.get("setting_value")
    if value is None or value == "":
        setting.setting_value = ""
    else:
        check = validate_setting_value(setting, value)
        if not check.valid:
            raise HTTPException(status_code=400, detail=check.error)
        setting.setting_value = _encode_for_storage(setting, value, codec)

    async with session.begin():
        existing = await session.execute(
            sa.select(Setting.id).where(Setting.setting_key == setting_key)
        )
        if existing.scalar_one_or_none() is not None:
            raise HTTPException(status_code=409, detail="Setting key already exists")
        session.add(setting)
        await session.flush()

    logger.info("setting_created", setting_key=setting_key, category=category)
    return {
        "id": setting.id,
        "setting_key": setting.setting_key,
        "setting_category": setting.setting_category,
        "setting_name": setting.setting_name,
    }


async def soft_delete_setting(session: AsyncSession, setting_id: int) -> None:
    """Deactivate a setting. Value and history are left alone."""
    async with session.begin():
        setting = await _find_by_id(session, setting_id)
        if setting is None:
            raise HTTPException(status_code=404, detail="Setting not found")
        setting.is_active = False
        setting.updated_at = utcnow()

    logger.info("setting_deactivated", setting_key=setting.setting_key)


async def seed_settings(session: AsyncSession, codec: SecretCodec, definitions: list[dict]) -> list[str]:
    """Create every definition whose key does not exist yet. Returns created keys."""
    created: list[str] = []
    async with session.begin():
        result = await session.execute(sa.select(Setting.setting_key))
        existing = set(result.scalars().all())
        now = utcnow()
        for definition in definitions:
            setting_key = definition["setting_key"]
            if setting_key in existing:
                continue
            setting = Setting(
                setting_key=setting_key,
                setting_category=definition["setting_category"],
                setting_name=definition["setting_name"],
                data_type=definition.get("data_type", "string"),
                input_type=definition.get("input_type", "text"),
                is_encrypted=definition.get("is_encrypted", False),
                is_required=definition.get("is_required", False),
                sort_order=definition.get("sort_order", 0),
                description=definition.get("description"),
                created_at=now,
                updated_at=now,
            )
            if definition.get("options") is not None:
                setting.options = json.dumps(definition["options"])
            setting.setting_value = _encode_for_storage(
                setting, definition.get("setting_value", ""), codec
            ) or ""
            session.add(setting)
            existing.add(setting_key)
            created.append(setting_key)
    return created
