"""API key lifecycle: generate, list (masked), update, revoke, regenerate."""

from __future__ import annotations

import datetime as dt
import json
import re

import sqlalchemy as sa
import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_admin.db.timestamps import utcnow
from tenant_admin.db.update_builder import (
    NoFieldsToUpdate,
    NullFieldError,
    UnknownFieldError,
    UpdatableFields,
)
from tenant_admin.models.credentials import ApiKey
from tenant_admin.security.codec import SecretCodec
from tenant_admin.security.generators import VISIBLE_TAIL, generate_api_key, mask_secret

logger = structlog.get_logger()

DEFAULT_PREFIX = "pk"
DEFAULT_PERMISSIONS = ["read_access"]
DEFAULT_EXPIRY_DAYS = 365
DEFAULT_REVOKE_REASON = "Revoked by admin"

CREATED_WARNING = "Save this API key now. It will not be shown again!"
ROTATED_WARNING = "Save this new API key now. The old key is no longer valid!"

PREFIX_PATTERN = re.compile(r"^[A-Za-z0-9]{1,20}$")

API_KEY_FIELDS = UpdatableFields(
    allowed=frozenset({"key_name", "permissions", "description"}),
    json_fields=frozenset({"permissions"}),
    non_nullable=frozenset({"key_name"}),
)


def _check_prefix(prefix: str) -> None:
    # The prefix ends at the first underscore when masking.
    if not PREFIX_PATTERN.match(prefix):
        raise HTTPException(
            status_code=400,
            detail="prefix must be 1-20 letters or digits",
        )


def _load_permissions(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("api_key_permissions_invalid")
        return []


def api_key_to_dict(row: ApiKey, codec: SecretCodec) -> dict:
    """Listing view. Only masked forms of the key leave this function."""
    plaintext = codec.decode(row.api_key)
    masked = mask_secret(plaintext)
    return {
        "id": row.id,
        "key_name": row.key_name,
        "key_prefix": row.key_prefix,
        "display_key": masked,
        "masked_key": masked,
        "last_chars": plaintext[-VISIBLE_TAIL:] if len(plaintext) > VISIBLE_TAIL else "",
        "permissions": _load_permissions(row.permissions),
        "description": row.description,
        "expires_at": row.expires_at,
        "is_active": row.is_active,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    }


async def _get_key(session: AsyncSession, key_id: int) -> ApiKey:
    result = await session.execute(sa.select(ApiKey).where(ApiKey.id == key_id))
    row = result.scalar_one_or_none()
    if row is None:
        raise HTTPException(status_code=404, detail="API key not found")
    return row


async def generate_api_key_record(
    session: AsyncSession,
    codec: SecretCodec,
    key_name: str | None,
    permissions: list[str] | None = None,
    prefix: str | None = None,
    expires_in_days: int | None = DEFAULT_EXPIRY_DAYS,
    description: str | None = None,
) -> dict:
    """Create a key and return it in plaintext. This is the only time it is shown."""
    if not key_name:
        raise HTTPException(status_code=400, detail="Key name is required")
    prefix = prefix or DEFAULT_PREFIX
    _check_prefix(prefix)
    if expires_in_days is not None and expires_in_days < 0:
        raise HTTPException(status_code=400, detail="expires_in_days must not be negative")

    plaintext = generate_api_key(prefix)
    now = utcnow()
    expires_at = now + dt.timedelta(days=expires_in_days) if expires_in_days else None
    row = ApiKey(
        key_name=key_name,
        api_key=codec.encode(plaintext),
        key_prefix=prefix,
        permissions=json.dumps(permissions or DEFAULT_PERMISSIONS),
        description=description,
        expires_at=expires_at,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    async with session.begin():
        session.add(row)
        await session.flush()

    logger.info("api_key_generated", key_id=row.id, key_prefix=prefix)
    return {
        "id": row.id,
        "key_name": row.key_name,
        "api_key": plaintext,
        "masked_key": mask_secret(plaintext),
        "key_prefix": prefix,
        "permissions": permissions or DEFAULT_PERMISSIONS,
        "expires_at": expires_at,
        "created_at": now,
    }


async def list_api_keys(session: AsyncSession, codec: SecretCodec) -> list[dict]:
    stmt = (
        sa.select(ApiKey)
        .where(ApiKey.is_active.is_(True))
        .order_by(ApiKey.created_at.desc(), ApiKey.id.desc())
    )
    result = await session.execute(stmt)
    return [api_key_to_dict(row, codec) for row in result.scalars().all()]


async def update_api_key(session: AsyncSession, key_id: int, changes: dict) -> None:
    """Apply allow-listed metadata changes to an active key; the key itself is never touched here.

    Raises:
        HTTPException: 400 for a bad change set, 404 if the key does not exist,
            409 if it was revoked.
    """
    try:
        values = API_KEY_FIELDS.build(changes)
    except (UnknownFieldError, NoFieldsToUpdate, NullFieldError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    async with session.begin():
        row = await _get_key(session, key_id)
        if not row.is_active:
            raise HTTPException(status_code=409, detail="Revoked API keys cannot be updated")
        await session.execute(
            sa.update(ApiKey)
            .where(ApiKey.id == key_id, ApiKey.is_active.is_(True))
            .values(**values, updated_at=utcnow())
        )

    logger.info("api_key_updated", key_id=key_id, fields=sorted(values))


async def revoke_api_key(session: AsyncSession, key_id: int, reason: str | None = None) -> None:
    async with session.begin():
        row = await _get_key(session, key_id)
        now = utcnow()
        row.is_active = False
        row.revoked_at = now
        row.revoke_reason = reason or DEFAULT_REVOKE_REASON
        row.updated_at = now

    logger.info("api_key_revoked", key_id=key_id)


async def regenerate_api_key(
    session: AsyncSession, codec: SecretCodec, key_id: int, prefix: str | None = None
) -> dict:
    """Replace the stored key of an active row in place and return the new plaintext.

    Raises:
        HTTPException: 404 if the key does not exist, 409 if it was revoked.
    """
    if prefix is not None:
        _check_prefix(prefix)

    async with session.begin():
        row = await _get_key(session, key_id)
        if not row.is_active:
            raise HTTPException(status_code=409, detail="Revoked API keys cannot be regenerated")

        new_prefix = prefix or row.key_prefix or DEFAULT_PREFIX
        plaintext = generate_api_key(new_prefix)
        now = utcnow()
        result = await session.execute(
            sa.update(ApiKey)
            .where(ApiKey.id == key_id, ApiKey.is_active.is_(True))
            .values(
                api_key=codec.encode(plaintext),
                key_prefix=new_prefix,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise HTTPException(status_code=409, detail="API key changed during regeneration")

    logger.info("api_key_regenerated", key_id=key_id)
    return {
        "id": key_id,
        "key_name": row.key_name,
        "api_key": plaintext,
        "masked_key": mask_secret(plaintext),
        "key_prefix": new_prefix,
        "updated_at": now,
    }
