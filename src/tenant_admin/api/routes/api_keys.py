"""REST API endpoints for API key management."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_admin.api.deps import get_codec, get_db
from tenant_admin.api.schemas import (
    ApiKeyCreated,
    ApiKeyGenerate,
    ApiKeyOut,
    ApiKeyRotated,
    ApiKeyUpdate,
    Envelope,
    RegenerateRequest,
    RevokeRequest,
)
from tenant_admin.credentials import api_keys
from tenant_admin.security.codec import SecretCodec

router = APIRouter(prefix="/api/admin/settings/api-key", tags=["api-keys"])


@router.post("/generate", response_model=Envelope[ApiKeyCreated], status_code=201)
async def generate_key(
    body: ApiKeyGenerate,
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
):
    """Create a key. The plaintext is in this response and nowhere else."""
    created = await api_keys.generate_api_key_record(
        db,
        codec,
        key_name=body.key_name,
        permissions=body.permissions,
        prefix=body.prefix,
        expires_in_days=body.expires_in_days,
        description=body.description,
    )
    return Envelope(
        message="API key generated successfully",
        data=created,
        warning=api_keys.CREATED_WARNING,
    )


@router.get("/list", response_model=Envelope[list[ApiKeyOut]])
async def list_keys(
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
):
    keys = await api_keys.list_api_keys(db, codec)
    return Envelope(data=keys, count=len(keys))


@router.put("/{key_id}", response_model=Envelope[None])
async def update_key(key_id: int, body: ApiKeyUpdate, db: AsyncSession = Depends(get_db)):
    await api_keys.update_api_key(db, key_id, body.model_dump(exclude_unset=True))
    return Envelope(message="API key updated successfully")


@router.delete("/{key_id}", response_model=Envelope[None])
async def revoke_key(
    key_id: int,
    body: RevokeRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    await api_keys.revoke_api_key(db, key_id, reason=body.reason if body else None)
    return Envelope(message="API key revoked successfully")


@router.post("/{key_id}/regenerate", response_model=Envelope[ApiKeyRotated])
async def regenerate_key(
    key_id: int,
    body: RegenerateRequest | None = None,
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
):
    rotated = await api_keys.regenerate_api_key(
        db, codec, key_id, prefix=body.prefix if body else None
    )
    return Envelope(
        message="API key regenerated successfully",
        data=rotated,
        warning=api_keys.ROTATED_WARNING,
    )
