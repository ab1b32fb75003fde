"""REST API endpoints for webhook registrations."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_admin.api.deps import get_codec, get_db
from tenant_admin.api.schemas import (
    Envelope,
    WebhookCreate,
    WebhookCreated,
    WebhookDelete,
    WebhookOut,
    WebhookTestResult,
    WebhookUpdate,
)
from tenant_admin.credentials import webhooks
from tenant_admin.security.codec import SecretCodec

router = APIRouter(prefix="/api/admin/settings/webhook", tags=["webhooks"])


@router.get("/list", response_model=Envelope[list[WebhookOut]])
async def list_webhooks(
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
):
    items = await webhooks.list_webhooks(db, codec)
    return Envelope(data=items, count=len(items))


@router.post("", response_model=Envelope[WebhookCreated], status_code=201)
async def create_webhook(
    body: WebhookCreate,
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
):
    created = await webhooks.create_webhook(
        db,
        codec,
        url=body.url,
        events=body.events,
        secret=body.secret,
        description=body.description,
    )
    return Envelope(
        message="Webhook created successfully",
        data=created,
        warning=webhooks.CREATED_WARNING,
    )


@router.get("/{webhook_id}", response_model=Envelope[WebhookOut])
async def get_webhook(
    webhook_id: int,
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
):
    """Single webhook; the secret is only ever returned masked."""
    return Envelope(data=await webhooks.get_webhook(db, codec, webhook_id))


@router.put("/{webhook_id}", response_model=Envelope[None])
async def update_webhook(
    webhook_id: int,
    body: WebhookUpdate,
    db: AsyncSession = Depends(get_db),
    codec: SecretCodec = Depends(get_codec),
):
    await webhooks.update_webhook(db, codec, webhook_id, body.model_dump(exclude_unset=True))
    return Envelope(message="Webhook updated successfully")


@router.delete("/{webhook_id}", response_model=Envelope[None])
async def delete_webhook(
    webhook_id: int,
    body: WebhookDelete | None = None,
    db: AsyncSession = Depends(get_db),
):
    await webhooks.delete_webhook(db, webhook_id, reason=body.reason if body else None)
    return Envelope(message="Webhook deleted successfully")


@router.post("/{webhook_id}/test", response_model=Envelope[WebhookTestResult])
async def test_webhook(webhook_id: int, db: AsyncSession = Depends(get_db)):
    result = await webhooks.send_test_delivery(db, webhook_id)
    return Envelope(message="Webhook test completed", data=result)
