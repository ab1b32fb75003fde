"""FastAPI dependencies: DB session, secret codec, acting admin, report queue."""

from collections.abc import AsyncGenerator
from functools import lru_cache

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_admin.config.settings import get_settings
from tenant_admin.db.session import get_session_factory
from tenant_admin.reports.jobs import ReportJobQueue
from tenant_admin.security.codec import SecretCodec

DEFAULT_ACTOR = "system"


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session for request handling."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


@lru_cache
def get_codec() -> SecretCodec:
    """The process-wide codec, configured from settings."""
    settings = get_settings()
    return SecretCodec(settings.encryption_key, mode=settings.codec_mode)


def get_actor(x_admin_user: str | None = Header(default=None)) -> str:
    """Admin recorded as the author of a change."""
    if x_admin_user and x_admin_user.strip():
        return x_admin_user.strip()[:64]
    return DEFAULT_ACTOR


def get_report_queue(request: Request) -> ReportJobQueue:
    queue = getattr(request.app.state, "report_queue", None)
    if queue is None:
        raise HTTPException(status_code=503, detail="Report queue is not running")
    return queue
