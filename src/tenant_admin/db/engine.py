from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from tenant_admin.config.settings import get_settings

_engine: AsyncEngine | None = None


def get_engine() -> AsyncEngine:
    """Return the process-wide async engine, creating its pool on first use."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            pool_pre_ping=True,
            echo=settings.log_level.upper() == "DEBUG",
        )
    return _engine


async def dispose_engine() -> None:
    """Close every pooled connection (application shutdown)."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
