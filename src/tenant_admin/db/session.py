from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenant_admin.db.engine import get_engine

_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return a cached session factory bound to the engine.

    Request handlers, the report workers and the CLI all open their sessions
    from this one factory.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory
