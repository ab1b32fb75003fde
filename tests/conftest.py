"""Shared test fixtures."""

from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tenant_admin.api.app import app
from tenant_admin.api.deps import get_codec, get_db, get_report_queue
from tenant_admin.models import Base, Setting
from tenant_admin.reports.jobs import ReportJobQueue
from tenant_admin.security.codec import SecretCodec

TEST_KEY = "unit-test-encryption-key"


@pytest.fixture
def codec() -> SecretCodec:
    """Authenticated-encryption codec used by API tests."""
    return SecretCodec(TEST_KEY, mode="aes-gcm")


@pytest.fixture
async def test_engine():
    """Create an async SQLite in-memory engine for tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest.fixture
def report_dir(tmp_path: Path) -> Path:
    return tmp_path / "report_files"


@pytest.fixture
async def report_queue(test_session_factory, report_dir):
    """A running single-worker report queue on the test database."""
    queue = ReportJobQueue(test_session_factory, output_dir=report_dir, workers=1)
    queue.start()
    yield queue
    await queue.stop()


@pytest.fixture
async def api_client(test_engine, test_session_factory, codec, report_queue):
    """Async HTTP client hitting the FastAPI app with test DB, codec and queue."""

    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_codec] = lambda: codec
    app.dependency_overrides[get_report_queue] = lambda: report_queue
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def seeded_settings(test_session_factory, codec):
    """Insert a small, typed set of settings across two categories."""
    async with test_session_factory() as session:
        async with session.begin():
            session.add_all(
                [
                    Setting(
                        setting_key="enable_email",
                        setting_category="email",
                        setting_name="Enable email",
                        setting_value="true",
                        data_type="boolean",
                        input_type="toggle",
                        sort_order=0,
                    ),
                    Setting(
                        setting_key="smtp_host",
                        setting_category="email",
                        setting_name="SMTP host",
                        setting_value="smtp.example.com",
                        is_required=True,
                        sort_order=1,
                    ),
                    Setting(
                        setting_key="smtp_port",
                        setting_category="email",
                        setting_name="SMTP port",
                        setting_value="587",
                        data_type="number",
                        sort_order=2,
                    ),
                    Setting(
                        setting_key="smtp_password",
                        setting_category="email",
                        setting_name="SMTP password",
                        setting_value=codec.encode("hunter2"),
                        is_encrypted=True,
                        sort_order=3,
                    ),
                    Setting(
                        setting_key="maps_api_key",
                        setting_category="maps",
                        setting_name="Maps API key",
                        setting_value="",
                        is_encrypted=True,
                        is_required=True,
                        sort_order=1,
                    ),
                    Setting(
                        setting_key="maps_default_center",
                        setting_category="maps",
                        setting_name="Default map center",
                        setting_value='{"lat": 0, "lng": 0}',
                        data_type="json",
                        options='["roadmap", "satellite"]',
                        sort_order=2,
                    ),
                ]
            )
    async with test_session_factory() as session:
        result = await session.execute(Setting.__table__.select())
        return {row.setting_key: row.id for row in result}
