import asyncio
import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from settlement_webhook.main import create_app
from settlement_webhook.models.settlement import Settlement
from settlement_webhook.utils import db as db_core
from settlement_webhook.utils.config import Settings
from settlement_webhook.utils.signature import sign_fields

if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

TEST_SECRET = "test-secret"


class RecordingAuditSink:
    def __init__(self):
        self.events = []

    def record(self, event) -> None:
        self.events.append(event)


@pytest.fixture
def database_url(tmp_path):
    return os.getenv("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'settlements.db'}"


@pytest.fixture
def test_settings(database_url):
    return Settings(
        _env_file=None,
        database_url=database_url,
        payment_webhook_secret=TEST_SECRET,
        db_auto_create=False,
    )


@pytest.fixture
def test_engine(database_url):
    # NullPool avoids cross-event-loop connection reuse between TestClient and asyncio.run.
    engine = create_async_engine(database_url, poolclass=NullPool)

    async def _setup() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(db_core.Base.metadata.drop_all)
            await conn.run_sync(db_core.Base.metadata.create_all)

    async def _teardown() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(db_core.Base.metadata.drop_all)
        await engine.dispose()

    asyncio.run(_setup())
    yield engine
    asyncio.run(_teardown())


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def client(test_settings, test_engine, audit_sink):
    app = create_app(test_settings, engine=test_engine, audit_sink=audit_sink)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_notification():
    def _make(secret: str = TEST_SECRET, **overrides) -> dict:
        fields = {
            "merchantOrderId": "order_1001",
            "transactionId": "txn_1001",
            "state": "COMPLETED",
            "amount": "150.00",
            "currency": "ETB",
            "payerMsisdn": "251911223344",
        }
        fields.update(overrides)
        return {**fields, "signature": sign_fields(fields, secret)}

    return _make


@pytest.fixture
def settlement_count(test_engine):
    def _count(transaction_id: str | None = None) -> int:
        async def _run() -> int:
            stmt = select(func.count()).select_from(Settlement)
            if transaction_id is not None:
                stmt = stmt.where(Settlement.transaction_id == transaction_id)
            async with test_engine.connect() as conn:
                return (await conn.execute(stmt)).scalar_one()

        return asyncio.run(_run())

    return _count
