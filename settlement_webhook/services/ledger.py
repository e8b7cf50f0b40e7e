"""
Settlement ledger.

The ledger is keyed by the provider transaction id and only ever grows: the
first writer for a key wins, later writers get ``inserted=False`` and nothing
is changed. ``SqlLedger`` relies on the unique ``transaction_id`` column for
that, ``InMemoryLedger`` on a single lock.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from settlement_webhook.dto.settlement import SettlementRecord
from settlement_webhook.repositories.settlement_repository import SettlementRepository
from settlement_webhook.utils.exceptions import LedgerUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InsertResult:
    inserted: bool


class Ledger(Protocol):
    async def try_insert(self, transaction_id: str, record: SettlementRecord) -> InsertResult:
        ...

    async def get(self, transaction_id: str) -> SettlementRecord | None:
        ...


class SqlLedger:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], *, operation_timeout_seconds: float):
        self.session_factory = session_factory
        self.operation_timeout_seconds = operation_timeout_seconds

    async def try_insert(self, transaction_id: str, record: SettlementRecord) -> InsertResult:
        inserted_id = await self._run(self._insert(transaction_id, record), "insert")
        return InsertResult(inserted=inserted_id is not None)

    async def get(self, transaction_id: str) -> SettlementRecord | None:
        return await self._run(self._get(transaction_id), "lookup")

    async def _insert(self, transaction_id: str, record: SettlementRecord) -> str | None:
        async with self.session_factory() as db:
            return await SettlementRepository(db).create_if_not_exists(
                transaction_id=transaction_id,
                merchant_order_id=record.merchant_order_id,
                amount=record.amount,
                currency=record.currency,
                raw_state=record.raw_state,
                payer_msisdn=record.payer_msisdn,
                payload_hash=record.payload_hash,
                recorded_at=record.recorded_at,
            )

    async def _get(self, transaction_id: str) -> SettlementRecord | None:
        async with self.session_factory() as db:
            settlement = await SettlementRepository(db).get_by_transaction_id(transaction_id)
            if settlement is None:
                return None
            return SettlementRecord.model_validate(settlement)

    async def _run(self, operation, action: str):
        try:
            return await asyncio.wait_for(operation, timeout=self.operation_timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.exception("Ledger %s timed out", action)
            raise LedgerUnavailable(f"ledger {action} timed out") from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.exception("Ledger %s DB error", action)
            raise LedgerUnavailable(f"ledger {action} failed") from exc


class InMemoryLedger:
    """Process-local ledger for local runs and tests."""

    def __init__(self):
        self._records: dict[str, SettlementRecord] = {}
        self._lock = threading.Lock()

    async def try_insert(self, transaction_id: str, record: SettlementRecord) -> InsertResult:
        with self._lock:
            if transaction_id in self._records:
                return InsertResult(inserted=False)
            self._records[transaction_id] = record
        return InsertResult(inserted=True)

    async def get(self, transaction_id: str) -> SettlementRecord | None:
        with self._lock:
            return self._records.get(transaction_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
