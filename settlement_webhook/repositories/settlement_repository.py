from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_webhook.models.settlement import Settlement


class SettlementRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self):
        if self.db.bind.dialect.name == "sqlite":
            return sqlite_insert(Settlement)
        return pg_insert(Settlement)

    async def create_if_not_exists(
        self,
        *,
        transaction_id: str,
        merchant_order_id: str,
        amount: str,
        currency: str,
        raw_state: str,
        payer_msisdn: str | None,
        payload_hash: str,
        recorded_at: datetime,
    ) -> str | None:
        # Use INSERT ... ON CONFLICT DO NOTHING so concurrent deliveries settle once.
        insert_stmt = (
            self._insert()
            .values(
                transaction_id=transaction_id,
                merchant_order_id=merchant_order_id,
                amount=amount,
                currency=currency,
                raw_state=raw_state,
                payer_msisdn=payer_msisdn,
                payload_hash=payload_hash,
                recorded_at=recorded_at,
            )
            .on_conflict_do_nothing(index_elements=["transaction_id"])
            .returning(Settlement.transaction_id)
        )
        inserted_transaction_id = (await self.db.execute(insert_stmt)).scalar_one_or_none()
        if inserted_transaction_id is None:
            return None
        await self.db.commit()
        return inserted_transaction_id

    async def get_by_transaction_id(self, transaction_id: str) -> Settlement | None:
        return (await self.db.execute(
            select(Settlement).where(Settlement.transaction_id == transaction_id)
        )).scalar_one_or_none()
