"""create settlements table

Revision ID: 20261016_0001
Revises:
Create Date: 2026-10-16 00:00:00.000000
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261016_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "settlements",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("transaction_id", sa.String(length=128), nullable=False),
        sa.Column("merchant_order_id", sa.String(length=128), nullable=False),
        sa.Column("amount", sa.String(length=64), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("raw_state", sa.String(length=32), nullable=False),
        sa.Column("payer_msisdn", sa.String(length=32), nullable=True),
        sa.Column("payload_hash", sa.String(length=64), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    # The unique index is what makes ON CONFLICT (transaction_id) DO NOTHING settle once.
    op.create_index("ix_settlements_transaction_id", "settlements", ["transaction_id"], unique=True)
    op.create_index("ix_settlements_merchant_order_id", "settlements", ["merchant_order_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_settlements_merchant_order_id", table_name="settlements")
    op.drop_index("ix_settlements_transaction_id", table_name="settlements")
    op.drop_table("settlements")
