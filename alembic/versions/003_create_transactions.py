"""003: create transactions (lots)

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transactions (
            id                      INTEGER PRIMARY KEY AUTOINCREMENT,
            ticker                  TEXT    NOT NULL,
            exchange                TEXT    NOT NULL,
            transaction_type        TEXT    NOT NULL,
            quantity                REAL    NOT NULL,
            price                   REAL    NOT NULL,
            transaction_date        TEXT    NOT NULL,
            original_quantity       REAL,
            quantity_remaining      REAL,
            parent_buy_id           INTEGER REFERENCES transactions(id),
            limit_price_up          REAL,
            limit_up_expiration     TEXT,
            limit_price_down        REAL,
            limit_down_expiration   TEXT,
            limit_price_up_2        REAL,
            limit_up_expiration_2   TEXT,
            account_holder_id       INTEGER NOT NULL REFERENCES account_holders(id),
            advice_source_id        INTEGER REFERENCES advice_sources(id),
            linked_journal_id       INTEGER REFERENCES journal_entries(id),
            source                  TEXT    NOT NULL DEFAULT 'MANUAL',
            created_at              TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT ck_tx_type
                CHECK (transaction_type IN ('BUY', 'SELL', 'DIVIDEND', 'SPLIT')),
            CONSTRAINT ck_tx_remaining_range CHECK (
                transaction_type <> 'BUY'
                OR (quantity_remaining >= -0.00001
                    AND quantity_remaining <= original_quantity + 0.00001)
            )
        )
    """)
    op.execute("""
        CREATE INDEX idx_tx_holder_date
            ON transactions (account_holder_id, transaction_date)
    """)
    op.execute("CREATE INDEX idx_tx_ticker ON transactions (ticker)")
    op.execute("CREATE INDEX idx_tx_parent ON transactions (parent_buy_id)")


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_tx_parent")
    op.execute("DROP INDEX IF EXISTS idx_tx_ticker")
    op.execute("DROP INDEX IF EXISTS idx_tx_holder_date")
    op.execute("DROP TABLE IF EXISTS transactions")
