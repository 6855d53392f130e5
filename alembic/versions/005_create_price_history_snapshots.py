"""005: create historical_prices and account_snapshots

Revision ID: 005
Revises: 004
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE historical_prices (
            ticker      TEXT    NOT NULL,
            date        TEXT    NOT NULL,
            close_price REAL    NOT NULL,
            PRIMARY KEY (ticker, date)
        )
    """)
    op.execute("""
        CREATE TABLE account_snapshots (
            id                  INTEGER PRIMARY KEY AUTOINCREMENT,
            account_holder_id   INTEGER NOT NULL REFERENCES account_holders(id),
            exchange            TEXT    NOT NULL,
            snapshot_date       TEXT    NOT NULL,
            value               REAL    NOT NULL,
            notes               TEXT,
            created_at          TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT uq_snapshots_holder_exchange_date
                UNIQUE (account_holder_id, exchange, snapshot_date)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS account_snapshots")
    op.execute("DROP TABLE IF EXISTS historical_prices")
