"""004: create pending_orders and notifications

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE pending_orders (
            id                  INTEGER PRIMARY KEY AUTOINCREMENT,
            account_holder_id   INTEGER NOT NULL REFERENCES account_holders(id),
            ticker              TEXT    NOT NULL,
            exchange            TEXT    NOT NULL,
            order_type          TEXT    NOT NULL DEFAULT 'BUY_LIMIT',
            limit_price         REAL    NOT NULL,
            quantity            REAL    NOT NULL,
            created_date        TEXT    NOT NULL,
            expiration_date     TEXT,
            status              TEXT    NOT NULL DEFAULT 'ACTIVE',
            notes               TEXT,
            advice_source_id    INTEGER REFERENCES advice_sources(id),
            created_at          TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT ck_pending_status CHECK (status IN ('ACTIVE', 'FILLED', 'CANCELLED'))
        )
    """)
    op.execute("""
        CREATE TABLE notifications (
            id                  INTEGER PRIMARY KEY AUTOINCREMENT,
            account_holder_id   INTEGER NOT NULL REFERENCES account_holders(id),
            pending_order_id    INTEGER REFERENCES pending_orders(id) ON DELETE SET NULL,
            message             TEXT    NOT NULL,
            status              TEXT    NOT NULL DEFAULT 'UNREAD',
            created_at          TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT ck_notification_status CHECK (status IN ('UNREAD', 'PENDING', 'DISMISSED'))
        )
    """)
    op.execute("""
        CREATE INDEX idx_notifications_holder_status
            ON notifications (account_holder_id, status)
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_notifications_holder_status")
    op.execute("DROP TABLE IF EXISTS notifications")
    op.execute("DROP TABLE IF EXISTS pending_orders")
