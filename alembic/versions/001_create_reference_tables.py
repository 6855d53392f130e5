"""001: create account_holders and exchanges

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE account_holders (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            name        TEXT    NOT NULL,
            created_at  TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT uq_account_holders_name UNIQUE (name)
        )
    """)
    op.execute("INSERT INTO account_holders (id, name) VALUES (1, 'Primary')")
    op.execute("""
        CREATE TABLE exchanges (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            name        TEXT    NOT NULL,
            created_at  TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT uq_exchanges_name UNIQUE (name)
        )
    """)
    op.execute("""
        INSERT INTO exchanges (name)
        VALUES ('Fidelity'), ('Robinhood'), ('E-Trade'), ('Other')
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS exchanges")
    op.execute("DROP TABLE IF EXISTS account_holders")
