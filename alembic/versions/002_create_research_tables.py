"""002: create advice sources, journal, watchlist, documents, source notes

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE advice_sources (
            id                  INTEGER PRIMARY KEY AUTOINCREMENT,
            account_holder_id   INTEGER NOT NULL REFERENCES account_holders(id),
            name                TEXT    NOT NULL,
            type                TEXT    NOT NULL,
            description         TEXT,
            url                 TEXT,
            image_path          TEXT,
            details             TEXT,
            is_active           INTEGER NOT NULL DEFAULT 1,
            created_at          TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT uq_advice_sources_holder_name_type UNIQUE (account_holder_id, name, type)
        )
    """)
    op.execute("""
        CREATE TABLE account_source_links (
            account_holder_id   INTEGER NOT NULL REFERENCES account_holders(id) ON DELETE CASCADE,
            advice_source_id    INTEGER NOT NULL REFERENCES advice_sources(id) ON DELETE CASCADE,
            PRIMARY KEY (account_holder_id, advice_source_id)
        )
    """)
    op.execute("""
        CREATE TABLE journal_entries (
            id                      INTEGER PRIMARY KEY AUTOINCREMENT,
            account_holder_id       INTEGER NOT NULL REFERENCES account_holders(id),
            advice_source_id        INTEGER REFERENCES advice_sources(id),
            entry_date              TEXT    NOT NULL,
            ticker                  TEXT    NOT NULL,
            exchange                TEXT    NOT NULL,
            direction               TEXT    NOT NULL,
            quantity                REAL    NOT NULL,
            entry_price             REAL    NOT NULL,
            target_price            REAL,
            target_price_2          REAL,
            stop_loss_price         REAL,
            advice_source_details   TEXT,
            entry_reason            TEXT,
            notes                   TEXT,
            status                  TEXT    NOT NULL DEFAULT 'OPEN',
            exit_date               TEXT,
            exit_price              REAL,
            pnl                     REAL,
            execution_date          TEXT,
            execution_price         REAL,
            linked_trade_id         INTEGER,
            created_at              TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at              TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT ck_journal_status
                CHECK (status IN ('OPEN', 'CLOSED', 'EXECUTED', 'CANCELLED'))
        )
    """)
    op.execute("""
        CREATE INDEX idx_journal_holder_status
            ON journal_entries (account_holder_id, status)
    """)
    op.execute("""
        CREATE TABLE watchlist (
            id                  INTEGER PRIMARY KEY AUTOINCREMENT,
            account_holder_id   INTEGER NOT NULL REFERENCES account_holders(id),
            ticker              TEXT    NOT NULL,
            advice_source_id    INTEGER REFERENCES advice_sources(id),
            journal_entry_id    INTEGER REFERENCES journal_entries(id) ON DELETE SET NULL,
            rec_entry_low       REAL,
            rec_entry_high      REAL,
            rec_tp1             REAL,
            rec_tp2             REAL,
            rec_stop_loss       REAL,
            status              TEXT    NOT NULL DEFAULT 'OPEN',
            created_at          TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT ck_watchlist_status CHECK (status IN ('OPEN', 'CLOSED'))
        )
    """)
    # Only one OPEN idea per holder/ticker/source; archived rows may repeat
    op.execute("""
        CREATE UNIQUE INDEX uq_watchlist_open
            ON watchlist (account_holder_id, ticker, advice_source_id)
            WHERE status = 'OPEN'
    """)
    op.execute("""
        CREATE TABLE documents (
            id                  INTEGER PRIMARY KEY AUTOINCREMENT,
            account_holder_id   INTEGER REFERENCES account_holders(id),
            journal_entry_id    INTEGER REFERENCES journal_entries(id) ON DELETE CASCADE,
            advice_source_id    INTEGER REFERENCES advice_sources(id),
            title               TEXT,
            document_type       TEXT,
            external_link       TEXT    NOT NULL,
            description         TEXT,
            created_at          TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT ck_documents_one_owner CHECK (
                (journal_entry_id IS NOT NULL AND advice_source_id IS NULL)
                OR (journal_entry_id IS NULL AND advice_source_id IS NOT NULL)
            )
        )
    """)
    op.execute("""
        CREATE TABLE source_notes (
            id                  INTEGER PRIMARY KEY AUTOINCREMENT,
            advice_source_id    INTEGER NOT NULL REFERENCES advice_sources(id),
            account_holder_id   INTEGER NOT NULL REFERENCES account_holders(id),
            note_content        TEXT    NOT NULL,
            created_at          TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at          TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS source_notes")
    op.execute("DROP TABLE IF EXISTS documents")
    op.execute("DROP INDEX IF EXISTS uq_watchlist_open")
    op.execute("DROP TABLE IF EXISTS watchlist")
    op.execute("DROP INDEX IF EXISTS idx_journal_holder_status")
    op.execute("DROP TABLE IF EXISTS journal_entries")
    op.execute("DROP TABLE IF EXISTS account_source_links")
    op.execute("DROP TABLE IF EXISTS advice_sources")
