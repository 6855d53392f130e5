"""Repositories for watchlist, advice sources, documents and source notes.

Transaction ownership: the CALLER commits or rolls back.
"""

import json
from collections.abc import Sequence
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.errors import (
    DuplicateAdviceSourceError,
    DuplicateWatchlistItemError,
    InvalidResearchInputError,
)
from src.pt_research.domain.models import AdviceSource, Document, SourceNote, WatchlistItem

# ---------------------------------------------------------------------------
# SQL: watchlist
# ---------------------------------------------------------------------------

_WATCHLIST_COLUMNS = """
    w.id, w.account_holder_id, w.ticker, w.advice_source_id, w.journal_entry_id,
    w.rec_entry_low, w.rec_entry_high, w.rec_tp1, w.rec_tp2, w.rec_stop_loss,
    w.status, w.created_at, s.name AS advice_source_name
"""

_LIST_OPEN_WATCHLIST_SQL = text(f"""
    SELECT {_WATCHLIST_COLUMNS}
    FROM watchlist w LEFT JOIN advice_sources s ON s.id = w.advice_source_id
    WHERE w.account_holder_id = :holder_id AND w.status = 'OPEN'
    ORDER BY w.ticker, w.id
""")

_LIST_OPEN_WATCHLIST_TICKER_SQL = text(f"""
    SELECT {_WATCHLIST_COLUMNS}
    FROM watchlist w LEFT JOIN advice_sources s ON s.id = w.advice_source_id
    WHERE w.account_holder_id = :holder_id AND w.ticker = :ticker AND w.status = 'OPEN'
    ORDER BY w.id
""")

_GET_WATCHLIST_SQL = text(f"""
    SELECT {_WATCHLIST_COLUMNS}
    FROM watchlist w LEFT JOIN advice_sources s ON s.id = w.advice_source_id
    WHERE w.id = :id
""")

_INSERT_WATCHLIST_SQL = text("""
    INSERT INTO watchlist (
        account_holder_id, ticker, advice_source_id, journal_entry_id,
        rec_entry_low, rec_entry_high, rec_tp1, rec_tp2, rec_stop_loss
    ) VALUES (
        :account_holder_id, :ticker, :advice_source_id, :journal_entry_id,
        :rec_entry_low, :rec_entry_high, :rec_tp1, :rec_tp2, :rec_stop_loss
    )
    RETURNING id
""")

_ARCHIVE_WATCHLIST_SQL = text("UPDATE watchlist SET status = 'CLOSED' WHERE id = :id")

_ARCHIVE_FOR_SOURCES_SQL = text("""
    UPDATE watchlist SET status = 'CLOSED'
    WHERE account_holder_id = :holder_id
      AND ticker = :ticker
      AND status = 'OPEN'
      AND advice_source_id IN :source_ids
""").bindparams(bindparam("source_ids", expanding=True))

# ---------------------------------------------------------------------------
# SQL: advice sources
# ---------------------------------------------------------------------------

_SOURCE_COLUMNS = """
    id, account_holder_id, name, type, description, url, image_path,
    details, is_active, created_at
"""

_LIST_SOURCES_SQL = text(f"""
    SELECT {_SOURCE_COLUMNS} FROM advice_sources
    WHERE (:holder_id IS NULL OR account_holder_id = :holder_id)
      AND (:include_inactive = 1 OR is_active = 1)
    ORDER BY name
""")

_GET_SOURCE_SQL = text(f"SELECT {_SOURCE_COLUMNS} FROM advice_sources WHERE id = :id")

_INSERT_SOURCE_SQL = text(f"""
    INSERT INTO advice_sources (
        account_holder_id, name, type, description, url, image_path, details, is_active
    ) VALUES (
        :account_holder_id, :name, :type, :description, :url, :image_path, :details, :is_active
    )
    RETURNING {_SOURCE_COLUMNS}
""")

_SET_SOURCE_ACTIVE_SQL = text(f"""
    UPDATE advice_sources SET is_active = :is_active WHERE id = :id
    RETURNING {_SOURCE_COLUMNS}
""")

_COUNT_SOURCE_LINKS_SQL = text("""
    SELECT
        (SELECT COUNT(*) FROM journal_entries WHERE advice_source_id = :id)
      + (SELECT COUNT(*) FROM watchlist       WHERE advice_source_id = :id)
      + (SELECT COUNT(*) FROM transactions    WHERE advice_source_id = :id)
      + (SELECT COUNT(*) FROM documents       WHERE advice_source_id = :id)
      + (SELECT COUNT(*) FROM source_notes    WHERE advice_source_id = :id)
      + (SELECT COUNT(*) FROM pending_orders  WHERE advice_source_id = :id)
""")

_DELETE_SOURCE_SQL = text("DELETE FROM advice_sources WHERE id = :id")

_SOURCE_JOURNAL_SQL = text("""
    SELECT id, account_holder_id, entry_date, ticker, exchange, direction, quantity,
           entry_price, target_price, target_price_2, stop_loss_price, status,
           exit_date, exit_price, pnl, execution_date, execution_price,
           linked_trade_id, notes, entry_reason
    FROM journal_entries
    WHERE advice_source_id = :id
      AND (:holder_id IS NULL OR account_holder_id = :holder_id)
    ORDER BY entry_date DESC, id DESC
""")

# Directly linked ideas plus ideas spawned from this source's journal entries
_SOURCE_WATCHLIST_SQL = text(f"""
    SELECT {_WATCHLIST_COLUMNS}
    FROM watchlist w LEFT JOIN advice_sources s ON s.id = w.advice_source_id
    WHERE w.status = 'OPEN'
      AND (:holder_id IS NULL OR w.account_holder_id = :holder_id)
      AND (w.advice_source_id = :id
           OR w.journal_entry_id IN (SELECT id FROM journal_entries WHERE advice_source_id = :id))
    ORDER BY w.ticker, w.id
""")

_SOURCE_TRANSACTIONS_SQL = text("""
    SELECT t.id, t.ticker, t.exchange, t.transaction_type, t.quantity, t.price,
           t.transaction_date, t.quantity_remaining, t.parent_buy_id,
           t.linked_journal_id, t.account_holder_id, p.price AS parent_buy_price
    FROM transactions t LEFT JOIN transactions p ON p.id = t.parent_buy_id
    WHERE (:holder_id IS NULL OR t.account_holder_id = :holder_id)
      AND (t.advice_source_id = :id
           OR t.linked_journal_id IN (SELECT id FROM journal_entries WHERE advice_source_id = :id))
    ORDER BY t.transaction_date DESC, t.id DESC
""")

# ---------------------------------------------------------------------------
# SQL: documents
# ---------------------------------------------------------------------------

_DOCUMENT_COLUMNS = """
    id, account_holder_id, journal_entry_id, advice_source_id, title,
    document_type, external_link, description, created_at
"""

_INSERT_DOCUMENT_SQL = text(f"""
    INSERT INTO documents (
        account_holder_id, journal_entry_id, advice_source_id, title,
        document_type, external_link, description
    ) VALUES (
        :account_holder_id, :journal_entry_id, :advice_source_id, :title,
        :document_type, :external_link, :description
    )
    RETURNING {_DOCUMENT_COLUMNS}
""")

_DELETE_DOCUMENT_SQL = text("DELETE FROM documents WHERE id = :id")

_SOURCE_DOCUMENTS_SQL = text(f"""
    SELECT {_DOCUMENT_COLUMNS} FROM documents
    WHERE (:holder_id IS NULL OR account_holder_id IS NULL OR account_holder_id = :holder_id)
      AND (advice_source_id = :id
           OR journal_entry_id IN (SELECT id FROM journal_entries WHERE advice_source_id = :id))
    ORDER BY created_at DESC, id DESC
""")

_JOURNAL_DOCUMENTS_SQL = text(f"""
    SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE journal_entry_id = :id ORDER BY id
""")

_DELETE_JOURNAL_DOCUMENTS_SQL = text("DELETE FROM documents WHERE journal_entry_id = :id")

# ---------------------------------------------------------------------------
# SQL: source notes
# ---------------------------------------------------------------------------

_NOTE_COLUMNS = "id, advice_source_id, account_holder_id, note_content, created_at, updated_at"

_LIST_NOTES_SQL = text(f"""
    SELECT {_NOTE_COLUMNS} FROM source_notes
    WHERE advice_source_id = :source_id
      AND (:holder_id IS NULL OR account_holder_id = :holder_id)
    ORDER BY created_at DESC, id DESC
""")

_INSERT_NOTE_SQL = text(f"""
    INSERT INTO source_notes (advice_source_id, account_holder_id, note_content)
    VALUES (:source_id, :holder_id, :content)
    RETURNING {_NOTE_COLUMNS}
""")

_UPDATE_NOTE_SQL = text(f"""
    UPDATE source_notes
    SET note_content = :content, updated_at = CURRENT_TIMESTAMP
    WHERE id = :id AND advice_source_id = :source_id AND account_holder_id = :holder_id
    RETURNING {_NOTE_COLUMNS}
""")

_DELETE_NOTE_SQL = text("""
    DELETE FROM source_notes
    WHERE id = :id AND advice_source_id = :source_id AND account_holder_id = :holder_id
""")


def _row_to_watchlist(row: object) -> WatchlistItem:
    return WatchlistItem(
        id=row.id,  # type: ignore[attr-defined]
        account_holder_id=row.account_holder_id,  # type: ignore[attr-defined]
        ticker=row.ticker,  # type: ignore[attr-defined]
        advice_source_id=row.advice_source_id,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        journal_entry_id=row.journal_entry_id,  # type: ignore[attr-defined]
        rec_entry_low=row.rec_entry_low,  # type: ignore[attr-defined]
        rec_entry_high=row.rec_entry_high,  # type: ignore[attr-defined]
        rec_tp1=row.rec_tp1,  # type: ignore[attr-defined]
        rec_tp2=row.rec_tp2,  # type: ignore[attr-defined]
        rec_stop_loss=row.rec_stop_loss,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        advice_source_name=row.advice_source_name,  # type: ignore[attr-defined]
    )


def _row_to_source(row: object) -> AdviceSource:
    raw_details = row.details  # type: ignore[attr-defined]
    try:
        details = json.loads(raw_details) if raw_details else None
    except ValueError:
        details = {"raw": raw_details}
    return AdviceSource(
        id=row.id,  # type: ignore[attr-defined]
        account_holder_id=row.account_holder_id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        url=row.url,  # type: ignore[attr-defined]
        image_path=row.image_path,  # type: ignore[attr-defined]
        details=details,
        is_active=bool(row.is_active),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_document(row: object) -> Document:
    return Document(
        id=row.id,  # type: ignore[attr-defined]
        external_link=row.external_link,  # type: ignore[attr-defined]
        account_holder_id=row.account_holder_id,  # type: ignore[attr-defined]
        journal_entry_id=row.journal_entry_id,  # type: ignore[attr-defined]
        advice_source_id=row.advice_source_id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        document_type=row.document_type,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_note(row: object) -> SourceNote:
    return SourceNote(
        id=row.id,  # type: ignore[attr-defined]
        advice_source_id=row.advice_source_id,  # type: ignore[attr-defined]
        account_holder_id=row.account_holder_id,  # type: ignore[attr-defined]
        note_content=row.note_content,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _encode_details(values: dict[str, Any]) -> dict[str, Any]:
    encoded = dict(values)
    if "details" in encoded:
        details = encoded["details"]
        encoded["details"] = json.dumps(details) if details is not None else None
    if "is_active" in encoded:
        encoded["is_active"] = 1 if encoded["is_active"] else 0
    return encoded


class WatchlistRepository:
    async def list_open(self, db: AsyncSession, holder_id: int) -> list[WatchlistItem]:
        result = await db.execute(_LIST_OPEN_WATCHLIST_SQL, {"holder_id": holder_id})
        return [_row_to_watchlist(r) for r in result.fetchall()]

    async def list_open_for_ticker(
        self, db: AsyncSession, holder_id: int, ticker: str
    ) -> list[WatchlistItem]:
        result = await db.execute(
            _LIST_OPEN_WATCHLIST_TICKER_SQL, {"holder_id": holder_id, "ticker": ticker}
        )
        return [_row_to_watchlist(r) for r in result.fetchall()]

    async def insert(self, db: AsyncSession, values: dict[str, Any]) -> WatchlistItem:
        try:
            new_id = (await db.execute(_INSERT_WATCHLIST_SQL, values)).scalar_one()
        except IntegrityError:
            raise DuplicateWatchlistItemError(values["ticker"]) from None
        row = (await db.execute(_GET_WATCHLIST_SQL, {"id": new_id})).fetchone()
        return _row_to_watchlist(row)

    async def archive(self, db: AsyncSession, item_id: int) -> bool:
        result = await db.execute(_ARCHIVE_WATCHLIST_SQL, {"id": item_id})
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def archive_for_sources(
        self, db: AsyncSession, holder_id: int, ticker: str, source_ids: Sequence[int]
    ) -> int:
        if not source_ids:
            return 0
        result = await db.execute(
            _ARCHIVE_FOR_SOURCES_SQL,
            {"holder_id": holder_id, "ticker": ticker, "source_ids": list(source_ids)},
        )
        return result.rowcount  # type: ignore[attr-defined,no-any-return]


class AdviceSourceRepository:
    async def list_sources(
        self, db: AsyncSession, holder_id: int | None, include_inactive: bool
    ) -> list[AdviceSource]:
        result = await db.execute(
            _LIST_SOURCES_SQL,
            {"holder_id": holder_id, "include_inactive": 1 if include_inactive else 0},
        )
        return [_row_to_source(r) for r in result.fetchall()]

    async def get(self, db: AsyncSession, source_id: int) -> AdviceSource | None:
        row = (await db.execute(_GET_SOURCE_SQL, {"id": source_id})).fetchone()
        return _row_to_source(row) if row is not None else None

    async def insert(self, db: AsyncSession, values: dict[str, Any]) -> AdviceSource:
        try:
            row = (await db.execute(_INSERT_SOURCE_SQL, _encode_details(values))).fetchone()
        except IntegrityError:
            raise DuplicateAdviceSourceError(values["name"]) from None
        return _row_to_source(row)

    async def update(
        self, db: AsyncSession, source_id: int, values: dict[str, Any]
    ) -> AdviceSource | None:
        allowed = ("name", "type", "description", "url", "image_path", "details", "is_active")
        fields = _encode_details({k: v for k, v in values.items() if k in allowed})
        if not fields:
            return await self.get(db, source_id)
        assignments = ", ".join(f"{col} = :{col}" for col in fields)
        stmt = text(
            f"UPDATE advice_sources SET {assignments} WHERE id = :id RETURNING {_SOURCE_COLUMNS}"
        )
        try:
            row = (await db.execute(stmt, {**fields, "id": source_id})).fetchone()
        except IntegrityError:
            raise DuplicateAdviceSourceError(str(values.get("name"))) from None
        return _row_to_source(row) if row is not None else None

    async def set_active(
        self, db: AsyncSession, source_id: int, is_active: bool
    ) -> AdviceSource | None:
        row = (
            await db.execute(
                _SET_SOURCE_ACTIVE_SQL, {"id": source_id, "is_active": 1 if is_active else 0}
            )
        ).fetchone()
        return _row_to_source(row) if row is not None else None

    async def count_links(self, db: AsyncSession, source_id: int) -> int:
        return int((await db.execute(_COUNT_SOURCE_LINKS_SQL, {"id": source_id})).scalar_one())

    async def delete(self, db: AsyncSession, source_id: int) -> None:
        await db.execute(_DELETE_SOURCE_SQL, {"id": source_id})

    async def list_journal_entries(
        self, db: AsyncSession, source_id: int, holder_id: int | None
    ) -> list[dict[str, Any]]:
        result = await db.execute(_SOURCE_JOURNAL_SQL, {"id": source_id, "holder_id": holder_id})
        return [dict(r._mapping) for r in result.fetchall()]

    async def list_watchlist_items(
        self, db: AsyncSession, source_id: int, holder_id: int | None
    ) -> list[WatchlistItem]:
        result = await db.execute(
            _SOURCE_WATCHLIST_SQL, {"id": source_id, "holder_id": holder_id}
        )
        return [_row_to_watchlist(r) for r in result.fetchall()]

    async def list_linked_transactions(
        self, db: AsyncSession, source_id: int, holder_id: int | None
    ) -> list[dict[str, Any]]:
        result = await db.execute(
            _SOURCE_TRANSACTIONS_SQL, {"id": source_id, "holder_id": holder_id}
        )
        return [dict(r._mapping) for r in result.fetchall()]


class DocumentRepository:
    async def insert(self, db: AsyncSession, values: dict[str, Any]) -> Document:
        try:
            row = (await db.execute(_INSERT_DOCUMENT_SQL, values)).fetchone()
        except IntegrityError:
            raise InvalidResearchInputError(
                "The account holder or record this document is attached to does not exist."
            ) from None
        return _row_to_document(row)

    async def delete(self, db: AsyncSession, document_id: int) -> bool:
        result = await db.execute(_DELETE_DOCUMENT_SQL, {"id": document_id})
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def list_for_source(
        self, db: AsyncSession, source_id: int, holder_id: int | None
    ) -> list[Document]:
        result = await db.execute(
            _SOURCE_DOCUMENTS_SQL, {"id": source_id, "holder_id": holder_id}
        )
        return [_row_to_document(r) for r in result.fetchall()]

    async def list_for_journal(self, db: AsyncSession, entry_id: int) -> list[Document]:
        result = await db.execute(_JOURNAL_DOCUMENTS_SQL, {"id": entry_id})
        return [_row_to_document(r) for r in result.fetchall()]

    async def delete_for_journal(self, db: AsyncSession, entry_id: int) -> None:
        await db.execute(_DELETE_JOURNAL_DOCUMENTS_SQL, {"id": entry_id})


class SourceNoteRepository:
    async def list_for_source(
        self, db: AsyncSession, source_id: int, holder_id: int | None
    ) -> list[SourceNote]:
        result = await db.execute(
            _LIST_NOTES_SQL, {"source_id": source_id, "holder_id": holder_id}
        )
        return [_row_to_note(r) for r in result.fetchall()]

    async def insert(
        self, db: AsyncSession, source_id: int, holder_id: int, content: str
    ) -> SourceNote:
        try:
            row = (
                await db.execute(
                    _INSERT_NOTE_SQL,
                    {"source_id": source_id, "holder_id": holder_id, "content": content},
                )
            ).fetchone()
        except IntegrityError:
            raise InvalidResearchInputError(
                f"Account holder does not exist: {holder_id}"
            ) from None
        return _row_to_note(row)

    async def update(
        self, db: AsyncSession, note_id: int, source_id: int, holder_id: int, content: str
    ) -> SourceNote | None:
        row = (
            await db.execute(
                _UPDATE_NOTE_SQL,
                {"id": note_id, "source_id": source_id, "holder_id": holder_id,
                 "content": content},
            )
        ).fetchone()
        return _row_to_note(row) if row is not None else None

    async def delete(
        self, db: AsyncSession, note_id: int, source_id: int, holder_id: int
    ) -> bool:
        result = await db.execute(
            _DELETE_NOTE_SQL, {"id": note_id, "source_id": source_id, "holder_id": holder_id}
        )
        return result.rowcount > 0  # type: ignore[attr-defined]
