"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Account holders / exchanges
  2xxx: Transactions / lots
  3xxx: Pending orders / notifications
  4xxx: Journal
  5xxx: Watchlist / advice sources / notes / documents
  6xxx: CSV importer
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Account holders / exchanges ---

class InvalidAccountInputError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1000, detail, 400)


class HolderNotFoundError(AppError):
    def __init__(self, holder_id: int) -> None:
        super().__init__(1001, f"Account holder not found: {holder_id}", 404)


class DuplicateHolderError(AppError):
    def __init__(self, name: str) -> None:
        super().__init__(1002, f"An account holder named '{name}' already exists.", 409)


class HolderInUseError(AppError):
    def __init__(self) -> None:
        super().__init__(
            1003,
            "Cannot delete an account holder that is referenced by transactions or other records.",
            400,
        )


class ProtectedHolderError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Cannot delete the primary account holder.", 400)


class ExchangeNotFoundError(AppError):
    def __init__(self, exchange_id: int) -> None:
        super().__init__(1005, f"Exchange not found: {exchange_id}", 404)


class DuplicateExchangeError(AppError):
    def __init__(self, name: str) -> None:
        super().__init__(1006, f"An exchange named '{name}' already exists.", 409)


class ExchangeInUseError(AppError):
    def __init__(self, name: str) -> None:
        super().__init__(
            1007, f"Cannot delete exchange '{name}' because it is used by transactions.", 400
        )


# --- 2xxx: Transactions / lots ---

class InvalidTransactionError(AppError):
    def __init__(self, detail: str = "Invalid input. Ensure all fields are valid.") -> None:
        super().__init__(2001, detail, 400)


class TransactionNotFoundError(AppError):
    def __init__(self, transaction_id: int) -> None:
        super().__init__(2002, f"Transaction not found: {transaction_id}", 404)


class ParentLotNotFoundError(AppError):
    def __init__(self, parent_buy_id: int) -> None:
        super().__init__(
            2003,
            f"Parent buy transaction {parent_buy_id} not found for this account holder.",
            404,
        )


class SellBeforeBuyError(AppError):
    def __init__(self) -> None:
        super().__init__(2004, "Sell date cannot be before the buy date.", 400)


class InsufficientLotQuantityError(AppError):
    def __init__(self, parent_buy_id: int, requested: float, available: float) -> None:
        self.parent_buy_id = parent_buy_id
        self.requested = requested
        self.available = available
        super().__init__(
            2005, "Sell quantity exceeds remaining quantity in the selected lot.", 400
        )


class LotTotalMismatchError(AppError):
    def __init__(self) -> None:
        super().__init__(
            2006,
            "Total quantity specified does not match the sum of quantities entered for individual lots.",
            400,
        )


class LotHasSellsError(AppError):
    def __init__(self) -> None:
        super().__init__(
            2007, "Cannot delete a BUY transaction that has associated SELL transactions.", 400
        )


# --- 3xxx: Pending orders / notifications ---

class InvalidOrderError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3001, detail, 400)


class PendingOrderNotFoundError(AppError):
    def __init__(self, order_id: int) -> None:
        super().__init__(3002, f"Pending order not found: {order_id}", 404)


class NotificationNotFoundError(AppError):
    def __init__(self, notification_id: int) -> None:
        super().__init__(3003, f"Notification not found: {notification_id}", 404)


# --- 4xxx: Journal ---

class InvalidJournalInputError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, detail, 400)


class JournalEntryNotFoundError(AppError):
    def __init__(self, entry_id: int) -> None:
        super().__init__(4002, f"Journal entry not found: {entry_id}", 404)


class JournalEntryExecutedError(AppError):
    def __init__(self, action: str = "modify") -> None:
        super().__init__(4003, f"Cannot {action} an executed journal entry.", 400)


class InvalidJournalTransitionError(AppError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            4004, f"Journal entry cannot move from {current} to {target}.", 400
        )


# --- 5xxx: Watchlist / sources / notes / documents ---

class InvalidResearchInputError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(5001, detail, 400)


class WatchlistItemNotFoundError(AppError):
    def __init__(self, item_id: int) -> None:
        super().__init__(5002, f"Watchlist item not found: {item_id}", 404)


class DuplicateWatchlistItemError(AppError):
    def __init__(self, ticker: str) -> None:
        super().__init__(
            5003, f"{ticker} is already on the watchlist for this source.", 409
        )


class AdviceSourceNotFoundError(AppError):
    def __init__(self, source_id: int) -> None:
        super().__init__(5004, f"Advice source not found: {source_id}", 404)


class AdviceSourceInUseError(AppError):
    def __init__(self) -> None:
        super().__init__(
            5005,
            "Cannot delete an advice source that is linked to journal entries, "
            "watchlist items, transactions, documents or notes.",
            400,
        )


class DuplicateAdviceSourceError(AppError):
    def __init__(self, name: str) -> None:
        super().__init__(5006, f"An advice source named '{name}' already exists.", 409)


class SourceNoteNotFoundError(AppError):
    def __init__(self, note_id: int) -> None:
        super().__init__(5007, f"Note not found: {note_id}", 404)


class DocumentNotFoundError(AppError):
    def __init__(self, document_id: int) -> None:
        super().__init__(5008, f"Document not found: {document_id}", 404)


# --- 6xxx: CSV importer ---

class InvalidImportError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6001, detail, 400)


class ImportSessionNotFoundError(AppError):
    def __init__(self) -> None:
        super().__init__(6002, "Import session expired or not found.", 400)


class UnknownTemplateError(AppError):
    def __init__(self, template: str) -> None:
        super().__init__(6003, f"Unknown brokerage template: {template}", 400)


# --- 9xxx: System ---

class RequestValidationFailedError(AppError):
    def __init__(self, detail: str = "Invalid input. Ensure all fields are valid.") -> None:
        super().__init__(9000, detail, 400)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class SnapshotNotFoundError(AppError):
    def __init__(self, snapshot_id: int) -> None:
        super().__init__(9003, f"Snapshot not found: {snapshot_id}", 404)
