"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"
    SPLIT = "SPLIT"


class TransactionSource(str, Enum):
    """Which path wrote the row."""
    MANUAL = "MANUAL"
    CSV_IMPORT = "CSV_IMPORT"
    ORDER_WATCHER = "ORDER_WATCHER"
    JOURNAL = "JOURNAL"


class PendingOrderStatus(str, Enum):
    ACTIVE = "ACTIVE"
    FILLED = "FILLED"
    CANCELLED = "CANCELLED"


class PendingOrderType(str, Enum):
    BUY_LIMIT = "BUY_LIMIT"


class NotificationStatus(str, Enum):
    UNREAD = "UNREAD"
    PENDING = "PENDING"
    DISMISSED = "DISMISSED"


class JournalStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    EXECUTED = "EXECUTED"
    CANCELLED = "CANCELLED"


class WatchlistStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ImportRowStatus(str, Enum):
    NEW = "New"
    POTENTIAL_DUPLICATE = "Potential Duplicate"


class ImportResolution(str, Enum):
    KEEP = "KEEP"
    REPLACE = "REPLACE"
