"""Pydantic schemas for pt_importer API."""

from pydantic import BaseModel

from src.pt_importer.domain.models import ImportRow, ParsedTrade


class CsvTrade(BaseModel):
    date: str
    ticker: str
    type: str
    quantity: float
    price: float
    exchange: str
    status: str
    csvRowIndex: int

    @classmethod
    def from_row(cls, row: ImportRow) -> "CsvTrade":
        t: ParsedTrade = row.trade
        return cls(
            date=t.date, ticker=t.ticker, type=t.type, quantity=t.quantity,
            price=t.price, exchange=t.exchange, status=row.status, csvRowIndex=row.csv_index,
        )


class Conflict(BaseModel):
    csvData: CsvTrade
    manualTransaction: dict
    csvRowIndex: int


class ReconciliationData(BaseModel):
    newTransactions: list[CsvTrade]
    conflicts: list[Conflict]


class UploadResponse(BaseModel):
    importSessionId: str
    reconciliationData: ReconciliationData


class Resolution(BaseModel):
    csvIndex: int
    resolution: str = "KEEP"


class ImportRequest(BaseModel):
    sessionId: str | None = None
    resolutions: list[Resolution] = []


class ImportResult(BaseModel):
    created: int = 0
    replaced: int = 0
    skipped: int = 0
    notifications: int = 0
