"""Integration tests for the ledger endpoints (temporary SQLite database)."""

import pytest
from httpx import AsyncClient

from tests.integration.fakes import FakePriceService

pytestmark = pytest.mark.asyncio(loop_scope="session")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _buy(client: AsyncClient, holder_id: int, ticker: str = "AAPL", quantity: float = 10,
               price: float = 100, date: str = "2024-01-02", **extra: object) -> dict:
    resp = await client.post("/api/transactions", json={
        "transaction_type": "BUY", "ticker": ticker, "exchange": "Fidelity",
        "quantity": quantity, "price": price, "transaction_date": date,
        "account_holder_id": holder_id, **extra,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["transactions"][0]


async def _sell(client: AsyncClient, holder_id: int, parent_id: int, quantity: float,
                price: float = 120, date: str = "2024-02-01", ticker: str = "AAPL"):
    return await client.post("/api/transactions", json={
        "transaction_type": "SELL", "ticker": ticker, "exchange": "Fidelity",
        "quantity": quantity, "price": price, "transaction_date": date,
        "account_holder_id": holder_id, "parent_buy_id": parent_id,
    })


async def _list(client: AsyncClient, holder_id: int) -> list[dict]:
    resp = await client.get("/api/transactions", params={"holder": holder_id})
    assert resp.status_code == 200
    return resp.json()["data"]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestBuyAndSell:
    async def test_sell_realizes_pl(self, client: AsyncClient, holder_id: int) -> None:
        lot = await _buy(client, holder_id)
        resp = await _sell(client, holder_id, lot["id"], 8)

        assert resp.status_code == 201
        body = resp.json()
        assert body["code"] == 0
        assert body["data"]["realized_pl"] == pytest.approx(160)
        rows = {r["id"]: r for r in await _list(client, holder_id)}
        assert rows[lot["id"]]["quantity_remaining"] == pytest.approx(2)

    async def test_oversell_rejected_without_rows(self, client: AsyncClient,
                                                  holder_id: int) -> None:
        lot = await _buy(client, holder_id, quantity=5)
        before = await _list(client, holder_id)

        resp = await _sell(client, holder_id, lot["id"], 6)

        assert resp.status_code == 400
        assert resp.json()["code"] == 2005
        assert await _list(client, holder_id) == before

    async def test_sell_before_buy_rejected(self, client: AsyncClient, holder_id: int) -> None:
        lot = await _buy(client, holder_id, date="2024-03-01")
        resp = await _sell(client, holder_id, lot["id"], 1, date="2024-02-28")
        assert resp.status_code == 400

    async def test_multi_lot_sell(self, client: AsyncClient, holder_id: int) -> None:
        first = await _buy(client, holder_id, quantity=4, price=100)
        second = await _buy(client, holder_id, quantity=6, price=110, date="2024-01-03")

        resp = await client.post("/api/transactions", json={
            "transaction_type": "SELL", "ticker": "AAPL", "exchange": "Fidelity",
            "quantity": 7, "price": 120, "transaction_date": "2024-02-01",
            "account_holder_id": holder_id,
            "lots": [{"parent_buy_id": first["id"], "quantity_to_sell": 4},
                     {"parent_buy_id": second["id"], "quantity_to_sell": 3}],
        })

        assert resp.status_code == 201
        assert len(resp.json()["data"]["transactions"]) == 2
        assert resp.json()["data"]["realized_pl"] == pytest.approx(4 * 20 + 3 * 10)

    async def test_lot_total_mismatch(self, client: AsyncClient, holder_id: int) -> None:
        lot = await _buy(client, holder_id)
        resp = await client.post("/api/transactions", json={
            "transaction_type": "SELL", "ticker": "AAPL", "exchange": "Fidelity",
            "quantity": 5, "price": 120, "transaction_date": "2024-02-01",
            "account_holder_id": holder_id,
            "lots": [{"parent_buy_id": lot["id"], "quantity_to_sell": 4}],
        })
        assert resp.status_code == 400

    async def test_invalid_body_uses_envelope(self, client: AsyncClient) -> None:
        resp = await client.post("/api/transactions", json={"quantity": "lots"})
        assert resp.status_code == 400
        assert resp.json()["code"] == 9000
        assert resp.json()["data"] is None

    async def test_unknown_holder_rejected(self, client: AsyncClient) -> None:
        resp = await client.post("/api/transactions", json={
            "transaction_type": "BUY", "ticker": "AAPL", "exchange": "Fidelity",
            "quantity": 1, "price": 100, "transaction_date": "2024-01-02",
            "account_holder_id": 999999,
        })
        assert resp.status_code == 400
        assert resp.json()["code"] == 2001

    async def test_unknown_advice_source_rejected(self, client: AsyncClient,
                                                 holder_id: int) -> None:
        resp = await client.post("/api/transactions", json={
            "transaction_type": "BUY", "ticker": "AAPL", "exchange": "Fidelity",
            "quantity": 1, "price": 100, "transaction_date": "2024-01-02",
            "account_holder_id": holder_id, "advice_source_id": 999999,
        })
        assert resp.status_code == 400
        assert resp.json()["code"] == 2001
        assert await _list(client, holder_id) == []


class TestDelete:
    async def test_deleting_sell_restores_parent(self, client: AsyncClient,
                                                 holder_id: int) -> None:
        lot = await _buy(client, holder_id)
        sell = (await _sell(client, holder_id, lot["id"], 3)).json()["data"]["transactions"][0]

        resp = await client.delete(f"/api/transactions/{sell['id']}")

        assert resp.status_code == 200
        rows = {r["id"]: r for r in await _list(client, holder_id)}
        assert sell["id"] not in rows
        assert rows[lot["id"]]["quantity_remaining"] == pytest.approx(10)

    async def test_buy_with_sells_cannot_be_deleted(self, client: AsyncClient,
                                                    holder_id: int) -> None:
        lot = await _buy(client, holder_id)
        await _sell(client, holder_id, lot["id"], 1)
        resp = await client.delete(f"/api/transactions/{lot['id']}")
        assert resp.status_code == 400

    async def test_missing_transaction(self, client: AsyncClient) -> None:
        resp = await client.delete("/api/transactions/999999")
        assert resp.status_code == 404


class TestUpdate:
    async def test_editing_sell_adjusts_parent(self, client: AsyncClient,
                                               holder_id: int) -> None:
        lot = await _buy(client, holder_id)
        sell = (await _sell(client, holder_id, lot["id"], 3)).json()["data"]["transactions"][0]

        resp = await client.put(f"/api/transactions/{sell['id']}", json={
            "ticker": "AAPL", "exchange": "Fidelity", "quantity": 5, "price": 120,
            "transaction_date": "2024-02-01", "account_holder_id": holder_id,
        })

        assert resp.status_code == 200
        rows = {r["id"]: r for r in await _list(client, holder_id)}
        assert rows[lot["id"]]["quantity_remaining"] == pytest.approx(5)

    async def test_untouched_buy_moves_remaining(self, client: AsyncClient,
                                                 holder_id: int) -> None:
        lot = await _buy(client, holder_id)
        resp = await client.put(f"/api/transactions/{lot['id']}", json={
            "ticker": "AAPL", "exchange": "Fidelity", "quantity": 12, "price": 100,
            "transaction_date": "2024-01-02", "account_holder_id": holder_id,
        })
        data = resp.json()["data"]
        assert data["original_quantity"] == pytest.approx(12)
        assert data["quantity_remaining"] == pytest.approx(12)

    async def test_sold_lot_cannot_shrink_below_sold(self, client: AsyncClient,
                                                     holder_id: int) -> None:
        lot = await _buy(client, holder_id)
        sell = (await _sell(client, holder_id, lot["id"], 8)).json()["data"]["transactions"][0]

        resp = await client.put(f"/api/transactions/{lot['id']}", json={
            "ticker": "AAPL", "exchange": "Fidelity", "quantity": 5, "price": 100,
            "transaction_date": "2024-01-02", "account_holder_id": holder_id,
        })
        assert resp.status_code == 400

        assert (await client.delete(f"/api/transactions/{sell['id']}")).status_code == 200
        rows = {r["id"]: r for r in await _list(client, holder_id)}
        assert rows[lot["id"]]["original_quantity"] == pytest.approx(10)
        assert rows[lot["id"]]["quantity_remaining"] == pytest.approx(10)

    async def test_partly_sold_lot_shrinks_remaining(self, client: AsyncClient,
                                                     holder_id: int) -> None:
        lot = await _buy(client, holder_id)
        await _sell(client, holder_id, lot["id"], 4)

        resp = await client.put(f"/api/transactions/{lot['id']}", json={
            "ticker": "AAPL", "exchange": "Fidelity", "quantity": 8, "price": 100,
            "transaction_date": "2024-01-02", "account_holder_id": holder_id,
        })

        data = resp.json()["data"]
        assert data["original_quantity"] == pytest.approx(8)
        assert data["quantity_remaining"] == pytest.approx(4)


class TestSplit:
    async def test_two_for_one(self, client: AsyncClient, holder_id: int) -> None:
        lot = await _buy(client, holder_id, ticker="NVDA", quantity=10, price=800)

        resp = await client.post("/api/transactions/split", json={
            "ticker": "NVDA", "split_from": 1, "split_to": 2, "split_date": "2024-06-10",
            "account_holder_id": holder_id,
        })

        assert resp.status_code == 201
        assert resp.json()["data"]["lots_adjusted"] == 1
        rows = {r["id"]: r for r in await _list(client, holder_id)}
        assert rows[lot["id"]]["quantity_remaining"] == pytest.approx(20)
        assert rows[lot["id"]]["price"] == pytest.approx(400)


class TestEodCaptureOnClose:
    async def test_selling_last_shares_stores_close(self, client: AsyncClient, holder_id: int,
                                                    fake_prices: FakePriceService) -> None:
        fake_prices.quotes["ZZEOD"] = 42.5
        lot = await _buy(client, holder_id, ticker="ZZEOD", quantity=2, price=40)

        resp = await _sell(client, holder_id, lot["id"], 2, price=42, date="2024-04-05",
                           ticker="ZZEOD")
        assert resp.status_code == 201

        batch = await client.post("/api/utility/prices/batch",
                                  json={"tickers": ["ZZEOD"], "date": "2024-04-05"})
        assert batch.json()["data"] == {"ZZEOD": 42.5}
        assert (["ZZEOD"], 8) in fake_prices.calls
