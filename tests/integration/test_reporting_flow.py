"""Integration tests for reporting and utility endpoints."""

import pytest
from httpx import AsyncClient

from tests.integration.fakes import FakePriceService

pytestmark = pytest.mark.asyncio(loop_scope="session")


async def _tx(client: AsyncClient, holder_id: int, **body) -> dict:
    payload = {"exchange": "Fidelity", "account_holder_id": holder_id}
    payload.update(body)
    resp = await client.post("/api/transactions", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["transactions"][0]


class TestReporting:
    async def test_daily_performance_uses_live_quote(self, client: AsyncClient, holder_id: int,
                                                     fake_prices: FakePriceService) -> None:
        fake_prices.quotes["RPTA"] = 12.0
        await _tx(client, holder_id, transaction_type="BUY", ticker="RPTA", quantity=10,
                  price=10, transaction_date="2024-05-01")

        resp = await client.get("/api/reporting/daily_performance/2024-05-01",
                                params={"holder": holder_id})

        data = resp.json()["data"]
        assert data["currentValue"] == pytest.approx(120)
        assert data["previousValue"] == pytest.approx(0)
        assert data["dailyChange"] == pytest.approx(120)
        assert fake_prices.calls[-1] == (["RPTA"], 3)

    async def test_failed_quote_falls_back_to_cost(self, client: AsyncClient, holder_id: int,
                                                   fake_prices: FakePriceService) -> None:
        await _tx(client, holder_id, transaction_type="BUY", ticker="RPTB", quantity=4,
                  price=25, transaction_date="2024-05-01")

        resp = await client.get("/api/reporting/daily_performance/2024-05-02",
                                params={"holder": holder_id})

        data = resp.json()["data"]
        assert data["currentValue"] == pytest.approx(100)
        assert data["dailyChange"] == pytest.approx(0)

    async def test_invalid_date(self, client: AsyncClient) -> None:
        resp = await client.get("/api/reporting/daily_performance/not-a-date")
        assert resp.status_code == 400

    async def test_positions_and_realized_pl(self, client: AsyncClient, holder_id: int) -> None:
        lot = await _tx(client, holder_id, transaction_type="BUY", ticker="RPTC", quantity=10,
                        price=10, transaction_date="2024-05-01", exchange="Robinhood")
        await _tx(client, holder_id, transaction_type="SELL", ticker="RPTC", quantity=4,
                  price=15, transaction_date="2024-05-03", exchange="Robinhood",
                  parent_buy_id=lot["id"])

        positions = (await client.get("/api/reporting/positions/2024-05-03",
                                      params={"holder": holder_id})).json()["data"]
        sell = positions["dailyTransactions"][0]
        assert sell["transaction_type"] == "SELL"
        assert sell["realizedPL"] == pytest.approx(20)
        assert positions["endOfDayPositions"][0]["quantity_remaining"] == pytest.approx(6)

        summary = (await client.get("/api/reporting/realized_pl/summary",
                                    params={"holder": holder_id})).json()["data"]
        assert summary["total"] == pytest.approx(20)
        assert summary["byExchange"][0]["exchange"] == "Robinhood"

        outside = await client.post("/api/reporting/realized_pl/summary", json={
            "startDate": "2024-06-01", "endDate": "2024-06-30", "accountHolderId": holder_id,
        })
        assert outside.json()["data"]["total"] == pytest.approx(0)

        missing = await client.post("/api/reporting/realized_pl/summary",
                                    json={"accountHolderId": holder_id})
        assert missing.status_code == 400

    async def test_portfolio_overview(self, client: AsyncClient, holder_id: int) -> None:
        await _tx(client, holder_id, transaction_type="BUY", ticker="OVRV", quantity=10,
                  price=10, transaction_date="2024-05-01")
        await _tx(client, holder_id, transaction_type="BUY", ticker="OVRV", quantity=30,
                  price=20, transaction_date="2024-05-02")

        rows = (await client.get("/api/reporting/portfolio/overview",
                                 params={"holder": holder_id})).json()["data"]

        assert rows == [{"ticker": "OVRV", "total_quantity": 40.0,
                         "weighted_avg_cost": 17.5, "previous_close": None}]


class TestUtility:
    async def test_batch_prices_requires_tickers(self, client: AsyncClient) -> None:
        resp = await client.post("/api/utility/prices/batch", json={})
        assert resp.status_code == 400

    async def test_batch_prices_live(self, client: AsyncClient,
                                     fake_prices: FakePriceService) -> None:
        fake_prices.quotes["LIVE"] = 7.25
        resp = await client.post("/api/utility/prices/batch",
                                 json={"tickers": ["live", "nope"]})
        assert resp.json()["data"] == {"LIVE": 7.25, "NOPE": "error"}
        assert fake_prices.calls == [(["LIVE", "NOPE"], 1)]

    async def test_snapshots(self, client: AsyncClient, holder_id: int) -> None:
        body = {"account_holder_id": holder_id, "exchange": "Fidelity",
                "snapshot_date": "2024-05-31", "value": 1000}
        assert (await client.post("/api/utility/snapshots", json=body)).status_code == 201
        body["value"] = 1250
        saved = (await client.post("/api/utility/snapshots", json=body)).json()["data"]
        assert saved["value"] == 1250

        mine = (await client.get("/api/utility/snapshots",
                                 params={"holder": holder_id})).json()["data"]
        assert [(s["snapshot_date"], s["value"]) for s in mine] == [("2024-05-31", 1250)]

        combined = (await client.get("/api/utility/snapshots",
                                     params={"holder": "all"})).json()["data"]
        assert any(s["snapshot_date"] == "2024-05-31" for s in combined)

        assert (await client.delete(f"/api/utility/snapshots/{saved['id']}")).status_code == 200
        resp = await client.delete(f"/api/utility/snapshots/{saved['id']}")
        assert resp.status_code == 404
        assert resp.json()["code"] == 9003

    async def test_snapshot_for_unknown_holder_rejected(self, client: AsyncClient) -> None:
        resp = await client.post("/api/utility/snapshots", json={
            "account_holder_id": 999999, "exchange": "Fidelity",
            "snapshot_date": "2024-05-31", "value": 1000,
        })
        assert resp.status_code == 400
        assert resp.json()["code"] == 9000

    async def test_capture_eod_acknowledged(self, client: AsyncClient) -> None:
        resp = await client.post("/api/utility/tasks/capture-eod/2024-05-01")
        assert resp.status_code == 202
        assert "2024-05-01" in resp.json()["message"]

        bad = await client.post("/api/utility/tasks/capture-eod/tomorrowish")
        assert bad.status_code == 400
