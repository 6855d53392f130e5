"""Integration tests for advice sources, watchlist ideas, notes, documents and journal."""

import uuid

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio(loop_scope="session")


async def _source(client: AsyncClient, holder_id: int) -> int:
    resp = await client.post("/api/sources", json={
        "account_holder_id": holder_id,
        "name": f"Newsletter {uuid.uuid4().hex[:6]}",
        "type": "Newsletter",
        "details": {"author": "Desk"},
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["id"]


async def _idea(client: AsyncClient, holder_id: int, source_id: int, ticker: str) -> int:
    resp = await client.post("/api/watchlist", json={
        "account_holder_id": holder_id, "ticker": ticker, "advice_source_id": source_id,
        "rec_entry_low": 10, "rec_tp1": 15,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["id"]


async def _watchlist(client: AsyncClient, holder_id: int) -> list[dict]:
    resp = await client.get("/api/watchlist", params={"holder": holder_id})
    return resp.json()["data"]


class TestWatchlist:
    async def test_add_and_archive(self, client: AsyncClient, holder_id: int) -> None:
        source_id = await _source(client, holder_id)
        item_id = await _idea(client, holder_id, source_id, "wlst")

        assert [w["ticker"] for w in await _watchlist(client, holder_id)] == ["WLST"]
        assert (await client.delete(f"/api/watchlist/{item_id}")).status_code == 200
        assert await _watchlist(client, holder_id) == []

    async def test_duplicate_open_idea_conflicts(self, client: AsyncClient,
                                                 holder_id: int) -> None:
        source_id = await _source(client, holder_id)
        await _idea(client, holder_id, source_id, "DUPE")
        resp = await client.post("/api/watchlist", json={
            "account_holder_id": holder_id, "ticker": "DUPE", "advice_source_id": source_id,
        })
        assert resp.status_code == 409

    async def test_list_requires_holder(self, client: AsyncClient) -> None:
        resp = await client.get("/api/watchlist", params={"holder": "all"})
        assert resp.status_code == 400

    async def test_buy_from_source_archives_idea(self, client: AsyncClient,
                                                 holder_id: int) -> None:
        source_id = await _source(client, holder_id)
        await _idea(client, holder_id, source_id, "IDEA")

        resp = await client.post("/api/transactions", json={
            "transaction_type": "BUY", "ticker": "IDEA", "exchange": "Fidelity", "quantity": 5,
            "price": 11, "transaction_date": "2024-03-01", "account_holder_id": holder_id,
            "advice_source_id": source_id,
        })

        assert resp.status_code == 201, resp.text
        assert await _watchlist(client, holder_id) == []


class TestAdviceSources:
    async def test_details_collects_linked_records(self, client: AsyncClient,
                                                   holder_id: int) -> None:
        source_id = await _source(client, holder_id)
        await _idea(client, holder_id, source_id, "DETL")
        note = await client.post(f"/api/sources/{source_id}/notes",
                                 json={"holderId": holder_id, "note_content": "  good call  "})
        assert note.status_code == 201
        assert note.json()["data"]["note_content"] == "good call"
        doc = await client.post("/api/documents", json={
            "account_holder_id": holder_id, "advice_source_id": source_id,
            "external_link": "https://example.com/report", "title": "Report",
        })
        assert doc.status_code == 201

        resp = await client.get(f"/api/sources/{source_id}/details",
                                params={"holder": holder_id})

        data = resp.json()["data"]
        assert data["source"]["details"] == {"author": "Desk"}
        assert data["summaryStats"]["openWatchlistItems"] == 1
        assert data["summaryStats"]["totalNotes"] == 1
        assert data["summaryStats"]["totalDocuments"] == 1

    async def test_source_in_use_cannot_be_deleted(self, client: AsyncClient,
                                                   holder_id: int) -> None:
        source_id = await _source(client, holder_id)
        await _idea(client, holder_id, source_id, "USED")
        resp = await client.delete(f"/api/sources/{source_id}")
        assert resp.status_code == 400

    async def test_unused_source_is_deleted(self, client: AsyncClient, holder_id: int) -> None:
        source_id = await _source(client, holder_id)
        assert (await client.delete(f"/api/sources/{source_id}")).status_code == 200
        assert (await client.get(f"/api/sources/{source_id}/details")).status_code == 404

    async def test_toggle_active_hides_source(self, client: AsyncClient, holder_id: int) -> None:
        source_id = await _source(client, holder_id)
        resp = await client.put(f"/api/sources/{source_id}/toggle-active")
        assert resp.json()["data"]["is_active"] is False

        active = await client.get("/api/sources", params={"holder": holder_id})
        assert source_id not in [s["id"] for s in active.json()["data"]]
        everything = await client.get("/api/sources",
                                      params={"holder": holder_id, "include_inactive": True})
        assert source_id in [s["id"] for s in everything.json()["data"]]

    async def test_document_needs_exactly_one_owner(self, client: AsyncClient,
                                                    holder_id: int) -> None:
        resp = await client.post("/api/documents", json={
            "account_holder_id": holder_id, "external_link": "https://example.com",
        })
        assert resp.status_code == 400


class TestJournal:
    async def _entry(self, client: AsyncClient, holder_id: int, ticker: str) -> dict:
        resp = await client.post("/api/journal", json={
            "account_holder_id": holder_id, "ticker": ticker, "entry_date": "2024-04-01",
            "entry_price": 20, "quantity": 10, "exchange": "Fidelity", "direction": "BUY",
            "target_price": 30, "stop_loss_price": 15,
            "linked_document_urls": [{"url": "https://example.com/chart", "title": "Chart"}],
        })
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    async def test_execute_opens_lot(self, client: AsyncClient, holder_id: int) -> None:
        entry = await self._entry(client, holder_id, "jrnl")

        resp = await client.put(f"/api/journal/{entry['id']}/execute", json={
            "execution_date": "2024-04-02", "execution_price": 21,
            "account_holder_id": holder_id,
        })

        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["entry"]["status"] == "EXECUTED"
        rows = (await client.get("/api/transactions", params={"holder": holder_id})).json()["data"]
        lot = next(r for r in rows if r["id"] == data["newTransactionId"])
        assert lot["ticker"] == "JRNL"
        assert lot["source"] == "JOURNAL"
        assert lot["limit_price_up"] == 30
        assert lot["linked_journal_id"] == entry["id"]

    async def test_execute_twice_rejected(self, client: AsyncClient, holder_id: int) -> None:
        entry = await self._entry(client, holder_id, "TWCE")
        body = {"execution_date": "2024-04-02", "execution_price": 21,
                "account_holder_id": holder_id}
        assert (await client.put(f"/api/journal/{entry['id']}/execute", json=body)).status_code == 200
        resp = await client.put(f"/api/journal/{entry['id']}/execute", json=body)
        assert resp.status_code == 400

    async def test_close_then_list_by_status(self, client: AsyncClient, holder_id: int) -> None:
        entry = await self._entry(client, holder_id, "CLSE")
        resp = await client.put(f"/api/journal/{entry['id']}",
                                json={"status": "CLOSED", "exit_price": 25})
        assert resp.json()["data"]["status"] == "CLOSED"

        closed = await client.get("/api/journal", params={"holder": holder_id, "status": "CLOSED"})
        assert [e["id"] for e in closed.json()["data"]] == [entry["id"]]

    async def test_cannot_set_executed_through_update(self, client: AsyncClient,
                                                      holder_id: int) -> None:
        entry = await self._entry(client, holder_id, "NOPE")
        resp = await client.put(f"/api/journal/{entry['id']}", json={"status": "EXECUTED"})
        assert resp.status_code == 400

    async def test_delete_entry(self, client: AsyncClient, holder_id: int) -> None:
        entry = await self._entry(client, holder_id, "GONE")
        assert (await client.delete(f"/api/journal/{entry['id']}")).status_code == 200
        rows = (await client.get("/api/journal", params={"holder": holder_id})).json()["data"]
        assert entry["id"] not in [e["id"] for e in rows]

    async def test_required_fields_cannot_be_cleared(self, client: AsyncClient,
                                                     holder_id: int) -> None:
        entry = await self._entry(client, holder_id, "NULL")
        for body in ({"status": None}, {"ticker": ""}, {"quantity": -1}):
            resp = await client.put(f"/api/journal/{entry['id']}", json=body)
            assert resp.status_code == 400, body

        rows = (await client.get("/api/journal", params={"holder": holder_id})).json()["data"]
        current = next(e for e in rows if e["id"] == entry["id"])
        assert (current["ticker"], current["status"], current["quantity"]) == ("NULL", "OPEN", 10)

    async def test_negative_quantity_rejected(self, client: AsyncClient, holder_id: int) -> None:
        resp = await client.post("/api/journal", json={
            "account_holder_id": holder_id, "ticker": "NEG", "entry_date": "2024-04-01",
            "entry_price": 20, "quantity": -5, "exchange": "Fidelity", "direction": "BUY",
        })
        assert resp.status_code == 400
        assert resp.json()["code"] == 4001
