import json
from datetime import date

import httpx
import pytest

from banksync.app.ledger import LedgerApiError, YnabClient
from banksync.app.schemas import ClearedStatus, SaveTransaction, UpdateTransaction


def make_client(handler):
    return YnabClient(
        token="ynab-token",
        budget_id="budget-1",
        api_base_url="https://ynab.test/v1",
        transport=httpx.MockTransport(handler)
    )


def transaction_json(id, day, amount=-1000, payee="Kiwi", cleared="uncleared", deleted=False, transfer=None):
    return {
        "id": id,
        "account_id": "acc-1",
        "date": day,
        "amount": amount,
        "payee_name": payee,
        "cleared": cleared,
        "approved": True,
        "import_id": None,
        "transfer_account_id": transfer,
        "deleted": deleted,
    }


class TestGetTransactions:
    @pytest.mark.asyncio
    async def test_since_date_and_deleted_filtering(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"data": {"transactions": [
                transaction_json("t1", "2024-12-21"),
                transaction_json("t2", "2024-12-22", deleted=True),
                transaction_json("t3", "2024-12-23", cleared="cleared"),
            ]}})

        transactions = await make_client(handler).get_transactions("acc-1", date(2024, 12, 20))

        assert [t.id for t in transactions] == ["t1", "t3"]
        assert transactions[1].cleared == ClearedStatus.CLEARED
        assert transactions[0].date == date(2024, 12, 21)

        request = requests[0]
        assert request.url.path == "/v1/budgets/budget-1/accounts/acc-1/transactions"
        assert request.url.params["since_date"] == "2024-12-20"
        assert request.headers["Authorization"] == "Bearer ynab-token"

    @pytest.mark.asyncio
    async def test_latest_transaction_date_skips_transfers(self):
        def handler(request):
            assert "since_date" not in request.url.params
            return httpx.Response(200, json={"data": {"transactions": [
                transaction_json("t1", "2024-03-01"),
                transaction_json("t2", "2024-03-10", transfer="checking"),
                transaction_json("t3", "2024-03-05"),
            ]}})

        assert await make_client(handler).get_latest_transaction_date("acc-1") == date(2024, 3, 5)

    @pytest.mark.asyncio
    async def test_latest_transaction_date_empty_account(self):
        client = make_client(lambda request: httpx.Response(200, json={"data": {"transactions": []}}))
        assert await client.get_latest_transaction_date("acc-1") is None

    @pytest.mark.asyncio
    async def test_error(self):
        client = make_client(lambda request: httpx.Response(401, json={"error": {"id": "401"}}))

        with pytest.raises(LedgerApiError) as exc_info:
            await client.get_transactions("acc-1")
        assert exc_info.value.status_code == 401


class TestWrites:
    @pytest.mark.asyncio
    async def test_create_transactions_payload(self):
        bodies = []

        def handler(request):
            assert request.method == "POST"
            assert request.url.path == "/v1/budgets/budget-1/transactions"
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json={"data": {"transaction_ids": ["new-1"], "duplicate_import_ids": []}})

        data = await make_client(handler).create_transactions([
            SaveTransaction(
                account_id="acc-1",
                date=date(2024, 12, 25),
                amount=-250000,
                payee_name="Netonnet",
                cleared=ClearedStatus.CLEARED,
                import_id="YNAB:-250000:2024-12-25:1"
            )
        ])

        assert data["transaction_ids"] == ["new-1"]
        assert bodies[0] == {"transactions": [{
            "account_id": "acc-1",
            "date": "2024-12-25",
            "amount": -250000,
            "payee_name": "Netonnet",
            "cleared": "cleared",
            "import_id": "YNAB:-250000:2024-12-25:1",
        }]}

    @pytest.mark.asyncio
    async def test_update_transactions_sends_only_cleared_flag(self):
        bodies = []

        def handler(request):
            assert request.method == "PATCH"
            bodies.append(json.loads(request.content))
            return httpx.Response(209, json={"data": {"transactions": []}})

        await make_client(handler).update_transactions([UpdateTransaction(id="t1", cleared=ClearedStatus.CLEARED)])

        assert bodies[0] == {"transactions": [{"id": "t1", "cleared": "cleared"}]}

    @pytest.mark.asyncio
    async def test_write_error(self):
        client = make_client(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(LedgerApiError):
            await client.update_transactions([UpdateTransaction(id="t1", cleared=ClearedStatus.CLEARED)])
