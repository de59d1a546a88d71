"""
YNAB API client

Documentation: https://api.ynab.com/v1
"""

import logging
from typing import Any, Dict, List, Optional, Sequence
from datetime import date

import httpx
from pydantic import ValidationError

from banksync.app.schemas import SaveTransaction, TransactionDetail, UpdateTransaction
from banksync.app.reconciliation import latest_ledger_date

logger = logging.getLogger(__name__)


class LedgerApiError(Exception):
    """Raised when YNAB answers with an error or an unreadable payload."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class YnabClient:
    """
    Thin async wrapper around the YNAB transactions endpoints of one budget.
    """

    def __init__(
        self,
        token: str,
        budget_id: str,
        api_base_url: str = "https://api.ynab.com/v1",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport = None
    ):
        self.token = token
        self.budget_id = budget_id
        self.api_base_url = api_base_url.rstrip('/')
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings) -> "YnabClient":
        return cls(
            token=settings.ynab_token,
            budget_id=settings.ynab_budget_id,
            api_base_url=settings.ynab_api_url,
            timeout=settings.http_timeout
        )

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.api_base_url}/budgets/{self.budget_id}{path}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.request(
                method,
                url,
                headers={
                    'Authorization': f'Bearer {self.token}',
                    'Accept': 'application/json'
                },
                **kwargs
            )

        if not response.is_success:
            logger.error(f"YNAB API error - {method} {path} - Status: {response.status_code}, Body: {response.text}")
            raise LedgerApiError(
                f"YNAB API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                body=response.text
            )

        try:
            return response.json().get('data', {})
        except ValueError:
            raise LedgerApiError("Failed to parse YNAB response", body=response.text)

    def _parse_transactions(self, data: Dict[str, Any]) -> List[TransactionDetail]:
        try:
            transactions = [
                TransactionDetail.model_validate(tx)
                for tx in data.get('transactions', [])
            ]
        except ValidationError as e:
            raise LedgerApiError(f"Unexpected YNAB transaction format: {e}")
        return [t for t in transactions if not t.deleted]

    async def get_transactions(
        self,
        account_id: str,
        since_date: Optional[date] = None
    ) -> List[TransactionDetail]:
        """
        Transactions of one account, optionally only those on or after since_date.

        Deleted transactions are left out.
        """
        params = {'since_date': since_date.isoformat()} if since_date else None
        data = await self._request('GET', f"/accounts/{account_id}/transactions", params=params)
        transactions = self._parse_transactions(data)
        logger.info(f"Got {len(transactions)} YNAB transactions for account {account_id}")
        return transactions

    async def get_latest_transaction_date(self, account_id: str) -> Optional[date]:
        """Date of the newest non-transfer transaction in the account, None if there is none."""
        transactions = await self.get_transactions(account_id)
        return latest_ledger_date(transactions)

    async def create_transactions(self, transactions: Sequence[SaveTransaction]) -> Dict[str, Any]:
        """
        Create transactions in one batch.

        YNAB skips transactions whose import_id already exists in the account
        and lists them under duplicate_import_ids.
        """
        payload = {'transactions': [t.model_dump(mode='json') for t in transactions]}
        data = await self._request('POST', "/transactions", json=payload)

        duplicates = data.get('duplicate_import_ids', [])
        if duplicates:
            logger.info(f"YNAB ignored {len(duplicates)} duplicate import id(s): {duplicates}")
        return data

    async def update_transactions(self, transactions: Sequence[UpdateTransaction]) -> Dict[str, Any]:
        """Update existing transactions in one batch (PATCH, only the given fields change)."""
        payload = {'transactions': [t.model_dump(mode='json') for t in transactions]}
        return await self._request('PATCH', "/transactions", json=payload)
