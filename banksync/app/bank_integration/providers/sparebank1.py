"""
SpareBank 1 Provider Implementation

Personal banking API of SpareBank 1. Access tokens are short-lived and every
refresh issues a new refresh token, invalidating the previous one.

Documentation: https://developer.sparebank1.no/
"""

import logging
from typing import List
from datetime import date

import httpx
from pydantic import ValidationError

from banksync.app.schemas import BankTransaction, TokenResponse
from .base import BaseBankProvider, BankApiError, TokenRefreshError

logger = logging.getLogger(__name__)

ACCEPT_HEADER = 'application/vnd.sparebank1.v1+json;charset=utf-8'


class SpareBank1Provider(BaseBankProvider):
    """
    SpareBank 1 API integration.

    Credentials come from the application settings:
    - client_id / client_secret: OAuth client registered with SpareBank 1
    - auth_url: token endpoint
    - api_base_url: personal banking API base
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        auth_url: str = "https://api-auth.sparebank1.no/oauth/token",
        api_base_url: str = "https://api.sparebank1.no/personal/banking",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport = None
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.auth_url = auth_url
        self.api_base_url = api_base_url.rstrip('/')
        self.timeout = timeout
        # Swappable for tests
        self.transport = transport

    @classmethod
    def from_settings(cls, settings) -> "SpareBank1Provider":
        return cls(
            client_id=settings.bank_client_id,
            client_secret=settings.bank_client_secret,
            auth_url=settings.bank_auth_url,
            api_base_url=settings.bank_api_url,
            timeout=settings.http_timeout
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def refresh_access_token(
        self,
        refresh_token: str
    ) -> TokenResponse:
        """
        POST the refresh token to the OAuth token endpoint (form encoded).

        Example:
            >>> tokens = await provider.refresh_access_token("old-refresh")
            >>> await store.set_refresh_token(tokens.refresh_token)
        """
        logger.info("Fetching new token with refresh token...")

        async with self._client() as client:
            response = await client.post(
                self.auth_url,
                data={
                    'client_id': self.client_id,
                    'client_secret': self.client_secret,
                    'refresh_token': refresh_token,
                    'grant_type': 'refresh_token'
                },
                headers={'Content-Type': 'application/x-www-form-urlencoded'}
            )

        if not response.is_success:
            logger.error(f"Token refresh error - Status: {response.status_code}, Body: {response.text}")
            raise TokenRefreshError(
                f"Token refresh failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                body=response.text
            )

        try:
            tokens = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TokenRefreshError(f"Unexpected token response: {e}", body=response.text)

        logger.info("Token refresh successful, got new tokens")
        return tokens

    async def fetch_transactions(
        self,
        access_token: str,
        account_key: str,
        from_date: date
    ) -> List[BankTransaction]:
        """
        GET /transactions for one account from from_date.

        SpareBank 1 format:
        {
            "transactions": [
                {
                    "id": "...",
                    "description": "*3301 25.12 NOK 250.00 NETONNET SANDNES Kurs: 1.0000",
                    "cleanedDescription": "Netonnet",
                    "amount": -250.0,
                    "date": 1735081200000,
                    "bookingStatus": "BOOKED",
                    "currencyCode": "NOK",
                    "accountKey": "..."
                }
            ]
        }
        """
        url = f"{self.api_base_url}/transactions"
        params = {'accountKey': account_key, 'fromDate': from_date.isoformat()}
        logger.info(f"Fetching transactions from {url} (fromDate={params['fromDate']})")

        async with self._client() as client:
            response = await client.get(
                url,
                params=params,
                headers={
                    'Authorization': f'Bearer {access_token}',
                    'Accept': ACCEPT_HEADER
                }
            )

        if not response.is_success:
            logger.error(f"Bank API error - Status: {response.status_code}, Body: {response.text}")
            raise BankApiError(
                f"Bank API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                body=response.text
            )

        try:
            data = response.json()
            transactions = [
                BankTransaction.model_validate(tx)
                for tx in data.get('transactions', [])
            ]
        except (ValueError, AttributeError, ValidationError) as e:
            logger.error(f"Failed to parse bank API response: {e}. Raw response: {response.text}")
            raise BankApiError("Failed to parse bank API response", body=response.text)

        logger.info(f"Got {len(transactions)} bank transactions")
        return transactions
