"""
Abstract base class for bank integration providers

Defines the interface the sync orchestrator uses to talk to a bank.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from datetime import date

from banksync.app.schemas import BankTransaction, TokenResponse


class BankApiError(Exception):
    """Raised when the bank API answers with an error or an unreadable payload."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TokenRefreshError(BankApiError):
    """Raised when a refresh token cannot be exchanged for an access token."""
    pass


class BaseBankProvider(ABC):
    """
    Abstract base class for bank integration providers.
    """

    @abstractmethod
    async def refresh_access_token(
        self,
        refresh_token: str
    ) -> TokenResponse:
        """
        Exchange a refresh token for a new access token.

        The bank rotates refresh tokens: the returned refresh_token replaces
        the one passed in, which is no longer valid.

        Args:
            refresh_token: The current refresh token

        Returns:
            TokenResponse with access_token and the new refresh_token

        Raises:
            TokenRefreshError: If the bank rejects the refresh
        """
        pass

    @abstractmethod
    async def fetch_transactions(
        self,
        access_token: str,
        account_key: str,
        from_date: date
    ) -> List[BankTransaction]:
        """
        Fetch transactions for an account from from_date (inclusive) until today.

        Args:
            access_token: Valid OAuth access token
            account_key: Bank's account identifier
            from_date: First date to include

        Returns:
            Transactions in the order the bank returns them

        Raises:
            BankApiError: If the request fails or the response cannot be parsed
        """
        pass
