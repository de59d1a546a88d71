"""
Bank Integration Module

Bank API access for the transaction sync: token refresh and transaction fetch.
"""

from .providers import BaseBankProvider, SpareBank1Provider, BankApiError, TokenRefreshError

__all__ = ['BaseBankProvider', 'SpareBank1Provider', 'BankApiError', 'TokenRefreshError']
