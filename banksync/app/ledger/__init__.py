"""
Ledger Integration Module

YNAB API access: read recent transactions, create new ones, mark existing ones cleared.
"""

from .client import YnabClient, LedgerApiError

__all__ = ['YnabClient', 'LedgerApiError']
