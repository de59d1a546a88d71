"""
Bank Provider Implementations

Abstract base class and the SpareBank 1 implementation.
"""

from .base import BaseBankProvider, BankApiError, TokenRefreshError
from .sparebank1 import SpareBank1Provider

__all__ = ['BaseBankProvider', 'BankApiError', 'TokenRefreshError', 'SpareBank1Provider']
