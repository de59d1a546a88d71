"""
Token Store

Key-value persistence for the sync state (refresh token and last sync date)
with interchangeable backends.
"""

from .base import BaseTokenStore, KVKey
from .database import DatabaseTokenStore
from .file import FileTokenStore
from .memory import MemoryTokenStore
from .encryption import TokenEncryption

__all__ = [
    'BaseTokenStore', 'KVKey', 'DatabaseTokenStore', 'FileTokenStore',
    'MemoryTokenStore', 'TokenEncryption', 'create_token_store'
]


def create_token_store(settings, db=None) -> BaseTokenStore:
    """
    Build the backend selected by settings.token_store_backend.

    Raises:
        ValueError: If the backend is unknown or needs a database session that was not given
    """
    backend = settings.token_store_backend
    if backend == 'database':
        if db is None:
            raise ValueError("Database token store requires a database session")
        return DatabaseTokenStore(db, TokenEncryption(settings.secret_key))
    elif backend == 'file':
        return FileTokenStore(settings.token_store_path)
    elif backend == 'memory':
        return MemoryTokenStore()
    else:
        raise ValueError(f"Unsupported token store backend: {backend}")
