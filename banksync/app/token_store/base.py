"""
Abstract base class for token store backends
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
import enum


class KVKey(str, enum.Enum):
    REFRESH_TOKEN = "refreshToken"
    LAST_SYNC_DATE = "lastSyncDate"


class BaseTokenStore(ABC):
    """
    Get/set interface over a string key-value store.

    The sync orchestrator is the only writer: it rotates the refresh token on
    every run and advances the last sync date after a successful one.
    """

    @abstractmethod
    async def get(self, key: KVKey) -> Optional[str]:
        """Return the stored value, or None if the key was never set."""
        pass

    @abstractmethod
    async def set(self, key: KVKey, value: str) -> None:
        pass

    async def get_refresh_token(self) -> Optional[str]:
        return await self.get(KVKey.REFRESH_TOKEN)

    async def set_refresh_token(self, refresh_token: str) -> None:
        await self.set(KVKey.REFRESH_TOKEN, refresh_token)

    async def get_last_sync_date(self) -> Optional[date]:
        value = await self.get(KVKey.LAST_SYNC_DATE)
        if not value:
            return None
        return date.fromisoformat(value.strip())

    async def set_last_sync_date(self, sync_date: date) -> None:
        await self.set(KVKey.LAST_SYNC_DATE, sync_date.isoformat())
