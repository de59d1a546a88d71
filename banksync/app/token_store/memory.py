from typing import Dict, Optional

from .base import BaseTokenStore, KVKey


class MemoryTokenStore(BaseTokenStore):
    """Process-local store. State is lost on restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    async def get(self, key: KVKey) -> Optional[str]:
        return self._values.get(KVKey(key).value)

    async def set(self, key: KVKey, value: str) -> None:
        self._values[KVKey(key).value] = value
