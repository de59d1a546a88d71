"""
File-backed token store: one text file per key (refreshToken.txt, lastSyncDate.txt).
"""

from pathlib import Path
from typing import Optional

from .base import BaseTokenStore, KVKey


class FileTokenStore(BaseTokenStore):

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: KVKey) -> Path:
        return self.directory / f"{KVKey(key).value}.txt"

    async def get(self, key: KVKey) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding='utf-8').strip()

    async def set(self, key: KVKey, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(value, encoding='utf-8')
