"""
SQLAlchemy-backed token store.

The refresh token is encrypted before it is written to the key_values table.
"""

import logging
from typing import Optional
from sqlalchemy.orm import Session

from banksync.app.models import KeyValue
from .base import BaseTokenStore, KVKey
from .encryption import TokenEncryption

logger = logging.getLogger(__name__)

ENCRYPTED_KEYS = {KVKey.REFRESH_TOKEN}


class DatabaseTokenStore(BaseTokenStore):

    def __init__(self, db: Session, encryption: TokenEncryption):
        """
        Args:
            db: SQLAlchemy database session
            encryption: Cipher for keys holding secrets
        """
        self.db = db
        self.encryption = encryption

    async def get(self, key: KVKey) -> Optional[str]:
        key = KVKey(key)
        row = self.db.query(KeyValue).get(key.value)
        if row is None or row.value is None:
            return None

        if key in ENCRYPTED_KEYS:
            return self.encryption.decrypt(row.value)
        return row.value

    async def set(self, key: KVKey, value: str) -> None:
        key = KVKey(key)
        stored = self.encryption.encrypt(value) if key in ENCRYPTED_KEYS else value

        row = self.db.query(KeyValue).get(key.value)
        if row is None:
            self.db.add(KeyValue(key=key.value, value=stored))
        else:
            row.value = stored
        self.db.commit()
        logger.info(f"Stored {key.value}")
