from fastapi import Depends
from sqlalchemy.orm import Session

from banksync.config import get_settings
from banksync.database import get_db
from .bank_integration.providers.sparebank1 import SpareBank1Provider
from .ledger.client import YnabClient
from .token_store import create_token_store
from .sync_service import SyncService


def get_sync_service(db: Session = Depends(get_db)) -> SyncService:
    settings = get_settings()
    return SyncService(
        settings=settings,
        token_store=create_token_store(settings, db),
        bank_provider=SpareBank1Provider.from_settings(settings),
        ledger=YnabClient.from_settings(settings),
        db=db
    )
