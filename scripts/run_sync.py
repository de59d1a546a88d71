#!/usr/bin/env python3
"""
Run one bank -> YNAB sync from the command line (e.g. from cron).

Exits with status 1 if the sync fails.
"""
import asyncio
import logging
import sys

from banksync.config import get_settings
from banksync.database import Base, SessionLocal, engine
from banksync.app.bank_integration.providers.sparebank1 import SpareBank1Provider
from banksync.app.ledger.client import YnabClient
from banksync.app.token_store import create_token_store
from banksync.app.sync_service import SyncService

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
logger = logging.getLogger("run_sync")


async def main() -> int:
    settings = get_settings()
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        service = SyncService(
            settings=settings,
            token_store=create_token_store(settings, db),
            bank_provider=SpareBank1Provider.from_settings(settings),
            ledger=YnabClient.from_settings(settings),
            db=db
        )
        result = await service.sync()
    except Exception:
        logger.exception("Sync failed")
        return 1
    finally:
        db.close()

    logger.info(
        f"Sync complete: fetched={result.fetched}, added={result.added}, "
        f"cleared={result.cleared}, skipped={result.skipped}, invalid={result.invalid}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
