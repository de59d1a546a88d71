import logging
from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session
from typing import List

from banksync.database import get_db
from ..models import SyncLog
from ..schemas import SyncLog as SyncLogSchema
from ..dependencies import get_sync_service
from ..sync_service import SyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


@router.api_route("", methods=["GET", "POST"], response_class=PlainTextResponse)
async def trigger_sync(service: SyncService = Depends(get_sync_service)):
    """Run a bank -> YNAB sync. Meant for a scheduler hitting the URL."""
    try:
        await service.sync()
    except Exception as e:
        logger.exception("Sync request failed")
        return PlainTextResponse(f"Sync failed: {e}", status_code=500)

    return "Successfully synced!"


@router.get("/logs", response_model=List[SyncLogSchema])
def get_sync_logs(
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db)
):
    return db.query(SyncLog).order_by(SyncLog.started_at.desc(), SyncLog.id.desc()).limit(limit).all()
