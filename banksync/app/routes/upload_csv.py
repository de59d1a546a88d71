import logging
from fastapi import APIRouter, Depends, UploadFile, File
from fastapi.responses import PlainTextResponse
from typing import Optional

from ..auth import require_basic_auth
from ..csv_import import CsvFormatError
from ..dependencies import get_sync_service
from ..sync_service import SyncService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["csv-import"])


@router.post("/upload-csv", response_class=PlainTextResponse)
async def upload_csv(
    csv: Optional[UploadFile] = File(None),
    username: str = Depends(require_basic_auth),
    service: SyncService = Depends(get_sync_service)
):
    """Import a credit card statement (semicolon separated CSV) into YNAB."""
    if csv is None:
        return PlainTextResponse("No CSV file provided", status_code=400)

    contents = await csv.read()
    try:
        decoded = contents.decode('utf-8-sig')
    except UnicodeDecodeError:
        return PlainTextResponse("File encoding error. Please use UTF-8 encoded CSV", status_code=400)

    try:
        result = await service.import_csv(decoded)
    except CsvFormatError as e:
        return PlainTextResponse(f"Error parsing CSV: {e}", status_code=400)
    except Exception:
        logger.exception("Error processing CSV")
        return PlainTextResponse("Error processing CSV file", status_code=500)

    if result.imported == 0:
        return "No new transactions to import"
    return f"Successfully imported {result.imported} transactions"
