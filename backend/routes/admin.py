"""
Admin Routes — schedule import from the studio's spreadsheet.

Endpoints:
    POST /admin/sync-schedule — parse a given spreadsheet for a location
    GET  /admin/sync-schedule — parse GOOGLE_SHEET_ID with its own location

Both preview by default; POST with "apply": true also inserts the classes.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from deps import get_sheets_client
from domain.errors import GatewayError, ValidationError
from exceptions import SheetsAccessError
from middleware.auth import require_admin
from models import SyncScheduleRequest
from services import schedule_service
from services.sheets_service import SheetsClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


async def _read_schedule(sheets: SheetsClient, sheet_id: str, location: str | None) -> tuple:
    try:
        return await schedule_service.sync_schedule(sheets, sheet_id, location)
    except SheetsAccessError as e:
        logger.error(f"Schedule sync failed for sheet {sheet_id}: {e}")
        raise GatewayError("google_sheets", "Failed to sync from Google Sheets")


@router.post("/sync-schedule")
async def sync_schedule(
    req: SyncScheduleRequest,
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    sheets: SheetsClient = Depends(get_sheets_client),
):
    logger.info(f"Schedule sync requested by {admin_id[:8]}... (location={req.location}, apply={req.apply})")
    classes, errors, config = await _read_schedule(sheets, req.sheet_id, req.location)

    inserted = None
    if req.apply:
        inserted, insert_errors = await schedule_service.insert_classes(db, classes)
        errors = errors + insert_errors

    return {
        "classes": [c.to_dict() for c in classes],
        "errors": errors,
        "config": config,
        "inserted": inserted,
    }


@router.get("/sync-schedule")
async def sync_default_schedule(
    admin_id: str = Depends(require_admin),
    sheets: SheetsClient = Depends(get_sheets_client),
):
    if not settings.google_sheet_id:
        raise ValidationError("Google Sheet ID not configured")

    classes, errors, config = await _read_schedule(sheets, settings.google_sheet_id, None)
    return {
        "classes": [c.to_dict() for c in classes],
        "errors": errors,
        "config": config,
    }
