"""
Schedule sync — reads the schedule spreadsheet and optionally stores the classes.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Coach, StudioClass
from domain.constants import SCHEDULE_DAY_SHEETS
from domain.errors import ValidationError
from exceptions import SheetsAccessError
from services.schedule_parser import (
    ParsedClass,
    build_schedule,
    parse_configuration,
    schedule_summary,
)
from services.sheets_service import SheetsClient

logger = logging.getLogger(__name__)


async def sync_schedule(
    sheets: SheetsClient,
    spreadsheet_id: str,
    location: Optional[str] = None,
) -> tuple[list[ParsedClass], list[str], dict]:
    """
    Read CONFIGURATION and every day sheet, then expand the schedule.

    A CONFIGURATION read failure propagates (SheetsAccessError); a failing
    day sheet is reported in the error list and skipped.
    """
    config_rows = await sheets.read_range(spreadsheet_id, "CONFIGURATION!A:I")
    config, class_mapping, coach_mapping = parse_configuration(config_rows)

    errors: list[str] = []
    day_rows: dict[str, list] = {}
    for day_name in SCHEDULE_DAY_SHEETS:
        try:
            day_rows[day_name] = await sheets.read_range(spreadsheet_id, f"{day_name}!A:H")
        except SheetsAccessError as e:
            logger.warning(f"Schedule sheet {day_name} unreadable: {e}")
            errors.append(f"{day_name}: Failed to read sheet - {e}")

    effective_location = location or config.location
    try:
        result = build_schedule(config, class_mapping, coach_mapping, day_rows, location=effective_location)
    except ValueError as e:
        raise ValidationError(str(e), details={"startDate": config.start_date})

    return result.classes, errors + result.errors, schedule_summary(config, effective_location)


async def insert_classes(db: AsyncSession, classes: list[ParsedClass]) -> tuple[int, list[str]]:
    """
    Store parsed classes, skipping any that already exist (same start, location
    and coach). Classes whose coach id is not in the coaches table are skipped
    and reported. Returns (number inserted, errors).
    """
    known_coaches = set((await db.execute(select(Coach.id))).scalars().all())

    inserted = 0
    errors: list[str] = []
    for parsed in classes:
        if parsed.coach_id not in known_coaches:
            errors.append(f"{parsed.source}: Unknown coach id {parsed.coach_id}")
            continue

        existing = await db.execute(
            select(StudioClass.id).where(
                StudioClass.start_time == parsed.start_time,
                StudioClass.location == parsed.location,
                StudioClass.coach_id == parsed.coach_id,
            )
        )
        if existing.first() is not None:
            continue

        db.add(StudioClass(
            title=parsed.title,
            class_type=parsed.class_type,
            coach_id=parsed.coach_id,
            location=parsed.location,
            start_time=parsed.start_time,
            end_time=parsed.end_time,
            capacity=parsed.capacity,
            price=parsed.price,
            original_price=parsed.original_price,
            status=parsed.status,
        ))
        inserted += 1

    await db.commit()
    errors = list(dict.fromkeys(errors))
    logger.info(
        f"📅 Schedule applied: {inserted} new class(es), {len(classes) - inserted} skipped"
    )
    return inserted, errors
