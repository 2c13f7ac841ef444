"""
Cron Routes — called by the scheduler with Authorization: Bearer <CRON_SECRET>.

Endpoints:
    GET /cron/mark-completed-classes — hourly; finished classes → completed
    GET /cron/send-reminders         — daily; email bookings starting in ~24h
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from deps import get_email_client
from exceptions import EmailDeliveryError
from middleware.auth import require_cron_secret
from services import booking_service
from services.email_service import EmailClient, format_date_id, format_time_id

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cron",
    tags=["cron"],
    dependencies=[Depends(require_cron_secret)],
)


@router.get("/mark-completed-classes")
async def mark_completed_classes(db: AsyncSession = Depends(get_db)):
    finished = await booking_service.complete_finished_classes(db)
    await db.commit()

    if not finished:
        return {"success": True, "message": "No classes to mark as completed", "marked": 0}

    logger.info(f"✅ Marked {len(finished)} classes as completed")
    return {
        "success": True,
        "message": f"Marked {len(finished)} classes as completed",
        "marked": len(finished),
        "classes": [
            {"id": c.id, "title": c.title, "end_time": c.end_time.isoformat()}
            for c in finished
        ],
    }


@router.get("/send-reminders")
async def send_reminders(
    db: AsyncSession = Depends(get_db),
    email: EmailClient = Depends(get_email_client),
):
    """One failed email does not stop the batch; failures are counted."""
    bookings = await booking_service.bookings_needing_reminder(db)

    sent = 0
    failed = 0
    for booking in bookings:
        profile = booking.profile
        studio_class = booking.studio_class
        if not profile or not profile.email or not studio_class:
            continue

        try:
            await email.send_class_reminder(
                to=profile.email,
                user_name=profile.full_name or "Member",
                class_name=studio_class.title,
                date=format_date_id(studio_class.start_time),
                time=format_time_id(studio_class.start_time),
                coach=studio_class.coach.name if studio_class.coach else "TBA",
                location=studio_class.location,
            )
            sent += 1
        except EmailDeliveryError as e:
            failed += 1
            logger.error(f"Failed to send reminder for booking {booking.id}: {e}")

    logger.info(f"⏰ Reminders: {sent} sent, {failed} failed, {len(bookings)} bookings")
    return {"success": True, "sent": sent, "failed": failed, "total": len(bookings)}
