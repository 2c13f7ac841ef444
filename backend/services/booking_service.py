"""
Booking Service — persistence shared by both payment webhooks and the crons.

Handles:
    1. Transaction upsert keyed by gateway payment_id
    2. Package grants (credits + expiry from the package type)
    3. Booking payment-state updates
    4. Class completion and reminder queries for the cron endpoints

Nothing here swallows database errors: webhook callers must answer non-2xx so
the gateway retries the notification.
"""
import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from config import settings
from db_models import Booking, Package, PackageType, StudioClass, Transaction
from domain.constants import REMINDER_WINDOW_END_HOURS, REMINDER_WINDOW_START_HOURS
from domain.enums import BookingStatus, ClassStatus, PaymentStatus

logger = logging.getLogger(__name__)


def studio_now() -> datetime:
    """Current studio-local wall time as a naive datetime (matches stored class times)."""
    return datetime.now(ZoneInfo(settings.studio_timezone)).replace(tzinfo=None)


# ════════════════════════════════════════════════════════════════════
# Transactions
# ════════════════════════════════════════════════════════════════════


async def upsert_transaction(
    db: AsyncSession,
    *,
    payment_id: str,
    user_id: str,
    transaction_type: str,
    amount: float,
    payment_method: str,
    payment_status: str,
    location: Optional[str] = None,
    package_type_id: Optional[str] = None,
    booking_id: Optional[str] = None,
    paid_at: Optional[datetime] = None,
) -> Transaction:
    """
    Insert the transaction for payment_id, or update status/paid_at/location
    on the existing row. Gateways resend notifications, so this runs many
    times per order.
    """
    result = await db.execute(
        select(Transaction).where(Transaction.payment_id == payment_id)
    )
    existing = result.scalars().first()

    if existing:
        existing.payment_status = payment_status
        existing.paid_at = paid_at
        existing.location = location
        await db.flush()
        logger.info(f"Transaction updated (payment_id={payment_id}, status={payment_status})")
        return existing

    row = Transaction(
        user_id=user_id,
        type=transaction_type,
        package_type_id=package_type_id,
        booking_id=booking_id,
        amount=amount,
        payment_method=payment_method,
        payment_status=payment_status,
        payment_id=payment_id,
        location=location,
        paid_at=paid_at,
    )
    db.add(row)
    await db.flush()
    logger.info(f"Transaction inserted (payment_id={payment_id}, status={payment_status})")
    return row


async def is_already_paid(db: AsyncSession, payment_id: str) -> bool:
    """True when a paid transaction is already recorded for this gateway payment."""
    result = await db.execute(
        select(Transaction.id).where(
            Transaction.payment_id == payment_id,
            Transaction.payment_status == PaymentStatus.PAID.value,
        )
    )
    return result.first() is not None


# ════════════════════════════════════════════════════════════════════
# Packages
# ════════════════════════════════════════════════════════════════════


async def get_package_type(db: AsyncSession, package_type_id: str) -> Optional[PackageType]:
    return await db.get(PackageType, package_type_id)


async def grant_package(
    db: AsyncSession,
    *,
    user_id: str,
    package_type: PackageType,
    purchased_at: datetime,
) -> Package:
    """Create an active package with full credits, expiring validity_days after purchase."""
    package = Package(
        user_id=user_id,
        package_type_id=package_type.id,
        total_credits=package_type.class_credits,
        remaining_credits=package_type.class_credits,
        expires_at=purchased_at + timedelta(days=package_type.validity_days),
        status="active",
    )
    db.add(package)
    await db.flush()
    logger.info(
        f"  🎟️ Package granted: {package_type.name} ({package_type.class_credits} credits) "
        f"→ user {user_id[:8]}..."
    )
    return package


# ════════════════════════════════════════════════════════════════════
# Bookings
# ════════════════════════════════════════════════════════════════════


async def apply_booking_payment(
    db: AsyncSession,
    booking_ids: Iterable[str],
    *,
    booking_status: str,
    payment_status: str,
    payment_id: str,
) -> int:
    """Set status, payment_status and payment_id on every listed booking. Returns rows touched."""
    ids = [b for b in booking_ids if b]
    if not ids:
        return 0
    result = await db.execute(
        update(Booking)
        .where(Booking.id.in_(ids))
        .values(status=booking_status, payment_status=payment_status, payment_id=payment_id)
    )
    await db.flush()
    logger.info(f"Bookings updated → {booking_status}/{payment_status}: {ids}")
    return result.rowcount


async def booking_location(db: AsyncSession, booking_id: str) -> Optional[str]:
    """Location of the class a booking belongs to (None if either is missing)."""
    result = await db.execute(
        select(StudioClass.location)
        .join(Booking, Booking.class_id == StudioClass.id)
        .where(Booking.id == booking_id)
    )
    return result.scalar_one_or_none()


# ════════════════════════════════════════════════════════════════════
# Cron queries
# ════════════════════════════════════════════════════════════════════


async def complete_finished_classes(db: AsyncSession, now: Optional[datetime] = None) -> list[StudioClass]:
    """Mark scheduled/delayed classes whose end_time has passed as completed."""
    now = now or studio_now()
    result = await db.execute(
        select(StudioClass).where(
            StudioClass.status.in_([ClassStatus.SCHEDULED.value, ClassStatus.DELAYED.value]),
            StudioClass.end_time < now,
        )
    )
    finished = list(result.scalars().all())
    for cls in finished:
        cls.status = ClassStatus.COMPLETED.value
    await db.flush()
    return finished


async def bookings_needing_reminder(db: AsyncSession, now: Optional[datetime] = None) -> list[Booking]:
    """Confirmed bookings whose class starts in the 23–25 hour window."""
    now = now or studio_now()
    window_start = now + timedelta(hours=REMINDER_WINDOW_START_HOURS)
    window_end = now + timedelta(hours=REMINDER_WINDOW_END_HOURS)

    result = await db.execute(
        select(Booking)
        .join(StudioClass, Booking.class_id == StudioClass.id)
        .where(
            Booking.status == BookingStatus.CONFIRMED.value,
            StudioClass.start_time >= window_start,
            StudioClass.start_time <= window_end,
        )
        .options(
            selectinload(Booking.profile),
            selectinload(Booking.studio_class).selectinload(StudioClass.coach),
        )
    )
    return list(result.scalars().all())
