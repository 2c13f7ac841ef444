"""
Duplicate Guard — stops a second profile from reusing a contact identifier.

check_duplicates() is pure: it compares a candidate against a snapshot of
existing contacts. load_contact_snapshot() fetches that snapshot; database
errors propagate so an outage is never reported as "not a duplicate".
"""
import logging
from typing import NamedTuple, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Profile
from utils.phone import normalize_phone

logger = logging.getLogger(__name__)


class ContactIdentifier(NamedTuple):
    """The contact fields of one existing profile."""
    email: Optional[str]
    phone: Optional[str]


class DuplicateCheckResult(NamedTuple):
    email_exists: bool
    phone_exists: bool


def _canonical_email(email: str) -> str:
    return email.strip().lower()


def check_duplicates(
    email: Optional[str],
    phone: Optional[str],
    existing: Sequence[ContactIdentifier],
    country_code: str = "62",
) -> DuplicateCheckResult:
    """
    Report whether the candidate email and/or phone already belong to a profile.

    Emails match case-insensitively after trimming; phones match after
    normalize_phone(). A missing candidate field is never a duplicate.
    """
    email_exists = False
    phone_exists = False

    if email:
        wanted = _canonical_email(email)
        email_exists = any(
            c.email is not None and _canonical_email(c.email) == wanted
            for c in existing
        )

    if phone:
        wanted = normalize_phone(phone, country_code)
        phone_exists = any(
            c.phone is not None and normalize_phone(c.phone, country_code) == wanted
            for c in existing
        )

    return DuplicateCheckResult(email_exists=email_exists, phone_exists=phone_exists)


async def load_contact_snapshot(
    db: AsyncSession,
    *,
    include_email: bool = True,
    include_phone: bool = True,
) -> list[ContactIdentifier]:
    """Fetch every profile that has a non-null email or phone number."""
    conditions = []
    if include_email:
        conditions.append(Profile.email.is_not(None))
    if include_phone:
        conditions.append(Profile.phone_number.is_not(None))
    if not conditions:
        return []

    result = await db.execute(
        select(Profile.email, Profile.phone_number).where(or_(*conditions))
    )
    return [
        ContactIdentifier(
            email=row.email if include_email else None,
            phone=row.phone_number if include_phone else None,
        )
        for row in result.all()
    ]
