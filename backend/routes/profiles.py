"""
Profile Routes

Endpoints:
    POST /profiles/check-duplicate — is this email / phone already registered?

Called by the sign-up form before an account is created. Rate limited per
client IP because the answer leaks whether a contact is a customer.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from middleware.rate_limit import rate_limit
from models import DuplicateCheckRequest, DuplicateCheckResponse
from services import duplicate_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.post(
    "/check-duplicate",
    response_model=DuplicateCheckResponse,
    dependencies=[Depends(rate_limit())],
)
async def check_duplicate(
    req: DuplicateCheckRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Report whether the email and/or phone already belong to a profile.

    Database failures propagate as 500; never reported as "no duplicate".
    """
    if not req.email and not req.phone:
        return DuplicateCheckResponse(emailExists=False, phoneExists=False)

    existing = await duplicate_service.load_contact_snapshot(
        db,
        include_email=bool(req.email),
        include_phone=bool(req.phone),
    )
    result = duplicate_service.check_duplicates(
        req.email,
        req.phone,
        existing,
        country_code=settings.phone_country_code,
    )

    if result.email_exists or result.phone_exists:
        logger.info(
            f"Duplicate contact detected (email={result.email_exists}, phone={result.phone_exists})"
        )
    return DuplicateCheckResponse(emailExists=result.email_exists, phoneExists=result.phone_exists)
