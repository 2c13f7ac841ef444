"""
Email Routes — transactional mail triggered by the web client.

Endpoints:
    POST /send-email/booking-confirmation
    POST /send-email/cancellation-confirmation
    POST /send-email/welcome
"""
import logging

from fastapi import APIRouter, Depends

from deps import get_email_client
from domain.errors import GatewayError
from exceptions import EmailDeliveryError
from models import (
    BookingConfirmationEmailRequest,
    CancellationEmailRequest,
    WelcomeEmailRequest,
)
from services.email_service import EmailClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/send-email", tags=["email"])


@router.post("/booking-confirmation")
async def send_booking_confirmation(
    req: BookingConfirmationEmailRequest,
    email: EmailClient = Depends(get_email_client),
):
    try:
        data = await email.send_booking_confirmation(
            to=req.to,
            user_name=req.user_name,
            class_name=req.class_name,
            date=req.date,
            time=req.time,
            coach=req.coach,
            location=req.location,
        )
    except EmailDeliveryError as e:
        logger.error(f"Booking confirmation email failed: {e}")
        raise GatewayError("email", "Failed to send email")
    return {"success": True, "data": data}


@router.post("/cancellation-confirmation")
async def send_cancellation_confirmation(
    req: CancellationEmailRequest,
    email: EmailClient = Depends(get_email_client),
):
    try:
        data = await email.send_cancellation_confirmation(
            to=req.to,
            user_name=req.user_name,
            class_name=req.class_name,
            date=req.date,
            time=req.time,
        )
    except EmailDeliveryError as e:
        logger.error(f"Cancellation email failed: {e}")
        raise GatewayError("email", "Failed to send email")
    return {"success": True, "data": data}


@router.post("/welcome")
async def send_welcome(
    req: WelcomeEmailRequest,
    email: EmailClient = Depends(get_email_client),
):
    try:
        data = await email.send_welcome(to=req.to, user_name=req.user_name)
    except EmailDeliveryError as e:
        logger.error(f"Welcome email failed: {e}")
        raise GatewayError("email", "Failed to send email")
    return {"success": True, "data": data}
