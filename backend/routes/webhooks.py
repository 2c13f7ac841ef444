"""
Webhook Routes — inbound calls from payment gateways and WhatsApp.

Endpoints:
    POST /webhooks/midtrans   — Midtrans HTTP notification
    POST /webhooks/xendit     — Xendit invoice callback
    GET  /webhooks/whatsapp   — WhatsApp Cloud API verification handshake
    POST /webhooks/whatsapp   — WhatsApp incoming messages (logged only)

Every gateway webhook is authenticated before anything is read from the
database (fail closed). Persistence errors propagate as 500 so the gateway
retries the notification.
"""
import hmac
import logging
from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from deps import get_midtrans_client, get_xendit_client
from domain.errors import GatewayError, PermissionDeniedError, UnauthorizedError, ValidationError
from exceptions import PaymentGatewayError
from models import MidtransNotification, XenditInvoiceCallback
from services import midtrans_service, xendit_service
from services.midtrans_service import MidtransClient
from services.xendit_service import XenditClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


# ════════════════════════════════════════════════════════════════════
# Midtrans
# ════════════════════════════════════════════════════════════════════


@router.post("/midtrans")
async def midtrans_webhook(
    notification: MidtransNotification,
    db: AsyncSession = Depends(get_db),
    midtrans: MidtransClient = Depends(get_midtrans_client),
):
    """
    Midtrans payment notification.

    1. Verify signature_key (401 on mismatch, nothing persisted)
    2. Fetch the transaction from the Core API for our custom fields
    3. Map status and apply to packages / bookings / transactions
    """
    order_id = notification.order_id
    logger.info(f"Midtrans webhook received: order={order_id} status={notification.transaction_status}")

    if not midtrans.verify(
        order_id,
        notification.status_code,
        notification.gross_amount,
        notification.signature_key,
    ):
        logger.warning(f"❌ Midtrans signature rejected for order {order_id}")
        raise UnauthorizedError("Invalid signature")

    try:
        transaction = await midtrans.get_transaction_status(order_id)
    except PaymentGatewayError as e:
        logger.error(f"Midtrans status fetch failed for {order_id}: {e}")
        raise GatewayError("midtrans", "Failed to fetch transaction details")

    if not transaction.get("custom_field1") or not transaction.get("custom_field3"):
        logger.error(f"Midtrans order {order_id} is missing custom fields")
        raise ValidationError("Missing custom fields", details={"orderId": order_id})

    result = await midtrans_service.process_notification(
        notification.model_dump(), transaction, db
    )
    return {"success": True, "result": result}


# ════════════════════════════════════════════════════════════════════
# Xendit
# ════════════════════════════════════════════════════════════════════


@router.post("/xendit")
async def xendit_webhook(
    request: Request,
    x_callback_token: Optional[str] = Header(None, alias="x-callback-token"),
    db: AsyncSession = Depends(get_db),
    xendit: XenditClient = Depends(get_xendit_client),
):
    """Xendit invoice callback. The token is checked before the body is parsed."""
    if not xendit.verify(x_callback_token):
        logger.warning("❌ Xendit callback rejected: invalid callback token")
        raise UnauthorizedError("Invalid callback token")

    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON payload")

    try:
        callback = XenditInvoiceCallback.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(
            "Invalid callback payload",
            details={"errors": e.errors(include_url=False, include_context=False)},
        )

    return await xendit_service.process_invoice_callback(callback.model_dump(), db)


# ════════════════════════════════════════════════════════════════════
# WhatsApp
# ════════════════════════════════════════════════════════════════════


@router.get("/whatsapp", response_class=PlainTextResponse)
async def whatsapp_verify(
    mode: Optional[str] = Query(None, alias="hub.mode"),
    token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
):
    """Meta's subscription handshake: echo hub.challenge when the token matches."""
    expected = settings.whatsapp_verify_token
    verified = bool(expected and token) and hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))
    if mode == "subscribe" and verified:
        logger.info("✅ WhatsApp webhook verified")
        return PlainTextResponse(challenge or "")

    logger.warning(f"WhatsApp verification rejected (mode={mode})")
    raise PermissionDeniedError("Forbidden")


@router.post("/whatsapp")
async def whatsapp_incoming(request: Request):
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON payload")

    try:
        message = body["entry"][0]["changes"][0]["value"]["messages"][0]
    except (KeyError, IndexError, TypeError):
        message = None

    if message:
        sender = message.get("from")
        text = (message.get("text") or {}).get("body")
        logger.info(f"💬 WhatsApp message from {sender}: {text}")

    return {"success": True}
