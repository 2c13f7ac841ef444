"""
Payment Routes — checkout creation for both gateways.

Endpoints:
    POST /payment/create-package        — Midtrans Snap token for a package
    POST /payment/create-class          — Midtrans Snap token for class bookings
    GET  /payment/status/{order_id}     — Midtrans status + mapped internal statuses
    POST /payment/create-invoice        — Xendit invoice (package | single_class)
    GET  /payment/invoice/{invoice_id}  — Xendit invoice lookup

Nothing is persisted here: bookings are created (pending_payment) by the
client beforehand, and the webhooks record the outcome.
"""
import logging

from fastapi import APIRouter, Depends

from deps import get_midtrans_client, get_xendit_client
from domain.errors import GatewayError
from exceptions import PaymentGatewayError
from models import (
    CreateClassPaymentRequest,
    CreateInvoiceRequest,
    CreatePackagePaymentRequest,
    InvoiceResponse,
    PaymentTokenResponse,
)
from services.midtrans_service import MidtransClient, map_transaction_status
from services.xendit_service import XenditClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment", tags=["payment"])


# ════════════════════════════════════════════════════════════════════
# Midtrans
# ════════════════════════════════════════════════════════════════════


@router.post("/create-package", response_model=PaymentTokenResponse)
async def create_package_payment(
    req: CreatePackagePaymentRequest,
    midtrans: MidtransClient = Depends(get_midtrans_client),
):
    try:
        result = await midtrans.create_package_transaction(
            user_id=req.user_id,
            user_email=req.user_email,
            user_name=req.user_name,
            user_phone=req.user_phone,
            package_type_id=req.package_type_id,
            package_name=req.package_name,
            amount=req.amount,
        )
    except PaymentGatewayError as e:
        logger.error(f"Create package payment failed: {e}")
        raise GatewayError("midtrans", "Failed to create payment")

    return PaymentTokenResponse(**result)


@router.post("/create-class", response_model=PaymentTokenResponse)
async def create_class_payment(
    req: CreateClassPaymentRequest,
    midtrans: MidtransClient = Depends(get_midtrans_client),
):
    try:
        result = await midtrans.create_class_transaction(
            user_id=req.user_id,
            user_email=req.user_email,
            user_name=req.user_name,
            user_phone=req.user_phone,
            class_id=req.class_id,
            class_name=req.class_name,
            class_date=req.class_date,
            amount=req.amount,
            booking_ids=req.booking_ids,
        )
    except PaymentGatewayError as e:
        logger.error(f"Create class payment failed: {e}")
        raise GatewayError("midtrans", "Failed to create payment")

    return PaymentTokenResponse(**result)


@router.get("/status/{order_id}")
async def get_payment_status(
    order_id: str,
    midtrans: MidtransClient = Depends(get_midtrans_client),
):
    try:
        transaction = await midtrans.get_transaction_status(order_id)
    except PaymentGatewayError as e:
        logger.error(f"Status lookup failed for {order_id}: {e}")
        raise GatewayError("midtrans", "Failed to fetch payment status")

    mapping = map_transaction_status(transaction.get("transaction_status", ""))
    return {
        "success": True,
        "orderId": order_id,
        "transactionStatus": transaction.get("transaction_status"),
        "fraudStatus": transaction.get("fraud_status"),
        "paymentStatus": mapping.payment_status.value,
        "bookingStatus": mapping.booking_status.value,
        "grossAmount": transaction.get("gross_amount"),
        "paymentType": transaction.get("payment_type"),
    }


# ════════════════════════════════════════════════════════════════════
# Xendit
# ════════════════════════════════════════════════════════════════════


@router.post("/create-invoice", response_model=InvoiceResponse)
async def create_invoice(
    req: CreateInvoiceRequest,
    xendit: XenditClient = Depends(get_xendit_client),
):
    try:
        if req.type == "package":
            result = await xendit.create_package_invoice(
                user_id=req.user_id,
                user_email=req.user_email,
                user_name=req.user_name,
                package_type_id=req.package_type_id,
                package_name=req.package_name,
                amount=req.amount,
            )
        else:
            result = await xendit.create_class_invoice(
                user_id=req.user_id,
                user_email=req.user_email,
                user_name=req.user_name,
                class_id=req.class_id,
                class_name=req.class_name,
                class_date=req.class_date or "",
                booking_id=req.booking_id,
                amount=req.amount,
            )
    except PaymentGatewayError as e:
        logger.error(f"Create {req.type} invoice failed: {e}")
        raise GatewayError("xendit", "Failed to create invoice")

    return InvoiceResponse(**result)


@router.get("/invoice/{invoice_id}")
async def get_invoice(
    invoice_id: str,
    xendit: XenditClient = Depends(get_xendit_client),
):
    try:
        invoice = await xendit.get_invoice(invoice_id)
    except PaymentGatewayError as e:
        logger.error(f"Invoice lookup failed for {invoice_id}: {e}")
        raise GatewayError("xendit", "Failed to fetch invoice")

    return {
        "success": True,
        "invoiceId": invoice.get("id"),
        "status": invoice.get("status"),
        "amount": invoice.get("amount"),
        "invoiceUrl": invoice.get("invoice_url"),
        "paidAt": invoice.get("paid_at"),
    }
