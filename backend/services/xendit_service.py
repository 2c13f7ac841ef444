"""
Xendit Service

Handles:
    1. Invoice creation with booking metadata packed into external_id
    2. Callback token verification (fails closed)
    3. Invoice callback processing (PAID → grant/confirm, EXPIRED → cancel)

external_id format: <base64(JSON metadata)>_<ms timestamp>, where metadata is
    {"t": "pkg", "u": user_id, "p": package_type_id}
    {"t": "cls", "u": user_id, "c": class_id, "b": booking_id}
Xendit caps external_id at 256 chars.
"""
import base64
import binascii
import hmac
import json
import logging
import time
from datetime import datetime
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from domain.constants import (
    CLASS_PAYMENT_EXPIRY_HOURS,
    PACKAGE_PAYMENT_EXPIRY_HOURS,
    XENDIT_META_CLASS,
    XENDIT_META_PACKAGE,
    XENDIT_STATUS_EXPIRED,
    XENDIT_STATUS_PAID,
)
from domain.enums import BookingStatus, PaymentMethod, PaymentStatus, TransactionType
from exceptions import PaymentGatewayError
from services import booking_service

logger = logging.getLogger(__name__)

XENDIT_API_URL = "https://api.xendit.co"

PACKAGE_INVOICE_DURATION_SECONDS = PACKAGE_PAYMENT_EXPIRY_HOURS * 3600
CLASS_INVOICE_DURATION_SECONDS = CLASS_PAYMENT_EXPIRY_HOURS * 3600


# ════════════════════════════════════════════════════════════════════
# Metadata Encoding
# ════════════════════════════════════════════════════════════════════


def encode_external_id(metadata: dict, now_ms: Optional[int] = None, max_encoded: int = 200) -> str:
    encoded = base64.b64encode(json.dumps(metadata, separators=(",", ":")).encode("utf-8")).decode("ascii")
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{encoded[:max_encoded]}_{now_ms}"


def decode_external_id(external_id: str) -> Optional[dict]:
    """
    Recover the metadata dict from an external_id.

    Returns None when the id was not produced by encode_external_id (or was
    truncated past recovery); callers treat that as "nothing to process".
    """
    if not external_id or "_" not in external_id:
        return None
    encoded = external_id.rsplit("_", 1)[0]
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
        data = json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        logger.warning(f"Failed to decode Xendit metadata from {external_id[:24]}...: {e}")
        return None
    return data if isinstance(data, dict) else None


# ════════════════════════════════════════════════════════════════════
# Callback Verification
# ════════════════════════════════════════════════════════════════════


def verify_callback_token(callback_token: Optional[str], webhook_token: str) -> bool:
    """
    Compare the x-callback-token header with the configured token.

    FAILS CLOSED when the token is not configured.
    """
    if not webhook_token:
        logger.error("XENDIT_WEBHOOK_TOKEN not configured — rejecting callback")
        return False
    if not callback_token:
        return False
    return hmac.compare_digest(callback_token.encode("utf-8"), webhook_token.encode("utf-8"))


# ════════════════════════════════════════════════════════════════════
# Client
# ════════════════════════════════════════════════════════════════════


class XenditClient:
    """Invoice API access for one secret key."""

    def __init__(self, secret_key: str, webhook_token: str = "", app_url: str = "", studio_name: str = "", timeout: float = 15.0):
        self.secret_key = secret_key
        self.webhook_token = webhook_token
        self.app_url = app_url.rstrip("/")
        self.studio_name = studio_name
        self.timeout = timeout

    def verify(self, callback_token: Optional[str]) -> bool:
        return verify_callback_token(callback_token, self.webhook_token)

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        if not self.secret_key:
            raise PaymentGatewayError("XENDIT_SECRET_KEY is not configured")
        try:
            async with httpx.AsyncClient(base_url=XENDIT_API_URL, timeout=self.timeout) as client:
                response = await client.request(method, path, auth=(self.secret_key, ""), **kwargs)
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"Xendit unreachable: {e}") from e

        if response.status_code >= 400:
            raise PaymentGatewayError(
                f"Xendit {method} {path} returned {response.status_code}: {response.text[:200]}"
            )
        return response.json()

    async def _create_invoice(
        self,
        *,
        external_id: str,
        amount: int,
        payer_email: str,
        payer_name: str,
        description: str,
        item_name: str,
        duration_seconds: int,
        success_path: str,
    ) -> dict:
        payload = {
            "external_id": external_id,
            "amount": amount,
            "payer_email": payer_email,
            "description": description,
            "invoice_duration": duration_seconds,
            "currency": "IDR",
            "success_redirect_url": f"{self.app_url}{success_path}",
            "failure_redirect_url": f"{self.app_url}/payment/failed",
            "items": [{"name": item_name, "quantity": 1, "price": amount}],
            "customer": {"given_names": payer_name, "email": payer_email},
            "customer_notification_preference": {
                "invoice_created": ["email"],
                "invoice_paid": ["email"],
            },
        }
        invoice = await self._request("POST", "/v2/invoices", json=payload)
        return {"invoiceUrl": invoice.get("invoice_url"), "invoiceId": invoice.get("id")}

    async def create_package_invoice(
        self,
        *,
        user_id: str,
        user_email: str,
        user_name: str,
        package_type_id: str,
        package_name: str,
        amount: int,
    ) -> dict:
        external_id = encode_external_id({"t": XENDIT_META_PACKAGE, "u": user_id, "p": package_type_id})
        result = await self._create_invoice(
            external_id=external_id,
            amount=amount,
            payer_email=user_email,
            payer_name=user_name,
            description=f"Pembelian {package_name} - {self.studio_name}",
            item_name=package_name,
            duration_seconds=PACKAGE_INVOICE_DURATION_SECONDS,
            success_path="/payment/success",
        )
        logger.info(f"  🧾 Xendit package invoice created: {result['invoiceId']} (Rp{amount})")
        return result

    async def create_class_invoice(
        self,
        *,
        user_id: str,
        user_email: str,
        user_name: str,
        class_id: str,
        class_name: str,
        class_date: str,
        booking_id: str,
        amount: int,
    ) -> dict:
        external_id = encode_external_id(
            {"t": XENDIT_META_CLASS, "u": user_id, "c": class_id, "b": booking_id}
        )
        label = f"{class_name} - {class_date}"
        result = await self._create_invoice(
            external_id=external_id,
            amount=amount,
            payer_email=user_email,
            payer_name=user_name,
            description=label,
            item_name=label,
            duration_seconds=CLASS_INVOICE_DURATION_SECONDS,
            success_path="/payment/success?type=class",
        )
        logger.info(f"  🧾 Xendit class invoice created: {result['invoiceId']} (booking {booking_id[:8]}...)")
        return result

    async def get_invoice(self, invoice_id: str) -> dict:
        return await self._request("GET", f"/v2/invoices/{invoice_id}")


# ════════════════════════════════════════════════════════════════════
# Callback Processing
# ════════════════════════════════════════════════════════════════════


def _parse_paid_at(value: Optional[str]) -> Optional[datetime]:
    """Xendit sends ISO-8601 UTC ('2026-01-05T08:00:00.000Z'); stored naive."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        logger.warning(f"Unparseable Xendit paid_at: {value!r}")
        return None


async def process_invoice_callback(callback: dict, db: AsyncSession) -> dict:
    """Apply a verified invoice callback."""
    status = callback.get("status")
    invoice_id = callback.get("id", "")
    metadata = decode_external_id(callback.get("external_id") or "")

    logger.info(f"  📩 Xendit callback: invoice={invoice_id} status={status}")

    if status == XENDIT_STATUS_PAID:
        if not metadata or metadata.get("t") not in (XENDIT_META_PACKAGE, XENDIT_META_CLASS):
            return {"received": True, "message": "No metadata to process"}

        paid_at = _parse_paid_at(callback.get("paid_at")) or datetime.utcnow()

        if metadata["t"] == XENDIT_META_PACKAGE:
            package_type = await booking_service.get_package_type(db, metadata.get("p", ""))
            if package_type is None:
                logger.error(f"Package type not found for invoice {invoice_id}: {metadata.get('p')}")
                return {"received": True, "message": "Unknown package type"}
            if await booking_service.is_already_paid(db, invoice_id):
                logger.info(f"Invoice {invoice_id} already processed, skipping")
                return {"received": True, "message": "Already processed"}

            await booking_service.grant_package(
                db, user_id=metadata["u"], package_type=package_type, purchased_at=paid_at
            )
            await booking_service.upsert_transaction(
                db,
                payment_id=invoice_id,
                user_id=metadata["u"],
                transaction_type=TransactionType.PACKAGE_PURCHASE.value,
                package_type_id=package_type.id,
                amount=float(callback.get("amount") or 0),
                payment_method=PaymentMethod.XENDIT.value,
                payment_status=PaymentStatus.PAID.value,
                location=package_type.location,
                paid_at=paid_at,
            )
        else:
            await booking_service.apply_booking_payment(
                db,
                [metadata.get("b", "")],
                booking_status=BookingStatus.CONFIRMED.value,
                payment_status=PaymentStatus.PAID.value,
                payment_id=invoice_id,
            )

        await db.commit()
        return {"received": True}

    if status == XENDIT_STATUS_EXPIRED:
        if metadata and metadata.get("t") == XENDIT_META_CLASS and metadata.get("b"):
            await booking_service.apply_booking_payment(
                db,
                [metadata["b"]],
                booking_status=BookingStatus.CANCELLED.value,
                payment_status=PaymentStatus.EXPIRED.value,
                payment_id=invoice_id,
            )
            await db.commit()
        return {"received": True}

    return {"received": True}
