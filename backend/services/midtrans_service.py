"""
Midtrans Service

Handles:
    1. Snap transaction creation for packages and single classes
    2. Notification signature verification (SHA-512, fails closed)
    3. Gateway status → internal payment/booking status mapping
    4. Notification processing → package grants, booking updates, transaction rows

The client is a plain configuration object built once at startup from
settings; each call opens its own httpx.AsyncClient.
"""
import hashlib
import hmac
import logging
import time
from datetime import datetime
from typing import NamedTuple, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from domain.constants import (
    CLASS_PAYMENT_EXPIRY_HOURS,
    MIDTRANS_FRAUD_ACCEPT,
    MIDTRANS_KIND_PACKAGE,
    MIDTRANS_KIND_SINGLE_CLASS,
    ORDER_CLASS_PREFIX,
    ORDER_PACKAGE_PREFIX,
    PACKAGE_PAYMENT_EXPIRY_HOURS,
)
from domain.enums import (
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    TransactionStatus,
    TransactionType,
)
from exceptions import PaymentGatewayError
from services import booking_service

logger = logging.getLogger(__name__)

SNAP_SANDBOX_URL = "https://app.sandbox.midtrans.com/snap/v1/transactions"
SNAP_PRODUCTION_URL = "https://app.midtrans.com/snap/v1/transactions"
CORE_SANDBOX_URL = "https://api.sandbox.midtrans.com/v2"
CORE_PRODUCTION_URL = "https://api.midtrans.com/v2"


# ════════════════════════════════════════════════════════════════════
# Status Mapping
# ════════════════════════════════════════════════════════════════════


class StatusMapping(NamedTuple):
    payment_status: PaymentStatus
    booking_status: BookingStatus


_STATUS_TABLE: dict[str, StatusMapping] = {
    TransactionStatus.CAPTURE.value: StatusMapping(PaymentStatus.PAID, BookingStatus.CONFIRMED),
    TransactionStatus.SETTLEMENT.value: StatusMapping(PaymentStatus.PAID, BookingStatus.CONFIRMED),
    TransactionStatus.PENDING.value: StatusMapping(PaymentStatus.PENDING, BookingStatus.PENDING_PAYMENT),
    TransactionStatus.DENY.value: StatusMapping(PaymentStatus.FAILED, BookingStatus.CANCELLED),
    TransactionStatus.CANCEL.value: StatusMapping(PaymentStatus.FAILED, BookingStatus.CANCELLED),
    TransactionStatus.FAILURE.value: StatusMapping(PaymentStatus.FAILED, BookingStatus.CANCELLED),
    TransactionStatus.EXPIRE.value: StatusMapping(PaymentStatus.EXPIRED, BookingStatus.CANCELLED),
}

_DEFAULT_MAPPING = StatusMapping(PaymentStatus.PENDING, BookingStatus.PENDING_PAYMENT)


def map_transaction_status(transaction_status: str) -> StatusMapping:
    """
    Translate a Midtrans transaction_status into (payment_status, booking_status).

    Unknown codes map to pending/pending_payment: a booking stays recoverable
    rather than being cancelled on a status we don't recognize.
    """
    return _STATUS_TABLE.get(transaction_status, _DEFAULT_MAPPING)


def is_settled(transaction_status: str) -> bool:
    return transaction_status in (TransactionStatus.CAPTURE.value, TransactionStatus.SETTLEMENT.value)


# ════════════════════════════════════════════════════════════════════
# Signature Verification
# ════════════════════════════════════════════════════════════════════


def compute_signature_key(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    """SHA-512 hex digest Midtrans sends as signature_key."""
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()


def verify_signature_key(
    order_id: str,
    status_code: str,
    gross_amount: str,
    server_key: str,
    signature_key: Optional[str],
) -> bool:
    """
    Authenticate a notification by recomputing its signature_key.

    FAILS CLOSED: an empty server key or a missing signature never verifies.
    Comparison is exact (case-sensitive) and constant-time.
    """
    if not server_key:
        logger.error("MIDTRANS_SERVER_KEY not configured — rejecting notification")
        return False
    if not signature_key:
        logger.warning(f"Midtrans notification without signature_key (order={order_id})")
        return False

    expected = compute_signature_key(order_id, status_code, gross_amount, server_key)
    return hmac.compare_digest(expected.encode("utf-8"), signature_key.encode("utf-8"))


# ════════════════════════════════════════════════════════════════════
# Client
# ════════════════════════════════════════════════════════════════════


def build_order_id(prefix: str, subject_id: str, user_id: str, now_ms: Optional[int] = None) -> str:
    """Order ids carry a short prefix of each id plus a millisecond timestamp."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{prefix}_{subject_id[:8]}_{user_id[:8]}_{now_ms}"


class MidtransClient:
    """Snap + Core API access for one server key."""

    def __init__(
        self,
        server_key: str,
        client_key: str = "",
        is_production: bool = False,
        app_url: str = "",
        timeout: float = 15.0,
    ):
        self.server_key = server_key
        self.client_key = client_key
        self.is_production = is_production
        self.app_url = app_url.rstrip("/")
        self.timeout = timeout

    @property
    def snap_url(self) -> str:
        return SNAP_PRODUCTION_URL if self.is_production else SNAP_SANDBOX_URL

    @property
    def core_url(self) -> str:
        return CORE_PRODUCTION_URL if self.is_production else CORE_SANDBOX_URL

    def verify(self, order_id: str, status_code: str, gross_amount: str, signature_key: Optional[str]) -> bool:
        return verify_signature_key(order_id, status_code, gross_amount, self.server_key, signature_key)

    async def _create_snap_transaction(self, payload: dict) -> dict:
        if not self.server_key:
            raise PaymentGatewayError("MIDTRANS_SERVER_KEY is not configured")
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.snap_url,
                    json=payload,
                    auth=(self.server_key, ""),
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"Midtrans unreachable: {e}") from e

        if response.status_code not in (200, 201):
            raise PaymentGatewayError(
                f"Midtrans Snap returned {response.status_code}: {response.text[:200]}"
            )
        return response.json()

    async def create_package_transaction(
        self,
        *,
        user_id: str,
        user_email: str,
        user_name: str,
        package_type_id: str,
        package_name: str,
        amount: int,
        user_phone: Optional[str] = None,
    ) -> dict:
        """Create a Snap transaction for a package purchase (24h expiry)."""
        order_id = build_order_id(ORDER_PACKAGE_PREFIX, package_type_id, user_id)
        payload = {
            "transaction_details": {"order_id": order_id, "gross_amount": amount},
            "item_details": [
                {
                    "id": package_type_id,
                    "price": amount,
                    "quantity": 1,
                    "name": package_name,
                    "category": "Package",
                }
            ],
            "customer_details": {
                "first_name": user_name,
                "email": user_email,
                "phone": user_phone or "",
            },
            "custom_field1": user_id,
            "custom_field2": package_type_id,
            "custom_field3": MIDTRANS_KIND_PACKAGE,
            "callbacks": {
                "finish": f"{self.app_url}/payment/success?type=package",
                "error": f"{self.app_url}/payment/failed",
                "pending": f"{self.app_url}/payment/pending",
            },
            "expiry": {"unit": "hours", "duration": PACKAGE_PAYMENT_EXPIRY_HOURS},
        }
        data = await self._create_snap_transaction(payload)
        logger.info(f"  💳 Midtrans package order created: {order_id} (Rp{amount})")
        return {"token": data.get("token"), "redirectUrl": data.get("redirect_url"), "orderId": order_id}

    async def create_class_transaction(
        self,
        *,
        user_id: str,
        user_email: str,
        user_name: str,
        class_id: str,
        class_name: str,
        class_date: str,
        amount: int,
        booking_ids: list[str],
        user_phone: Optional[str] = None,
    ) -> dict:
        """Create a Snap transaction for one or more bookings of a class (1h expiry)."""
        order_id = build_order_id(ORDER_CLASS_PREFIX, class_id, user_id)
        payload = {
            "transaction_details": {"order_id": order_id, "gross_amount": amount},
            "item_details": [
                {
                    "id": class_id,
                    "price": amount,
                    "quantity": 1,
                    "name": f"{class_name} - {class_date}",
                    "category": "Class",
                }
            ],
            "customer_details": {
                "first_name": user_name,
                "email": user_email,
                "phone": user_phone or "",
            },
            "custom_field1": user_id,
            # Midtrans custom fields hold up to 255 chars
            "custom_field2": ",".join(booking_ids),
            "custom_field3": MIDTRANS_KIND_SINGLE_CLASS,
            "callbacks": {
                "finish": f"{self.app_url}/payment/success?type=class",
                "error": f"{self.app_url}/payment/failed",
                "pending": f"{self.app_url}/payment/pending",
            },
            "expiry": {"unit": "hours", "duration": CLASS_PAYMENT_EXPIRY_HOURS},
        }
        data = await self._create_snap_transaction(payload)
        logger.info(f"  💳 Midtrans class order created: {order_id} ({len(booking_ids)} booking(s), Rp{amount})")
        return {"token": data.get("token"), "redirectUrl": data.get("redirect_url"), "orderId": order_id}

    async def get_transaction_status(self, order_id: str) -> dict:
        """Fetch the authoritative transaction record from the Core API."""
        if not self.server_key:
            raise PaymentGatewayError("MIDTRANS_SERVER_KEY is not configured")
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.core_url}/{order_id}/status",
                    auth=(self.server_key, ""),
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"Midtrans unreachable: {e}") from e

        if response.status_code != 200:
            raise PaymentGatewayError(
                f"Midtrans status lookup returned {response.status_code} for {order_id}"
            )
        data = response.json()
        # Core API reports its own errors in-band with HTTP 200
        if str(data.get("status_code", "")).startswith(("4", "5")):
            raise PaymentGatewayError(
                f"Midtrans status lookup failed for {order_id}: {data.get('status_message')}"
            )
        return data


# ════════════════════════════════════════════════════════════════════
# Notification Processing
# ════════════════════════════════════════════════════════════════════


def parse_transaction_time(value: Optional[str]) -> Optional[datetime]:
    """Midtrans sends 'YYYY-MM-DD HH:MM:SS' in studio-local time."""
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d %H:%M:%S")
    except ValueError:
        logger.warning(f"Unparseable Midtrans transaction_time: {value!r}")
        return None


async def process_notification(
    notification: dict,
    transaction: dict,
    db: AsyncSession,
) -> dict:
    """
    Apply a verified notification.

    `notification` is the webhook body; `transaction` is the Core API record
    that carries our custom fields. Returns a small summary for logging/tests.
    """
    order_id = notification["order_id"]
    transaction_status = notification["transaction_status"]
    fraud_status = notification.get("fraud_status")
    mapping = map_transaction_status(transaction_status)
    user_id = transaction.get("custom_field1")
    kind = transaction.get("custom_field3")
    amount = float(notification["gross_amount"])
    transaction_time = parse_transaction_time(notification.get("transaction_time"))
    paid_at = transaction_time if is_settled(transaction_status) else None

    logger.info(
        f"  📩 Midtrans notification: order={order_id} status={transaction_status} "
        f"fraud={fraud_status} → {mapping.payment_status.value}/{mapping.booking_status.value}"
    )

    if kind == MIDTRANS_KIND_PACKAGE:
        package_type_id = transaction.get("custom_field2") or ""
        package_type = await booking_service.get_package_type(db, package_type_id)
        if package_type is None:
            logger.error(f"Package type not found for order {order_id}: {package_type_id}")
            return {"status": "ignored", "reason": "unknown_package_type"}

        granted = False
        if (
            is_settled(transaction_status)
            and fraud_status == MIDTRANS_FRAUD_ACCEPT
            and not await booking_service.is_already_paid(db, order_id)
        ):
            await booking_service.grant_package(
                db,
                user_id=user_id,
                package_type=package_type,
                purchased_at=transaction_time or booking_service.studio_now(),
            )
            granted = True

        await booking_service.upsert_transaction(
            db,
            payment_id=order_id,
            user_id=user_id,
            transaction_type=TransactionType.PACKAGE_PURCHASE.value,
            package_type_id=package_type_id,
            amount=amount,
            payment_method=PaymentMethod.MIDTRANS.value,
            payment_status=mapping.payment_status.value,
            location=package_type.location,
            paid_at=paid_at,
        )
        await db.commit()
        return {"status": "ok", "kind": kind, "paymentStatus": mapping.payment_status.value, "packageGranted": granted}

    if kind == MIDTRANS_KIND_SINGLE_CLASS:
        booking_ids = [b for b in (transaction.get("custom_field2") or "").split(",") if b]
        await booking_service.apply_booking_payment(
            db,
            booking_ids,
            booking_status=mapping.booking_status.value,
            payment_status=mapping.payment_status.value,
            payment_id=order_id,
        )
        location = await booking_service.booking_location(db, booking_ids[0]) if booking_ids else None
        await booking_service.upsert_transaction(
            db,
            payment_id=order_id,
            user_id=user_id,
            transaction_type=TransactionType.SINGLE_CLASS.value,
            booking_id=booking_ids[0] if booking_ids else None,
            amount=amount,
            payment_method=PaymentMethod.MIDTRANS.value,
            payment_status=mapping.payment_status.value,
            location=location,
            paid_at=paid_at,
        )
        await db.commit()
        return {
            "status": "ok",
            "kind": kind,
            "paymentStatus": mapping.payment_status.value,
            "bookingStatus": mapping.booking_status.value,
            "bookings": len(booking_ids),
        }

    logger.warning(f"Midtrans order {order_id} has unknown transaction kind: {kind!r}")
    return {"status": "ignored", "reason": f"unknown_kind_{kind}"}
