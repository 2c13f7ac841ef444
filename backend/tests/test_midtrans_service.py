"""
Tests for the Midtrans service.

Tests: status mapping, signature verification, order ids, Core API client,
and notification processing against an in-memory database.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import hashlib
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from sqlalchemy import select

from db_models import Booking, Package, Transaction
from domain.enums import BookingStatus, PaymentStatus
from exceptions import PaymentGatewayError
from services.midtrans_service import (
    MidtransClient,
    StatusMapping,
    build_order_id,
    compute_signature_key,
    map_transaction_status,
    parse_transaction_time,
    process_notification,
    verify_signature_key,
)

SERVER_KEY = "SB-Mid-server-abc123"


class TestMapTransactionStatus:

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "status,payment,booking",
        [
            ("capture", PaymentStatus.PAID, BookingStatus.CONFIRMED),
            ("settlement", PaymentStatus.PAID, BookingStatus.CONFIRMED),
            ("pending", PaymentStatus.PENDING, BookingStatus.PENDING_PAYMENT),
            ("deny", PaymentStatus.FAILED, BookingStatus.CANCELLED),
            ("cancel", PaymentStatus.FAILED, BookingStatus.CANCELLED),
            ("failure", PaymentStatus.FAILED, BookingStatus.CANCELLED),
            ("expire", PaymentStatus.EXPIRED, BookingStatus.CANCELLED),
        ],
    )
    def test_known_statuses(self, status, payment, booking):
        assert map_transaction_status(status) == StatusMapping(payment, booking)

    @pytest.mark.unit
    @pytest.mark.parametrize("status", ["refund", "SETTLEMENT", "", "authorize", "partial_refund"])
    def test_unknown_defaults_to_pending(self, status):
        assert map_transaction_status(status) == StatusMapping(
            PaymentStatus.PENDING, BookingStatus.PENDING_PAYMENT
        )


class TestSignatureVerification:

    @pytest.mark.unit
    def test_digest_is_sha512_of_concatenation(self):
        expected = hashlib.sha512(b"ORDER-1200150000.00" + SERVER_KEY.encode()).hexdigest()
        assert compute_signature_key("ORDER-1", "200", "150000.00", SERVER_KEY) == expected

    @pytest.mark.unit
    def test_fresh_signature_verifies(self):
        sig = compute_signature_key("ORDER-1", "200", "150000.00", SERVER_KEY)
        assert verify_signature_key("ORDER-1", "200", "150000.00", SERVER_KEY, sig) is True

    @pytest.mark.unit
    def test_any_changed_character_fails(self):
        sig = compute_signature_key("ORDER-1", "200", "150000.00", SERVER_KEY)
        for i in (0, len(sig) // 2, len(sig) - 1):
            flipped = sig[:i] + ("0" if sig[i] != "0" else "1") + sig[i + 1:]
            assert verify_signature_key("ORDER-1", "200", "150000.00", SERVER_KEY, flipped) is False

    @pytest.mark.unit
    def test_case_sensitive(self):
        sig = compute_signature_key("ORDER-1", "200", "150000.00", SERVER_KEY)
        assert sig != sig.upper()
        assert verify_signature_key("ORDER-1", "200", "150000.00", SERVER_KEY, sig.upper()) is False

    @pytest.mark.unit
    def test_changed_amount_fails(self):
        sig = compute_signature_key("ORDER-1", "200", "150000.00", SERVER_KEY)
        assert verify_signature_key("ORDER-1", "200", "1.00", SERVER_KEY, sig) is False

    @pytest.mark.unit
    @pytest.mark.parametrize("signature", [None, ""])
    def test_missing_signature_fails_closed(self, signature):
        assert verify_signature_key("ORDER-1", "200", "150000.00", SERVER_KEY, signature) is False

    @pytest.mark.unit
    @pytest.mark.parametrize("signature", ["\u00e9" * 128, "\u00e9"])
    def test_non_ascii_signature_fails_closed(self, signature):
        assert verify_signature_key("ORDER-1", "200", "150000.00", SERVER_KEY, signature) is False

    @pytest.mark.unit
    def test_unconfigured_server_key_fails_closed(self):
        sig = compute_signature_key("ORDER-1", "200", "150000.00", "")
        assert verify_signature_key("ORDER-1", "200", "150000.00", "", sig) is False


class TestOrderIds:

    @pytest.mark.unit
    def test_build_order_id(self):
        order_id = build_order_id("PKG", "44444444-aaaa", "11111111-bbbb", now_ms=1767571200000)
        assert order_id == "PKG_44444444_11111111_1767571200000"

    @pytest.mark.unit
    def test_parse_transaction_time(self):
        assert parse_transaction_time("2026-01-05 08:15:00") == datetime(2026, 1, 5, 8, 15)
        assert parse_transaction_time("05/01/2026") is None
        assert parse_transaction_time(None) is None


def _response(status_code: int, payload: dict) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = str(payload)
    return response


class TestMidtransClient:

    @pytest.mark.unit
    def test_hosts_follow_environment(self):
        assert "sandbox" in MidtransClient(SERVER_KEY).snap_url
        assert "sandbox" not in MidtransClient(SERVER_KEY, is_production=True).core_url

    @pytest.mark.asyncio
    async def test_create_package_transaction_payload(self):
        client = MidtransClient(SERVER_KEY, app_url="https://studio.test/")
        post = AsyncMock(return_value=_response(201, {"token": "snap-tok", "redirect_url": "https://pay"}))
        with patch("httpx.AsyncClient.post", post):
            result = await client.create_package_transaction(
                user_id="11111111-aaaa",
                user_email="sari@example.com",
                user_name="Sari",
                package_type_id="44444444-bbbb",
                package_name="10 Class Pack",
                amount=1200000,
            )

        assert result["token"] == "snap-tok"
        assert result["redirectUrl"] == "https://pay"
        assert result["orderId"].startswith("PKG_44444444_11111111_")

        payload = post.call_args.kwargs["json"]
        assert payload["custom_field1"] == "11111111-aaaa"
        assert payload["custom_field2"] == "44444444-bbbb"
        assert payload["custom_field3"] == "package"
        assert payload["expiry"] == {"unit": "hours", "duration": 24}
        assert payload["callbacks"]["finish"] == "https://studio.test/payment/success?type=package"
        assert post.call_args.kwargs["auth"] == (SERVER_KEY, "")

    @pytest.mark.asyncio
    async def test_create_class_transaction_joins_booking_ids(self):
        client = MidtransClient(SERVER_KEY)
        post = AsyncMock(return_value=_response(201, {"token": "t", "redirect_url": "u"}))
        with patch("httpx.AsyncClient.post", post):
            result = await client.create_class_transaction(
                user_id="11111111-aaaa",
                user_email="sari@example.com",
                user_name="Sari",
                class_id="22222222-cccc",
                class_name="Reformer",
                class_date="2026-01-05",
                amount=150000,
                booking_ids=["b1", "b2"],
            )

        payload = post.call_args.kwargs["json"]
        assert result["orderId"].startswith("CLS_22222222_11111111_")
        assert payload["custom_field2"] == "b1,b2"
        assert payload["custom_field3"] == "single_class"
        assert payload["expiry"]["duration"] == 1

    @pytest.mark.asyncio
    async def test_snap_error_raises(self):
        client = MidtransClient(SERVER_KEY)
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=_response(401, {"error_messages": ["bad key"]}))):
            with pytest.raises(PaymentGatewayError):
                await client.create_package_transaction(
                    user_id="u", user_email="e@x.com", user_name="n",
                    package_type_id="p", package_name="P", amount=1,
                )

    @pytest.mark.asyncio
    async def test_missing_server_key_raises(self):
        with pytest.raises(PaymentGatewayError):
            await MidtransClient("").get_transaction_status("ORDER-1")

    @pytest.mark.asyncio
    async def test_status_in_band_error_raises(self):
        client = MidtransClient(SERVER_KEY)
        payload = {"status_code": "404", "status_message": "Transaction doesn't exist."}
        with patch("httpx.AsyncClient.get", AsyncMock(return_value=_response(200, payload))):
            with pytest.raises(PaymentGatewayError):
                await client.get_transaction_status("ORDER-1")

    @pytest.mark.asyncio
    async def test_network_error_raises(self):
        client = MidtransClient(SERVER_KEY)
        with patch("httpx.AsyncClient.get", AsyncMock(side_effect=httpx.ConnectError("boom"))):
            with pytest.raises(PaymentGatewayError):
                await client.get_transaction_status("ORDER-1")


# ════════════════════════════════════════════════════════════════════
# Notification processing
# ════════════════════════════════════════════════════════════════════


def _notification(order_id: str, status: str, fraud: str | None = "accept") -> dict:
    return {
        "order_id": order_id,
        "status_code": "200",
        "gross_amount": "1200000.00",
        "transaction_status": status,
        "fraud_status": fraud,
        "transaction_time": "2026-01-05 08:00:00",
    }


class TestProcessNotification:

    @pytest.mark.asyncio
    async def test_settled_package_grants_credits(self, db_session, sample_profile, sample_package_type):
        transaction = {
            "custom_field1": sample_profile.id,
            "custom_field2": sample_package_type.id,
            "custom_field3": "package",
        }
        result = await process_notification(_notification("PKG_1", "settlement"), transaction, db_session)
        assert result["packageGranted"] is True

        package = (await db_session.execute(select(Package))).scalar_one()
        assert package.total_credits == 10
        assert package.remaining_credits == 10
        assert package.expires_at == datetime(2026, 1, 5, 8, 0) + timedelta(days=60)

        row = (await db_session.execute(select(Transaction))).scalar_one()
        assert row.payment_id == "PKG_1"
        assert row.payment_status == "paid"
        assert row.location == "Tasikmalaya"
        assert row.paid_at == datetime(2026, 1, 5, 8, 0)

    @pytest.mark.asyncio
    async def test_repeated_settlement_grants_once(self, db_session, sample_profile, sample_package_type):
        transaction = {
            "custom_field1": sample_profile.id,
            "custom_field2": sample_package_type.id,
            "custom_field3": "package",
        }
        await process_notification(_notification("PKG_1", "settlement"), transaction, db_session)
        second = await process_notification(_notification("PKG_1", "settlement"), transaction, db_session)

        assert second["packageGranted"] is False
        assert len((await db_session.execute(select(Package))).scalars().all()) == 1
        assert len((await db_session.execute(select(Transaction))).scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_fraud_challenge_does_not_grant(self, db_session, sample_profile, sample_package_type):
        transaction = {
            "custom_field1": sample_profile.id,
            "custom_field2": sample_package_type.id,
            "custom_field3": "package",
        }
        result = await process_notification(_notification("PKG_2", "capture", fraud="challenge"), transaction, db_session)
        assert result["packageGranted"] is False
        assert (await db_session.execute(select(Package))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_pending_then_settlement_updates_transaction(self, db_session, sample_profile, sample_package_type):
        transaction = {
            "custom_field1": sample_profile.id,
            "custom_field2": sample_package_type.id,
            "custom_field3": "package",
        }
        await process_notification(_notification("PKG_3", "pending"), transaction, db_session)
        row = (await db_session.execute(select(Transaction))).scalar_one()
        assert row.payment_status == "pending"
        assert row.paid_at is None

        await process_notification(_notification("PKG_3", "settlement"), transaction, db_session)
        await db_session.refresh(row)
        assert row.payment_status == "paid"
        assert len((await db_session.execute(select(Package))).scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_unknown_package_type_ignored(self, db_session, sample_profile):
        transaction = {"custom_field1": sample_profile.id, "custom_field2": "missing", "custom_field3": "package"}
        result = await process_notification(_notification("PKG_4", "settlement"), transaction, db_session)
        assert result == {"status": "ignored", "reason": "unknown_package_type"}
        assert (await db_session.execute(select(Transaction))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_single_class_confirms_bookings(self, db_session, sample_profile, sample_booking):
        transaction = {
            "custom_field1": sample_profile.id,
            "custom_field2": sample_booking.id,
            "custom_field3": "single_class",
        }
        result = await process_notification(_notification("CLS_1", "settlement"), transaction, db_session)
        assert result["bookingStatus"] == "confirmed"

        await db_session.refresh(sample_booking)
        assert sample_booking.status == "confirmed"
        assert sample_booking.payment_status == "paid"
        assert sample_booking.payment_id == "CLS_1"

        row = (await db_session.execute(select(Transaction))).scalar_one()
        assert row.type == "single_class"
        assert row.booking_id == sample_booking.id
        assert row.location == "Tasikmalaya"

    @pytest.mark.asyncio
    async def test_single_class_expire_cancels(self, db_session, sample_profile, sample_booking):
        transaction = {
            "custom_field1": sample_profile.id,
            "custom_field2": sample_booking.id,
            "custom_field3": "single_class",
        }
        await process_notification(_notification("CLS_2", "expire"), transaction, db_session)
        booking = (await db_session.execute(select(Booking))).scalar_one()
        await db_session.refresh(booking)
        assert booking.status == "cancelled"
        assert booking.payment_status == "expired"

    @pytest.mark.asyncio
    async def test_unknown_kind_ignored(self, db_session):
        transaction = {"custom_field1": "u", "custom_field2": "x", "custom_field3": "gift_card"}
        result = await process_notification(_notification("GFT_1", "settlement"), transaction, db_session)
        assert result["status"] == "ignored"
