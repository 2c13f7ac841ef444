"""
Tests for Pydantic request/response models.

Tests: field validation, aliases, per-type invoice requirements, webhook bodies.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
from pydantic import ValidationError
from models import (
    CreateClassPaymentRequest,
    CreateInvoiceRequest,
    DuplicateCheckRequest,
    DuplicateCheckResponse,
    MidtransNotification,
    PaymentTokenResponse,
    SyncScheduleRequest,
    XenditInvoiceCallback,
)


class TestDuplicateCheckModels:

    @pytest.mark.unit
    def test_both_fields_optional(self):
        req = DuplicateCheckRequest()
        assert req.email is None and req.phone is None

    @pytest.mark.unit
    def test_response_serializes_camel_case(self):
        resp = DuplicateCheckResponse(email_exists=True, phone_exists=False)
        assert resp.model_dump(by_alias=True) == {"emailExists": True, "phoneExists": False}


class TestCreateClassPaymentRequest:

    BODY = {
        "userId": "u1",
        "userEmail": "sari@example.com",
        "userName": "Sari",
        "classId": "c1",
        "className": "Reformer",
        "classDate": "2026-01-05",
        "amount": 150000,
        "bookingIds": ["b1"],
    }

    @pytest.mark.unit
    def test_valid(self):
        req = CreateClassPaymentRequest(**self.BODY)
        assert req.booking_ids == ["b1"]
        assert req.user_phone is None

    @pytest.mark.unit
    def test_empty_booking_ids_raises(self):
        with pytest.raises(ValidationError):
            CreateClassPaymentRequest(**{**self.BODY, "bookingIds": []})

    @pytest.mark.unit
    @pytest.mark.parametrize("amount", [0, -1])
    def test_non_positive_amount_raises(self, amount):
        with pytest.raises(ValidationError):
            CreateClassPaymentRequest(**{**self.BODY, "amount": amount})

    @pytest.mark.unit
    def test_bad_email_raises(self):
        with pytest.raises(ValidationError):
            CreateClassPaymentRequest(**{**self.BODY, "userEmail": "sari"})


class TestCreateInvoiceRequest:

    @pytest.mark.unit
    def test_package_defaults(self):
        req = CreateInvoiceRequest(
            userId="u1", userEmail="sari@example.com", amount=1, packageTypeId="p1", packageName="Pack"
        )
        assert req.type == "package"
        assert req.user_name == ""

    @pytest.mark.unit
    def test_package_requires_package_fields(self):
        with pytest.raises(ValidationError, match="packageTypeId"):
            CreateInvoiceRequest(userId="u1", userEmail="sari@example.com", amount=1)

    @pytest.mark.unit
    def test_single_class_requires_booking(self):
        with pytest.raises(ValidationError, match="bookingId"):
            CreateInvoiceRequest(
                type="single_class", userId="u1", userEmail="sari@example.com", amount=1,
                classId="c1", className="Reformer",
            )

    @pytest.mark.unit
    def test_unknown_type_raises(self):
        with pytest.raises(ValidationError):
            CreateInvoiceRequest(type="gift", userId="u1", userEmail="sari@example.com", amount=1)


class TestWebhookModels:

    @pytest.mark.unit
    def test_midtrans_extra_fields_ignored(self):
        n = MidtransNotification(
            order_id="PKG_1", status_code="200", gross_amount="1000.00",
            transaction_status="settlement", va_numbers=[{"bank": "bca"}],
        )
        assert n.signature_key is None
        assert "va_numbers" not in n.model_dump()

    @pytest.mark.unit
    def test_xendit_callback_defaults(self):
        cb = XenditInvoiceCallback(id="inv-1", status="EXPIRED")
        assert cb.external_id == ""
        assert cb.paid_at is None


class TestResponses:

    @pytest.mark.unit
    def test_payment_token_response(self):
        resp = PaymentTokenResponse(token="t", redirectUrl="u", orderId="PKG_1")
        assert resp.model_dump(by_alias=True) == {
            "success": True, "token": "t", "redirectUrl": "u", "orderId": "PKG_1",
        }

    @pytest.mark.unit
    def test_sync_request_preview_by_default(self):
        req = SyncScheduleRequest(sheetId="s", location="Tasikmalaya")
        assert req.apply is False
