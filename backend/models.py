"""
Pydantic models for request/response validation.

Request bodies use camelCase aliases (the browser client's field names);
gateway callbacks keep the gateway's snake_case names.
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from typing import List, Literal, Optional


class CamelBase(BaseModel):
    """Shared base — allows construction by Python name or alias."""
    model_config = ConfigDict(populate_by_name=True)


# ── Profile Models ──────────────────────────────────────────────────

class DuplicateCheckRequest(BaseModel):
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)


class DuplicateCheckResponse(CamelBase):
    email_exists: bool = Field(..., alias="emailExists")
    phone_exists: bool = Field(..., alias="phoneExists")


# ── Payment Models ──────────────────────────────────────────────────

class CreatePackagePaymentRequest(CamelBase):
    """Midtrans Snap checkout for a package purchase."""
    user_id: str = Field(..., alias="userId", min_length=1)
    user_email: EmailStr = Field(..., alias="userEmail")
    user_name: str = Field(..., alias="userName", min_length=1)
    user_phone: Optional[str] = Field(None, alias="userPhone")
    package_type_id: str = Field(..., alias="packageTypeId", min_length=1)
    package_name: str = Field(..., alias="packageName", min_length=1)
    amount: int = Field(..., gt=0, description="Gross amount in IDR")


class CreateClassPaymentRequest(CamelBase):
    """Midtrans Snap checkout for one or more pending bookings of a class."""
    user_id: str = Field(..., alias="userId", min_length=1)
    user_email: EmailStr = Field(..., alias="userEmail")
    user_name: str = Field(..., alias="userName", min_length=1)
    user_phone: Optional[str] = Field(None, alias="userPhone")
    class_id: str = Field(..., alias="classId", min_length=1)
    class_name: str = Field(..., alias="className", min_length=1)
    class_date: str = Field(..., alias="classDate", min_length=1)
    amount: int = Field(..., gt=0, description="Gross amount in IDR")
    booking_ids: List[str] = Field(..., alias="bookingIds", min_length=1)


class PaymentTokenResponse(CamelBase):
    success: bool = True
    token: Optional[str] = None
    redirect_url: Optional[str] = Field(None, alias="redirectUrl")
    order_id: str = Field(..., alias="orderId")


class CreateInvoiceRequest(CamelBase):
    """
    Xendit invoice. `type` selects which of the optional fields are required:
    package → packageTypeId + packageName, single_class → classId + className + bookingId.
    """
    type: Literal["package", "single_class"] = "package"
    user_id: str = Field(..., alias="userId", min_length=1)
    user_email: EmailStr = Field(..., alias="userEmail")
    user_name: str = Field("", alias="userName")
    amount: int = Field(..., gt=0)
    package_type_id: Optional[str] = Field(None, alias="packageTypeId")
    package_name: Optional[str] = Field(None, alias="packageName")
    class_id: Optional[str] = Field(None, alias="classId")
    class_name: Optional[str] = Field(None, alias="className")
    class_date: Optional[str] = Field(None, alias="classDate")
    booking_id: Optional[str] = Field(None, alias="bookingId")

    @model_validator(mode="after")
    def _require_fields_for_type(self):
        if self.type == "package":
            required = {"packageTypeId": self.package_type_id, "packageName": self.package_name}
        else:
            required = {"classId": self.class_id, "className": self.class_name, "bookingId": self.booking_id}
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ValueError(f"Missing required fields for {self.type}: {', '.join(missing)}")
        return self


class InvoiceResponse(CamelBase):
    success: bool = True
    invoice_url: Optional[str] = Field(None, alias="invoiceUrl")
    invoice_id: Optional[str] = Field(None, alias="invoiceId")


# ── Webhook Models ──────────────────────────────────────────────────

class MidtransNotification(BaseModel):
    """
    Midtrans HTTP notification body. Unknown fields are ignored.

    signature_key is optional here so a missing signature is rejected as
    401 by the verifier instead of 422 by validation.
    """
    model_config = ConfigDict(extra="ignore")

    order_id: str
    status_code: str
    gross_amount: str
    transaction_status: str
    signature_key: Optional[str] = None
    fraud_status: Optional[str] = None
    payment_type: Optional[str] = None
    transaction_time: Optional[str] = None
    transaction_id: Optional[str] = None


class XenditInvoiceCallback(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    external_id: str = ""
    status: str
    amount: Optional[float] = None
    paid_amount: Optional[float] = None
    paid_at: Optional[str] = None
    payer_email: Optional[str] = None
    payment_method: Optional[str] = None


# ── Email Models ────────────────────────────────────────────────────

class CancellationEmailRequest(CamelBase):
    to: EmailStr
    user_name: str = Field(..., alias="userName", min_length=1)
    class_name: str = Field(..., alias="className", min_length=1)
    date: str = Field(..., min_length=1)
    time: str = Field(..., min_length=1)


class BookingConfirmationEmailRequest(CancellationEmailRequest):
    coach: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)


class WelcomeEmailRequest(CamelBase):
    to: EmailStr
    user_name: str = Field(..., alias="userName", min_length=1)


# ── Admin Models ────────────────────────────────────────────────────

class SyncScheduleRequest(CamelBase):
    sheet_id: str = Field(..., alias="sheetId", min_length=1)
    location: str = Field(..., min_length=1)
    apply: bool = Field(False, description="Insert the parsed classes instead of only previewing them")
