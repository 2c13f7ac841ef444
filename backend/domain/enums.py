"""
Domain enums for bookings, payments and the gateway status vocabulary.
"""

from enum import Enum


class TransactionStatus(str, Enum):
    """Midtrans transaction_status values this service recognizes."""
    CAPTURE = "capture"
    SETTLEMENT = "settlement"
    PENDING = "pending"
    DENY = "deny"
    CANCEL = "cancel"
    FAILURE = "failure"
    EXPIRE = "expire"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"


class BookingStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ClassStatus(str, Enum):
    SCHEDULED = "scheduled"
    DELAYED = "delayed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TransactionType(str, Enum):
    PACKAGE_PURCHASE = "package_purchase"
    SINGLE_CLASS = "single_class"


class PaymentMethod(str, Enum):
    MIDTRANS = "midtrans"
    XENDIT = "xendit"
