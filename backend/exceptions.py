"""
Custom exception classes for outbound service calls.
"""


class PaymentGatewayError(Exception):
    """Raised when Midtrans or Xendit rejects a request or is unreachable."""
    pass


class EmailDeliveryError(Exception):
    """Raised when the email provider fails to accept a message."""
    pass


class SheetsAccessError(Exception):
    """Raised when the schedule spreadsheet cannot be read."""
    pass
