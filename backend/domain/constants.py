"""
Domain constants used across services/routers.
"""

# Midtrans order id prefixes: PKG_<type8>_<user8>_<ms>, CLS_<class8>_<user8>_<ms>
ORDER_PACKAGE_PREFIX = "PKG"
ORDER_CLASS_PREFIX = "CLS"

# Midtrans custom_field3 values
MIDTRANS_KIND_PACKAGE = "package"
MIDTRANS_KIND_SINGLE_CLASS = "single_class"

# Only this fraud_status grants package credits
MIDTRANS_FRAUD_ACCEPT = "accept"

# Xendit external_id metadata "t" codes
XENDIT_META_PACKAGE = "pkg"
XENDIT_META_CLASS = "cls"

# Xendit invoice callback statuses
XENDIT_STATUS_PAID = "PAID"
XENDIT_STATUS_EXPIRED = "EXPIRED"

# Gateway expiry windows
PACKAGE_PAYMENT_EXPIRY_HOURS = 24
CLASS_PAYMENT_EXPIRY_HOURS = 1

# Reminder window: classes starting between now+23h and now+25h
REMINDER_WINDOW_START_HOURS = 23
REMINDER_WINDOW_END_HOURS = 25

# Schedule sheet defaults
DEFAULT_CLASS_CAPACITY = 6
DEFAULT_CLASS_DURATION_MINUTES = 60
SCHEDULE_DAY_SHEETS = (
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
    "SATURDAY",
    "SUNDAY",
)
