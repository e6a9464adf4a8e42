"""Common application-wide constants."""

from datetime import timedelta

BOOKING_STATUSES = ("pending", "confirmed", "completed", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "refunded")
CANCELLED = "cancelled"

# Appointment grid
SLOT_STEP_MINUTES = 30
DEFAULT_APPOINTMENT_DURATION = 60

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DEFAULT_OPERATING_HOURS = {
    "monday": {"open": "09:00", "close": "19:00"},
    "tuesday": {"open": "09:00", "close": "19:00"},
    "wednesday": {"open": "09:00", "close": "19:00"},
    "thursday": {"open": "09:00", "close": "19:00"},
    "friday": {"open": "09:00", "close": "19:00"},
    "saturday": {"open": "09:00", "close": "17:00"},
    "sunday": {"closed": True},
}

# Listings
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Login lockout
LOGIN_ATTEMPT_WINDOW = timedelta(minutes=15)
LOGIN_LOCKOUT_THRESHOLD = 5
LOGIN_LOCKOUT_DURATION = timedelta(minutes=15)

TOKEN_COOKIE_NAME = "token"


__all__ = [
    "BOOKING_STATUSES",
    "PAYMENT_STATUSES",
    "CANCELLED",
    "SLOT_STEP_MINUTES",
    "DEFAULT_APPOINTMENT_DURATION",
    "WEEKDAYS",
    "DEFAULT_OPERATING_HOURS",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "LOGIN_ATTEMPT_WINDOW",
    "LOGIN_LOCKOUT_THRESHOLD",
    "LOGIN_LOCKOUT_DURATION",
    "TOKEN_COOKIE_NAME",
]
