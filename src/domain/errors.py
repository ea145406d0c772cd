"""
Booking error taxonomy.

Every error carries the HTTP status the API layer answers with and a short
machine-readable ``code``.  ``NotificationError`` is raised by senders but is
always logged and swallowed by the notification layer.
"""


class BookingError(Exception):
    status_code: int = 400
    code: str = "BOOKING_ERROR"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(BookingError):
    """Missing or malformed input the caller can correct."""

    status_code = 400
    code = "VALIDATION_ERROR"


class PaymentError(BookingError):
    """The gateway declined or returned an incomplete confirmation."""

    status_code = 402
    code = "PAYMENT_DECLINED"


class InvalidTransitionError(BookingError):
    """Raised when a booking status change violates the state machine."""

    status_code = 409
    code = "INVALID_TRANSITION"


class InvalidStateError(BookingError):
    status_code = 409
    code = "INVALID_STATE"


class NotFoundError(BookingError):
    status_code = 404
    code = "NOT_FOUND"


class ConfigurationError(BookingError):
    """Provider credentials or other operator settings are missing."""

    status_code = 500
    code = "MISSING_CONFIG"


class BookingsClosedError(BookingError):
    status_code = 403
    code = "BOOKINGS_DISABLED"


class NotificationError(BookingError):
    status_code = 500
    code = "NOTIFICATION_FAILED"


class AuthenticationError(BookingError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(BookingError):
    status_code = 403
    code = "FORBIDDEN"
