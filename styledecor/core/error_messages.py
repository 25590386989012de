# styledecor/core/error_messages.py
"""Domain errors raised by stores and services.

Handlers never build HTTP responses for these themselves; the exception
handlers registered in ``styledecor.main`` turn them into JSON bodies.
"""
from typing import Any, Dict, Optional


class StyleDecorError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message}


class Unauthenticated(StyleDecorError):
    status_code = 401
    message = "Unauthorized Access!"


class Forbidden(StyleDecorError):
    status_code = 403
    message = "Forbidden Access!"

    def __init__(self, role: Optional[str] = None, message: Optional[str] = None):
        super().__init__(message)
        self.role = role

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "role": self.role}


class NotFound(StyleDecorError):
    status_code = 404
    message = "Not found"


class BookingNotFound(NotFound):
    message = "Booking not found"


class ServiceNotFound(NotFound):
    message = "Service not found"


class UserNotFound(NotFound):
    message = "User not found"


class InvalidTransition(StyleDecorError):
    status_code = 409

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move booking from '{current}' to '{target}'")
        self.current = current
        self.target = target


class DuplicateBooking(StyleDecorError):
    status_code = 409
    message = "A pending booking already exists for this service, date and location"


class PaymentIncomplete(StyleDecorError):
    status_code = 400
    message = "Payment has not been completed"


class UpstreamFailure(StyleDecorError):
    status_code = 500
    message = "Internal server error"
