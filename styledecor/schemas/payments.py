# styledecor/schemas/payments.py
from pydantic import BaseModel

from styledecor.schemas.bookings import CustomerInfo


class CheckoutRequest(BaseModel):
    serviceId: str
    customer: CustomerInfo
    bookingDate: str
    location: str
    # True when an unpaid booking was already stored through POST /bookings
    existingBooking: bool = False


class PaymentSuccess(BaseModel):
    sessionId: str
