from pydantic import BaseModel, EmailStr, Field
from typing import Optional

from styledecor.models.bookings import BookingStatus


class CustomerInfo(BaseModel):
    name: Optional[str] = None
    email: EmailStr


class BookingCreate(BaseModel):
    serviceId: str
    serviceName: str
    category: Optional[str] = None
    unit: Optional[str] = None
    customer: CustomerInfo
    bookingDate: str
    location: str
    price: float = Field(ge=0)
    image: Optional[str] = None


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class AssignDecorator(BaseModel):
    name: str
    email: EmailStr
