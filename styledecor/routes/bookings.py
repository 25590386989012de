# styledecor/routes/bookings.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from styledecor.middleware.rbac import get_current_email
from styledecor.models.bookings import BookingStatus
from styledecor.schemas.bookings import BookingCreate

booking_router = APIRouter(tags=["Bookings"])


# Create booking (unpaid, pending)
@booking_router.post("/bookings", status_code=201)
async def create_booking(data: BookingCreate, request: Request):
    return await request.app.state.bookings.create(data.model_dump())


# Get current user's bookings
@booking_router.get("/bookings")
async def get_my_bookings(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[BookingStatus] = None,
    email: str = Depends(get_current_email),
):
    return await request.app.state.bookings.list_by_customer(email, page=page, limit=limit, status=status)


@booking_router.delete("/bookings/cancel/{booking_id}")
async def cancel_booking(booking_id: str, request: Request):
    return await request.app.state.bookings.cancel(booking_id)


@booking_router.get("/payments/history")
async def payment_history(request: Request, email: str = Depends(get_current_email)):
    return await request.app.state.bookings.list_paid_by_customer(email)
