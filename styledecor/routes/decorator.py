# styledecor/routes/decorator.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request

from styledecor.middleware.rbac import is_decorator
from styledecor.models.bookings import BookingStatus
from styledecor.schemas.bookings import BookingStatusUpdate

decorator_router = APIRouter(prefix="/decorator", tags=["Decorator"])


@decorator_router.get("/projects")
async def my_projects(request: Request, status: Optional[BookingStatus] = None, email: str = Depends(is_decorator)):
    return await request.app.state.bookings.list_for_decorator(email, status=status)


# Today's and upcoming open jobs
@decorator_router.get("/bookings")
async def my_schedule(request: Request, email: str = Depends(is_decorator)):
    return await request.app.state.bookings.upcoming_for_decorator(email, date.today().isoformat())


@decorator_router.get("/earnings")
async def my_earnings(request: Request, email: str = Depends(is_decorator)):
    return await request.app.state.bookings.earnings_for_decorator(email)


@decorator_router.patch("/projects/status/{booking_id}")
async def update_project_status(
    booking_id: str, data: BookingStatusUpdate, request: Request, email: str = Depends(is_decorator)
):
    return await request.app.state.bookings.update_status(booking_id, data.status, decorator_email=email)
