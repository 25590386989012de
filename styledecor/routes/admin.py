# styledecor/routes/admin.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from styledecor.middleware.rbac import is_admin
from styledecor.models.bookings import BookingStatus
from styledecor.schemas.bookings import AssignDecorator
from styledecor.schemas.dashboard_schema import AnalyticsSummary, ServiceDemand, StatusDistribution

admin_router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(is_admin)])


@admin_router.get("/bookings")
async def get_all_bookings(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[BookingStatus] = None,
    payment: Optional[bool] = None,
):
    return await request.app.state.bookings.list_all(page=page, limit=limit, status=status, payment=payment)


@admin_router.patch("/bookings/assign/{booking_id}")
async def assign_decorator(booking_id: str, data: AssignDecorator, request: Request):
    return await request.app.state.bookings.assign_decorator(booking_id, data.name, data.email)


@admin_router.get("/analytics/summary", response_model=AnalyticsSummary)
async def analytics_summary(request: Request):
    return await request.app.state.analytics.summary()


@admin_router.get("/analytics/service-demand", response_model=List[ServiceDemand])
async def service_demand(request: Request, limit: int = Query(10, ge=1, le=50)):
    return await request.app.state.analytics.service_demand(limit=limit)


@admin_router.get("/analytics/status-distribution", response_model=StatusDistribution)
async def status_distribution(request: Request):
    return {"distribution": await request.app.state.analytics.status_distribution()}
