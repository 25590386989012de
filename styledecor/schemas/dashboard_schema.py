# styledecor/schemas/dashboard_schema.py
from pydantic import BaseModel
from typing import List, Optional


class AnalyticsSummary(BaseModel):
    totalBookings: int
    paidBookings: int
    totalRevenue: float
    pendingBookings: int
    workingBookings: int
    completedBookings: int
    totalCustomers: int
    totalDecorators: int


class ServiceDemand(BaseModel):
    serviceName: Optional[str]
    bookings: int
    revenue: float


class StatusCount(BaseModel):
    status: str
    count: int


class StatusDistribution(BaseModel):
    distribution: List[StatusCount]
