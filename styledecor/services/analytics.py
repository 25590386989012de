# styledecor/services/analytics.py
from styledecor.models.bookings import BookingStatus, WORKING_VALUES
from styledecor.models.user import Role


class AnalyticsService:
    def __init__(self, db):
        self.bookings = db.bookings
        self.users = db.users

    async def summary(self) -> dict:
        revenue = await self.bookings.aggregate(
            [
                {"$match": {"payment": True}},
                {"$group": {"_id": None, "total": {"$sum": "$price"}, "count": {"$sum": 1}}},
            ]
        ).to_list(length=None)
        totals = revenue[0] if revenue else {"total": 0, "count": 0}
        return {
            "totalBookings": await self.bookings.count_documents({}),
            "paidBookings": totals["count"],
            "totalRevenue": totals["total"],
            "pendingBookings": await self.bookings.count_documents(
                {"bookingStatus": BookingStatus.PENDING.value}
            ),
            "workingBookings": await self.bookings.count_documents(
                {"bookingStatus": {"$in": WORKING_VALUES}}
            ),
            "completedBookings": await self.bookings.count_documents(
                {"bookingStatus": BookingStatus.COMPLETED.value}
            ),
            "totalCustomers": await self.users.count_documents({"role": Role.CUSTOMER.value}),
            "totalDecorators": await self.users.count_documents({"role": Role.DECORATOR.value}),
        }

    async def service_demand(self, limit: int = 10) -> list:
        rows = await self.bookings.aggregate(
            [
                {"$group": {"_id": "$serviceName", "bookings": {"$sum": 1}, "revenue": {"$sum": "$price"}}},
                {"$sort": {"bookings": -1}},
                {"$limit": limit},
            ]
        ).to_list(length=None)
        return [{"serviceName": r["_id"], "bookings": r["bookings"], "revenue": r["revenue"]} for r in rows]

    async def status_distribution(self) -> list:
        rows = await self.bookings.aggregate(
            [{"$group": {"_id": "$bookingStatus", "count": {"$sum": 1}}}]
        ).to_list(length=None)
        counts = {r["_id"]: r["count"] for r in rows}
        return [{"status": s.value, "count": counts.get(s.value, 0)} for s in BookingStatus]
