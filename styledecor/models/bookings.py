# styledecor/models/bookings.py
import logging
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from styledecor.core.error_messages import BookingNotFound, DuplicateBooking, InvalidTransition
from styledecor.database import serialize_doc, to_object_id

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    PLANNING_PHASE = "planning_phase"
    MATERIALS_PREPARED = "materials_prepared"
    ON_THE_WAY = "on_the_way"
    SETUP_IN_PROGRESS = "setup_in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


WORKING_STATUSES = (
    BookingStatus.ASSIGNED,
    BookingStatus.PLANNING_PHASE,
    BookingStatus.MATERIALS_PREPARED,
    BookingStatus.ON_THE_WAY,
    BookingStatus.SETUP_IN_PROGRESS,
)
WORKING_VALUES = [s.value for s in WORKING_STATUSES]

# Forward progression, with cancellation allowed until the job is done.
ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.ASSIGNED, BookingStatus.CANCELLED, BookingStatus.REJECTED},
    BookingStatus.ASSIGNED: {BookingStatus.PLANNING_PHASE, BookingStatus.CANCELLED},
    BookingStatus.PLANNING_PHASE: {BookingStatus.MATERIALS_PREPARED, BookingStatus.CANCELLED},
    BookingStatus.MATERIALS_PREPARED: {BookingStatus.ON_THE_WAY, BookingStatus.CANCELLED},
    BookingStatus.ON_THE_WAY: {BookingStatus.SETUP_IN_PROGRESS, BookingStatus.CANCELLED},
    BookingStatus.SETUP_IN_PROGRESS: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.REJECTED: set(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS[current]


def booking_key(service_id: str, email: str, booking_date: str, location: str) -> Dict[str, Any]:
    """Natural key of a booking made before payment."""
    return {
        "serviceId": service_id,
        "customer.email": email,
        "bookingDate": booking_date,
        "location": location,
    }


class BookingStore:
    def __init__(self, db, enforce_transitions: bool = False, allow_duplicate_pending: bool = True):
        self.collection = db.bookings
        self.enforce_transitions = enforce_transitions
        self.allow_duplicate_pending = allow_duplicate_pending

    async def create(self, info: Dict[str, Any]) -> dict:
        if not self.allow_duplicate_pending:
            query = booking_key(
                info["serviceId"], info["customer"]["email"], info["bookingDate"], info["location"]
            )
            query["payment"] = False
            if await self.collection.find_one(query):
                raise DuplicateBooking()

        booking = {
            **info,
            "payment": bool(info.get("payment", False)),
            "bookingStatus": BookingStatus.PENDING.value,
            "assignedDecorator": None,
            "createdAt": datetime.now(timezone.utc),
        }
        # the sparse unique index only ignores a missing field, not a null one
        if not booking.get("transactionId"):
            booking.pop("transactionId", None)
        result = await self.collection.insert_one(booking)
        booking["_id"] = result.inserted_id
        logger.info("Booking %s created for %s", result.inserted_id, info["customer"]["email"])
        return serialize_doc(booking)

    async def get(self, booking_id: str) -> Optional[dict]:
        oid = to_object_id(booking_id)
        if oid is None:
            return None
        return await self.collection.find_one({"_id": oid})

    async def _paginate(self, query: Dict[str, Any], page: int, limit: int) -> dict:
        total = await self.collection.count_documents(query)
        cursor = self.collection.find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)
        bookings = await cursor.to_list(length=limit)
        return {
            "bookings": [serialize_doc(b) for b in bookings],
            "total": total,
            "totalPages": math.ceil(total / limit),
            "page": page,
            "limit": limit,
        }

    async def list_by_customer(
        self, email: str, page: int = 1, limit: int = 10, status: Optional[BookingStatus] = None
    ) -> dict:
        query: Dict[str, Any] = {"customer.email": email}
        if status:
            query["bookingStatus"] = status.value
        return await self._paginate(query, page, limit)

    async def list_all(
        self,
        page: int = 1,
        limit: int = 10,
        status: Optional[BookingStatus] = None,
        payment: Optional[bool] = None,
    ) -> dict:
        query: Dict[str, Any] = {}
        if status:
            query["bookingStatus"] = status.value
        if payment is not None:
            query["payment"] = payment
        return await self._paginate(query, page, limit)

    async def list_paid_by_customer(self, email: str) -> list:
        cursor = self.collection.find({"customer.email": email, "payment": True}).sort("paymentDate", -1)
        return [serialize_doc(b) for b in await cursor.to_list(length=None)]

    async def update_status(
        self, booking_id: str, status: BookingStatus, decorator_email: Optional[str] = None
    ) -> dict:
        query: Dict[str, Any] = {"_id": to_object_id(booking_id)}
        if query["_id"] is None:
            raise BookingNotFound()
        if decorator_email:
            query["assignedDecorator.email"] = decorator_email

        if self.enforce_transitions:
            booking = await self.collection.find_one(query)
            if not booking:
                raise BookingNotFound()
            try:
                current = BookingStatus(booking.get("bookingStatus"))
            except ValueError:
                # unknown legacy value, nothing is reachable from it
                raise InvalidTransition(str(booking.get("bookingStatus")), status.value)
            if not can_transition(current, status):
                raise InvalidTransition(current.value, status.value)
            # guard against a concurrent change between the read and the write
            query["bookingStatus"] = current.value

        result = await self.collection.update_one(query, {"$set": {"bookingStatus": status.value}})
        if result.matched_count == 0:
            raise BookingNotFound()
        logger.info("Booking %s moved to %s", booking_id, status.value)
        return {"modifiedCount": result.modified_count, "bookingStatus": status.value}

    async def cancel(self, booking_id: str) -> dict:
        oid = to_object_id(booking_id)
        result = await self.collection.delete_one({"_id": oid}) if oid else None
        if not result or result.deleted_count == 0:
            raise BookingNotFound()
        logger.info("Booking %s cancelled", booking_id)
        return {"deletedCount": result.deleted_count}

    async def assign_decorator(self, booking_id: str, name: str, email: str) -> dict:
        # Assignment always resets the job to "assigned", whatever its status.
        oid = to_object_id(booking_id)
        if oid is None:
            raise BookingNotFound()
        result = await self.collection.update_one(
            {"_id": oid},
            {
                "$set": {
                    "assignedDecorator": {"name": name, "email": email},
                    "bookingStatus": BookingStatus.ASSIGNED.value,
                }
            },
        )
        if result.matched_count == 0:
            raise BookingNotFound()
        logger.info("Booking %s assigned to %s", booking_id, email)
        return {"modifiedCount": result.modified_count, "bookingStatus": BookingStatus.ASSIGNED.value}

    async def find_by_transaction(self, transaction_id: str) -> Optional[dict]:
        return await self.collection.find_one({"transactionId": transaction_id})

    async def insert_paid_if_absent(self, transaction_id: str, info: Dict[str, Any]) -> bool:
        """Insert a paid booking unless one already carries ``transaction_id``.

        Returns True when this call created the booking. A concurrent insert
        that wins the race surfaces as DuplicateKeyError on the unique index
        and is reported as not created.
        """
        now = datetime.now(timezone.utc)
        booking = {
            **info,
            "payment": True,
            "paymentDate": now,
            "bookingStatus": BookingStatus.PENDING.value,
            "assignedDecorator": None,
            "createdAt": now,
        }
        booking.pop("transactionId", None)
        try:
            result = await self.collection.update_one(
                {"transactionId": transaction_id}, {"$setOnInsert": booking}, upsert=True
            )
        except DuplicateKeyError:
            return False
        return result.upserted_id is not None

    async def mark_paid(self, key: Dict[str, Any], transaction_id: str, price: float) -> Optional[dict]:
        """Attach a payment to the unpaid booking matching ``key``."""
        try:
            return await self.collection.find_one_and_update(
                {**key, "payment": False},
                {
                    "$set": {
                        "payment": True,
                        "transactionId": transaction_id,
                        "paymentDate": datetime.now(timezone.utc),
                        "price": price,
                    }
                },
                sort=[("createdAt", 1)],
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            return None

    async def count_for_decorator(self, email: str, statuses) -> int:
        return await self.collection.count_documents(
            {"assignedDecorator.email": email, "bookingStatus": {"$in": list(statuses)}}
        )

    async def list_for_decorator(self, email: str, status: Optional[BookingStatus] = None) -> list:
        query: Dict[str, Any] = {"assignedDecorator.email": email}
        if status:
            query["bookingStatus"] = status.value
        cursor = self.collection.find(query).sort("bookingDate", 1)
        return [serialize_doc(b) for b in await cursor.to_list(length=None)]

    async def upcoming_for_decorator(self, email: str, today: str) -> list:
        """Open jobs scheduled on or after ``today`` (ISO date string)."""
        query = {
            "assignedDecorator.email": email,
            "bookingStatus": {"$in": WORKING_VALUES},
            "bookingDate": {"$gte": today},
        }
        cursor = self.collection.find(query).sort("bookingDate", 1)
        return [serialize_doc(b) for b in await cursor.to_list(length=None)]

    async def earnings_for_decorator(self, email: str) -> dict:
        completed = await self.collection.find(
            {"assignedDecorator.email": email, "bookingStatus": BookingStatus.COMPLETED.value}
        ).to_list(length=None)
        working = await self.collection.find(
            {"assignedDecorator.email": email, "bookingStatus": {"$in": WORKING_VALUES}}
        ).to_list(length=None)
        return {
            "totalEarnings": sum(b.get("price", 0) for b in completed),
            "pendingEarnings": sum(b.get("price", 0) for b in working),
            "completedProjects": len(completed),
            "workingProjects": len(working),
            "history": [serialize_doc(b) for b in completed],
        }
