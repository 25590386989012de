# styledecor/models/decorators.py
"""Decorator promotion, demotion and the denormalized ``decorators`` profiles.

A profile exists exactly when its user has the decorator role. Every change
to a user's role is paired with the matching profile write; when the second
write fails the role is restored before the error propagates, and ``repair``
re-aligns the two collections after a crash between the writes.
"""
import logging
from datetime import datetime, timezone
from typing import List

from bson import ObjectId
from pymongo.errors import PyMongoError

from styledecor.core.error_messages import UpstreamFailure, UserNotFound
from styledecor.database import serialize_doc, to_object_id
from styledecor.models.bookings import BookingStatus, WORKING_VALUES
from styledecor.models.user import Role

logger = logging.getLogger(__name__)


def _profile_key(user_id: str) -> dict:
    """Match a profile whose userId was stored as a string or as an ObjectId."""
    oid = to_object_id(user_id)
    if oid is None:
        return {"userId": user_id}
    return {"userId": {"$in": [user_id, oid]}}


def _profile_fields(user: dict) -> dict:
    return {
        "name": user.get("name"),
        "email": user.get("email"),
        "imageURL": user.get("image"),
        "role": Role.DECORATOR.value,
    }


class DecoratorManager:
    def __init__(self, db, users, bookings):
        self.collection = db.decorators
        self.users = users
        self.bookings = bookings

    async def _upsert_profile(self, user_id: str, user: dict) -> None:
        await self.collection.update_one(
            {"userId": user_id},
            {
                "$set": _profile_fields(user),
                "$setOnInsert": {"userId": user_id, "createdAt": datetime.now(timezone.utc)},
            },
            upsert=True,
        )

    async def promote(self, user_id: str) -> dict:
        user = await self.users.get_by_id(user_id)
        if not user:
            raise UserNotFound()
        user_id = str(user["_id"])
        previous = user.get("role", Role.CUSTOMER.value)

        await self.users.set_role(user_id, Role.DECORATOR)
        try:
            await self._upsert_profile(user_id, user)
            await self.collection.delete_many({"userId": ObjectId(user_id)})
        except PyMongoError as e:
            logger.exception("Decorator profile write failed for %s, restoring role", user_id)
            await self.users.set_role(user_id, previous)
            raise UpstreamFailure() from e

        logger.info("User %s promoted to decorator", user["email"])
        return {"userId": user_id, "role": Role.DECORATOR.value}

    async def demote(self, user_id: str) -> dict:
        user = await self.users.get_by_id(user_id)
        if not user:
            raise UserNotFound()
        user_id = str(user["_id"])
        previous = user.get("role", Role.CUSTOMER.value)

        await self.users.set_role(user_id, Role.CUSTOMER)
        try:
            await self.collection.delete_many(_profile_key(user_id))
        except PyMongoError as e:
            logger.exception("Decorator profile removal failed for %s, restoring role", user_id)
            await self.users.set_role(user_id, previous)
            raise UpstreamFailure() from e

        logger.info("User %s demoted to customer", user["email"])
        return {"userId": user_id, "role": Role.CUSTOMER.value}

    async def repair(self) -> dict:
        """Bring profiles back in line with user roles."""
        created = removed = normalized = 0

        # legacy profiles keyed by ObjectId: rewrite as strings, or drop if a string copy exists
        profiles = await self.collection.find({}, {"userId": 1}).to_list(length=None)
        for profile in profiles:
            user_id = profile.get("userId")
            if not isinstance(user_id, ObjectId):
                continue
            if await self.collection.find_one({"userId": str(user_id)}):
                await self.collection.delete_one({"_id": profile["_id"]})
            else:
                await self.collection.update_one({"_id": profile["_id"]}, {"$set": {"userId": str(user_id)}})
            normalized += 1

        decorator_ids = set()
        decorators = await self.users.collection.find({"role": Role.DECORATOR.value}).to_list(length=None)
        for user in decorators:
            user_id = str(user["_id"])
            decorator_ids.add(user_id)
            if not await self.collection.find_one({"userId": user_id}):
                await self._upsert_profile(user_id, user)
                created += 1

        profiles = await self.collection.find({}, {"userId": 1}).to_list(length=None)
        for profile in profiles:
            if str(profile.get("userId")) not in decorator_ids:
                await self.collection.delete_one({"_id": profile["_id"]})
                removed += 1

        if created or removed or normalized:
            logger.warning(
                "Decorator profiles repaired: %d created, %d removed, %d normalized", created, removed, normalized
            )
        return {"created": created, "removed": removed, "normalized": normalized}

    async def workload(self, email: str) -> dict:
        # One count per decorator; swap for a $group pipeline if the roster grows.
        return {
            "workingProjects": await self.bookings.count_for_decorator(email, WORKING_VALUES),
            "completedProjects": await self.bookings.count_for_decorator(
                email, [BookingStatus.COMPLETED.value]
            ),
        }

    async def list_with_workload(self) -> List[dict]:
        profiles = await self.collection.find().sort("createdAt", -1).to_list(length=None)
        result = []
        for profile in profiles:
            result.append({**serialize_doc(profile), **await self.workload(profile["email"])})
        return result

    async def list_public(self) -> List[dict]:
        profiles = await self.collection.find({}, {"name": 1, "imageURL": 1}).to_list(length=None)
        return [serialize_doc(p) for p in profiles]
