# styledecor/models/user.py
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pymongo.errors import DuplicateKeyError

from styledecor.database import serialize_doc, to_object_id

logger = logging.getLogger(__name__)


class Role(str, Enum):
    CUSTOMER = "customer"
    DECORATOR = "decorator"
    ADMIN = "admin"


class UserStore:
    def __init__(self, db):
        self.collection = db.users

    async def upsert_on_login(self, data: dict) -> dict:
        """Insert a first-time user as a customer, or refresh last_login."""
        now = datetime.now(timezone.utc)
        email = data["email"]
        profile = {k: v for k, v in data.items() if k != "email"}
        update = {
            "$set": {"last_login": now},
            "$setOnInsert": {**profile, "role": Role.CUSTOMER.value, "created_at": now},
        }
        try:
            result = await self.collection.update_one({"email": email}, update, upsert=True)
        except DuplicateKeyError:
            # a concurrent first sign-in inserted the user between match and insert
            result = await self.collection.update_one({"email": email}, update, upsert=True)

        if result.upserted_id is None:
            return {"created": False, "email": email}
        logger.info("New user %s signed up", email)
        return {"created": True, "email": email, "insertedId": str(result.upserted_id)}

    async def get_role(self, email: str) -> Optional[str]:
        user = await self.collection.find_one({"email": email}, {"role": 1})
        return user.get("role") if user else None

    async def get_by_id(self, user_id: str) -> Optional[dict]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return await self.collection.find_one({"_id": oid})

    async def set_role(self, user_id: str, role) -> int:
        # accepts a Role or a raw stored value being restored as-is
        value = role.value if isinstance(role, Role) else role
        result = await self.collection.update_one({"_id": to_object_id(user_id)}, {"$set": {"role": value}})
        return result.matched_count

    async def list_by_role(self, role: Role) -> List[dict]:
        users = await self.collection.find({"role": role.value}).sort("created_at", -1).to_list(length=None)
        return [serialize_doc(u) for u in users]

    async def count_by_role(self, role: Role) -> int:
        return await self.collection.count_documents({"role": role.value})
