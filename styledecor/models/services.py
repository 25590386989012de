# styledecor/models/services.py
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from styledecor.core.error_messages import ServiceNotFound
from styledecor.database import serialize_doc, to_object_id

SORT_FIELDS = {
    "price_asc": ("cost", 1),
    "price_desc": ("cost", -1),
    "rating": ("rating", -1),
    "newest": ("createdAt", -1),
}


class ServiceStore:
    def __init__(self, db):
        self.collection = db.services

    async def create(self, data: Dict[str, Any]) -> dict:
        service = {**data, "createdAt": datetime.now(timezone.utc)}
        result = await self.collection.insert_one(service)
        service["_id"] = result.inserted_id
        return serialize_doc(service)

    async def get(self, service_id: str) -> Optional[dict]:
        oid = to_object_id(service_id)
        if oid is None:
            return None
        return await self.collection.find_one({"_id": oid})

    async def list_all(self) -> list:
        return [serialize_doc(s) for s in await self.collection.find().to_list(length=None)]

    async def update(self, service_id: str, data: Dict[str, Any]) -> dict:
        oid = to_object_id(service_id)
        result = await self.collection.update_one({"_id": oid}, {"$set": data}) if oid else None
        if not result or result.matched_count == 0:
            raise ServiceNotFound()
        return {"modifiedCount": result.modified_count}

    async def delete(self, service_id: str) -> dict:
        oid = to_object_id(service_id)
        result = await self.collection.delete_one({"_id": oid}) if oid else None
        if not result or result.deleted_count == 0:
            raise ServiceNotFound()
        return {"deletedCount": result.deleted_count}

    async def search(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> dict:
        query: Dict[str, Any] = {}
        if search:
            query["name"] = {"$regex": re.escape(search), "$options": "i"}
        if category:
            query["category"] = category
        if min_price is not None or max_price is not None:
            query["cost"] = {}
            if min_price is not None:
                query["cost"]["$gte"] = min_price
            if max_price is not None:
                query["cost"]["$lte"] = max_price

        total = await self.collection.count_documents(query)
        cursor = self.collection.find(query)
        if sort in SORT_FIELDS:
            cursor = cursor.sort(*SORT_FIELDS[sort])
        services = await cursor.skip((page - 1) * limit).limit(limit).to_list(length=limit)
        return {
            "services": [serialize_doc(s) for s in services],
            "total": total,
            "totalPages": math.ceil(total / limit),
            "page": page,
            "limit": limit,
        }
