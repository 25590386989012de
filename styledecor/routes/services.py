# styledecor/routes/services.py
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request

from styledecor.core.error_messages import ServiceNotFound
from styledecor.database import serialize_doc
from styledecor.middleware.rbac import is_admin
from styledecor.schemas.services import ServiceCreate, ServiceUpdate

services_router = APIRouter(tags=["Services"])


@services_router.post("/service")
async def create_service(data: ServiceCreate, request: Request, admin: str = Depends(is_admin)):
    return await request.app.state.services.create(data.model_dump())


@services_router.get("/services")
async def list_services(request: Request):
    return await request.app.state.services.list_all()


@services_router.get("/services-filter")
async def filter_services(
    request: Request,
    search: Optional[str] = None,
    category: Optional[str] = None,
    minPrice: Optional[float] = Query(None, ge=0),
    maxPrice: Optional[float] = Query(None, ge=0),
    sort: Optional[Literal["price_asc", "price_desc", "rating", "newest"]] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    return await request.app.state.services.search(
        search=search,
        category=category,
        min_price=minPrice,
        max_price=maxPrice,
        sort=sort,
        page=page,
        limit=limit,
    )


@services_router.get("/services/{service_id}")
async def get_service(service_id: str, request: Request):
    service = await request.app.state.services.get(service_id)
    if not service:
        raise ServiceNotFound()
    return serialize_doc(service)


@services_router.put("/services/{service_id}")
async def edit_service(service_id: str, data: ServiceUpdate, request: Request, admin: str = Depends(is_admin)):
    return await request.app.state.services.update(service_id, data.model_dump(exclude_none=True))


@services_router.delete("/services/{service_id}")
async def delete_service(service_id: str, request: Request, admin: str = Depends(is_admin)):
    return await request.app.state.services.delete(service_id)
