# styledecor/routes/users.py
from fastapi import APIRouter, Depends, Request

from styledecor.middleware.rbac import get_current_email, is_admin
from styledecor.models.user import Role
from styledecor.schemas.user import RoleOut, UserLogin

users_router = APIRouter(tags=["Users"])


# Save a user on first sign in, refresh last_login afterwards
@users_router.post("/user")
async def save_user(data: UserLogin, request: Request):
    return await request.app.state.users.upsert_on_login(data.model_dump(exclude_none=True))


@users_router.get("/user/role", response_model=RoleOut)
async def get_role(request: Request, email: str = Depends(get_current_email)):
    return {"role": await request.app.state.users.get_role(email)}


@users_router.get("/users/customer")
async def list_customers(request: Request, admin: str = Depends(is_admin)):
    return await request.app.state.users.list_by_role(Role.CUSTOMER)


@users_router.get("/users/decorator")
async def list_decorators(request: Request, admin: str = Depends(is_admin)):
    return await request.app.state.decorators.list_with_workload()


@users_router.patch("/users/promote/{user_id}")
async def promote_user(user_id: str, request: Request, admin: str = Depends(is_admin)):
    return await request.app.state.decorators.promote(user_id)


@users_router.patch("/users/demote/{user_id}")
async def demote_user(user_id: str, request: Request, admin: str = Depends(is_admin)):
    return await request.app.state.decorators.demote(user_id)


# Public showcase on the home page
@users_router.get("/decorators")
async def public_decorators(request: Request):
    return await request.app.state.decorators.list_public()
