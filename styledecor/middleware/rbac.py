# styledecor/middleware/rbac.py
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from styledecor.core.error_messages import Forbidden, Unauthenticated
from styledecor.models.user import Role

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_email(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()
    email = await request.app.state.identity.verify(credentials.credentials)
    request.state.email = email
    return email


def require_role(*roles: Role):
    """Dependency factory gating a route to callers holding one of ``roles``."""
    allowed = {r.value for r in roles}

    async def checker(request: Request, email: str = Depends(get_current_email)) -> str:
        # read on every request, a promotion must take effect immediately
        role = await request.app.state.users.get_role(email)
        if role not in allowed:
            raise Forbidden(role=role)
        return email

    return checker


is_admin = require_role(Role.ADMIN)
is_decorator = require_role(Role.DECORATOR)
