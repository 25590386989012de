# styledecor/schemas/user.py
from pydantic import BaseModel, EmailStr
from typing import Optional


class UserLogin(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    image: Optional[str] = None


class RoleOut(BaseModel):
    role: Optional[str]
