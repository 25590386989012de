# styledecor/schemas/services.py
from pydantic import BaseModel, Field
from typing import Optional


class ServiceCreate(BaseModel):
    name: str
    category: str
    description: Optional[str] = None
    cost: float = Field(ge=0)
    unit: Optional[str] = None
    image: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    cost: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = None
    image: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
