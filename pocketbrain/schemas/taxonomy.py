from typing import Optional
from pydantic import BaseModel, ConfigDict


class ActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    is_active: bool


class DomainOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: Optional[str] = None
    is_active: bool
    activities: list[ActivityOut] = []


class DomainListResponse(BaseModel):
    total: int
    items: list[DomainOut]
