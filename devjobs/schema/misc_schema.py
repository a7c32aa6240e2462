from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from uuid import UUID
from datetime import datetime


# ----------------- Technologies -----------------
class TechnologyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    icon: Optional[str] = Field(None, max_length=255)


class TechnologyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    icon: Optional[str] = Field(None, max_length=255)


class TechnologyResponse(BaseModel):
    id: UUID
    name: str
    slug: str
    icon: Optional[str]

    model_config = {"from_attributes": True}


# ----------------- Notifications -----------------
class NotificationResponse(BaseModel):
    id: UUID
    type: str
    data: Dict[str, Any]
    read_at: Optional[datetime]
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
