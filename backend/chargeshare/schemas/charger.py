"""
Pydantic schemas for charger-related request/response validation.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

ChargerType = Literal["DC Fast", "Level 2", "Level 1"]


class ChargerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    address: str = Field(..., min_length=1, max_length=255)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    charger_type: ChargerType = "Level 2"
    price_per_hour: float = Field(default=0.0, ge=0)
    total_slots: Optional[int] = Field(None, gt=0, le=100)


class ChargerUpdate(BaseModel):
    """Owner-editable charger fields. Slot counters are never patched here."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    charger_type: Optional[ChargerType] = None
    price_per_hour: Optional[float] = Field(None, ge=0)

    model_config = {"extra": "forbid"}


class ChargerResponse(BaseModel):
    id: int
    owner_id: int
    name: str
    description: Optional[str]
    address: Optional[str]
    latitude: float
    longitude: float
    charger_type: str
    price_per_hour: float
    rating: float
    total_slots: int
    available_slots: int
    created_at: datetime

    model_config = {"from_attributes": True}


class ChargerListResponse(BaseModel):
    chargers: list[ChargerResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
