"""
Pydantic schemas for booking-related request/response validation.

Duration bounds are enforced by the reservation engine, not here, so an
out-of-range duration surfaces as the engine's validation error.
"""

from datetime import datetime
from pydantic import BaseModel, Field


class BookingCreate(BaseModel):
    charger_id: int
    start_time: datetime
    duration_hours: float = Field(..., gt=0)


class BookingResponse(BaseModel):
    id: int
    user_id: int
    charger_id: int
    start_time: datetime
    end_time: datetime
    duration_hours: float
    status: str
    green_points_earned: int
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingCreatedResponse(BaseModel):
    message: str
    booking: BookingResponse
    green_points_earned: int


class BookingActionResponse(BaseModel):
    message: str
    booking: BookingResponse
