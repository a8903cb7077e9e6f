"""
Pydantic schemas for booking-request validation and responses.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from chargeshare.schemas.booking import BookingResponse


class BookingRequestCreate(BaseModel):
    charger_id: int
    start_time: datetime
    duration_hours: float = Field(..., gt=0)


class BookingRequestReject(BaseModel):
    reason: str = Field(..., max_length=500)


class BookingRequestResponse(BaseModel):
    id: int
    user_id: int
    charger_id: int
    owner_id: int
    start_time: datetime
    duration_hours: float
    status: str
    booking_id: Optional[int]
    rejection_reason: Optional[str]
    approved_at: Optional[datetime]
    session_started_at: Optional[datetime]
    session_ended_at: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingRequestActionResponse(BaseModel):
    message: str
    request: BookingRequestResponse
    booking: Optional[BookingResponse] = None
