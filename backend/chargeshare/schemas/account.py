"""
Pydantic schemas for account reads. Accounts are provisioned upstream.
"""

from datetime import datetime
from pydantic import BaseModel


class AccountResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    green_score: int
    created_at: datetime

    model_config = {"from_attributes": True}


class ImpactResponse(BaseModel):
    name: str
    email: str
    green_score: int
    total_sessions: int
    estimated_co2_saved: float
    total_charging_time: float

    model_config = {"from_attributes": True}
