"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from chargeshare.api.routes import accounts, chargers, bookings, booking_requests

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(accounts.router)
api_router.include_router(chargers.router)
api_router.include_router(bookings.router)
api_router.include_router(booking_requests.router)
