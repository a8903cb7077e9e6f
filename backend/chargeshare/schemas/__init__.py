from chargeshare.schemas.account import AccountResponse, ImpactResponse
from chargeshare.schemas.charger import ChargerCreate, ChargerUpdate, ChargerResponse, ChargerListResponse
from chargeshare.schemas.booking import (
    BookingCreate, BookingResponse, BookingCreatedResponse, BookingActionResponse,
)
from chargeshare.schemas.booking_request import (
    BookingRequestCreate, BookingRequestReject, BookingRequestResponse, BookingRequestActionResponse,
)

__all__ = [
    "AccountResponse", "ImpactResponse",
    "ChargerCreate", "ChargerUpdate", "ChargerResponse", "ChargerListResponse",
    "BookingCreate", "BookingResponse", "BookingCreatedResponse", "BookingActionResponse",
    "BookingRequestCreate", "BookingRequestReject", "BookingRequestResponse",
    "BookingRequestActionResponse",
]
