from chargeshare.models.account import Account
from chargeshare.models.charger import Charger
from chargeshare.models.booking import Booking
from chargeshare.models.booking_request import BookingRequest

__all__ = ["Account", "Charger", "Booking", "BookingRequest"]
