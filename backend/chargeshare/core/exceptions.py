"""
Domain error taxonomy for the reservation engine.

Services raise these; they never build HTTP responses. The gateway maps
each kind to a status code in `chargeshare.main`.
"""

from typing import Optional


class ReservationError(Exception):
    kind = "reservation_error"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ReservationValidationError(ReservationError):
    """A caller-supplied parameter violates a stated constraint."""

    kind = "validation_error"


class NotFoundError(ReservationError):
    kind = "not_found"

    def __init__(self, entity: str, entity_id: Optional[int] = None):
        message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


class ForbiddenError(ReservationError):
    kind = "forbidden"


class InvalidStateError(ReservationError):
    """Transition is illegal from the entity's current status."""

    kind = "invalid_state"

    def __init__(self, message: str, current_status: str):
        super().__init__(message)
        self.current_status = current_status


class NoCapacityError(ReservationError):
    kind = "no_capacity"
    retryable = True

    def __init__(self, charger_id: int):
        super().__init__(f"No available slots at charger {charger_id}")
        self.charger_id = charger_id
