"""Domain errors for the reservation engine.

Every error carries a stable code and a message that is safe to show to
API clients. Views map codes to HTTP statuses; nothing else inspects
message text.
"""

from enum import Enum
from uuid import UUID


class ErrorCode(Enum):
    INVALID_RANGE = "INVALID_RANGE"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_INACTIVE = "RESOURCE_INACTIVE"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    RESERVATION_NOT_FOUND = "RESERVATION_NOT_FOUND"


class ReservationError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidRangeError(ReservationError):
    code = ErrorCode.INVALID_RANGE

    def __init__(self, start, end) -> None:
        super().__init__("Start must be before end")
        self.start = start
        self.end = end


class ResourceNotFoundError(ReservationError):
    code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource_id: UUID) -> None:
        super().__init__("Resource not found")
        self.resource_id = resource_id


class ResourceInactiveError(ReservationError):
    code = ErrorCode.RESOURCE_INACTIVE

    def __init__(self, resource_id: UUID) -> None:
        super().__init__("Resource is not available for booking")
        self.resource_id = resource_id


class CapacityExceededError(ReservationError):
    code = ErrorCode.CAPACITY_EXCEEDED

    def __init__(self, party_size: int, capacity: int) -> None:
        super().__init__(f"Party size {party_size} exceeds resource capacity {capacity}")
        self.party_size = party_size
        self.capacity = capacity


class ValidationError(ReservationError):
    """Malformed or missing request fields; errors maps field -> problems."""

    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__("Invalid reservation request")
        self.errors = errors


class ConflictError(ReservationError):
    code = ErrorCode.CONFLICT

    def __init__(self, message: str = "Requested period is no longer available") -> None:
        super().__init__(message)


class InvalidTransitionError(ReservationError):
    code = ErrorCode.INVALID_TRANSITION

    def __init__(self, current: str, action: str) -> None:
        super().__init__(f"Cannot {action} a reservation that is {current}")
        self.current = current
        self.action = action


class ReservationNotFoundError(ReservationError):
    code = ErrorCode.RESERVATION_NOT_FOUND

    def __init__(self, reservation_id: UUID) -> None:
        super().__init__("Reservation not found")
        self.reservation_id = reservation_id
