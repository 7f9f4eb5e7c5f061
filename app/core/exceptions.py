"""
Domain errors raised by the appointment services.

Each error carries the HTTP status it maps to; ``app.main`` renders them
through a single exception handler.
"""
from fastapi import status


class AppointmentError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    error: str = "Bad Request"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTimeError(AppointmentError):
    """Requested date-time is not in the future."""
    error = "Invalid Time"


class SlotConflictError(AppointmentError):
    """Requested slot overlaps a non-cancelled appointment."""
    status_code = status.HTTP_409_CONFLICT
    error = "Slot Conflict"


class NotFoundError(AppointmentError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not Found"


class InvalidStateError(AppointmentError):
    """Unknown status value, or mutation of a cancelled appointment."""
    error = "Invalid State"


class InvalidAppointmentDataError(AppointmentError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error = "Invalid Appointment Data"


class PersistenceError(AppointmentError):
    """The store failed for a reason other than a domain rule."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "Persistence Failure"
