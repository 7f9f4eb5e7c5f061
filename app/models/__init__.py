from .appointment import Appointment, AppointmentStatus
from .user import User

__all__ = ["Appointment", "AppointmentStatus", "User"]
