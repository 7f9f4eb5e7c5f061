from datetime import datetime
from typing import Optional

from ..crud.appointment import AppointmentStore

class AvailabilityChecker:
    """Answers whether a start time is free on the clinic calendar.

    A candidate is taken when it falls inside the half-open slot
    ``[existing, existing + slot_duration)`` of any appointment that is not
    cancelled. Only the candidate's start is tested; the store repeats a
    full interval check when the booking is written.
    """

    def __init__(self, store: AppointmentStore):
        self.store = store

    def is_available(self, candidate: datetime, exclude_appointment_id: Optional[int] = None) -> bool:
        return not self.store.has_conflict(candidate, exclude_id=exclude_appointment_id)
