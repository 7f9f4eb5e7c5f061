from sqlalchemy.orm import Session
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional
import logging

from ..core.config import settings
from ..core.exceptions import (
    InvalidAppointmentDataError, InvalidStateError, InvalidTimeError,
    NotFoundError, SlotConflictError
)
from ..crud.appointment import AppointmentStore
from ..models.appointment import Appointment, AppointmentStatus
from ..models.user import User
from .availability import AvailabilityChecker
from .notifications import Contact, NotificationIntent, NotificationKind, NotificationOutbox

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

class AppointmentService:
    """Booking, editing, cancellation and status changes for appointments."""

    def __init__(
        self,
        db: Session,
        clock: Clock = datetime.now,
        outbox: Optional[NotificationOutbox] = None,
        slot_duration: Optional[timedelta] = None,
    ):
        self.db = db
        self.clock = clock
        self.outbox = outbox if outbox is not None else NotificationOutbox()
        self.store = AppointmentStore(
            db, slot_duration or timedelta(minutes=settings.SLOT_DURATION_MINUTES)
        )
        self.availability = AvailabilityChecker(self.store)

    # Queries

    def is_available(self, candidate: datetime, exclude_appointment_id: Optional[int] = None) -> bool:
        return self.availability.is_available(candidate, exclude_appointment_id)

    def get_all_appointments(self) -> List[Appointment]:
        return self.store.find_all()

    def get_user_appointments(self, owner_id: int) -> List[Appointment]:
        return self.store.find_by_owner(owner_id)

    def get_daily_appointments(self, day: date) -> List[Appointment]:
        return self.store.find_by_date(day)

    def get_appointment(self, owner_id: int, appointment_id: int) -> Optional[Appointment]:
        return self.store.find_by_owner_and_id(owner_id, appointment_id)

    # Commands

    def create_appointment(
        self,
        owner_id: int,
        scheduled_at: datetime,
        treatment_type: str,
        notes: Optional[str] = None,
    ) -> Appointment:
        """Book a new appointment for ``owner_id``."""
        treatment_type = self._require_treatment_type(treatment_type)

        now = self.clock()
        if scheduled_at <= now:
            raise InvalidTimeError("Appointments cannot be booked in the past")

        self._require_available(scheduled_at)

        appointment = Appointment(
            owner_id=owner_id,
            scheduled_at=scheduled_at,
            treatment_type=treatment_type,
            notes=notes,
            status=AppointmentStatus.PENDING,
            created_at=now,
        )
        self.store.save(appointment)
        logger.info(f"Appointment {appointment.id} booked for user {owner_id} at {scheduled_at}")

        contact = self._owner_contact(owner_id)
        if contact:
            self.outbox.emit(NotificationIntent(
                kind=NotificationKind.CONFIRMATION,
                contact=contact,
                scheduled_at=appointment.scheduled_at,
                treatment_type=appointment.treatment_type,
            ))

        return appointment

    def update_appointment(
        self,
        owner_id: int,
        appointment_id: int,
        scheduled_at: datetime,
        treatment_type: str,
        notes: Optional[str] = None,
    ) -> Appointment:
        """Reschedule or edit one of the owner's appointments."""
        appointment = self.store.find_by_owner_and_id(owner_id, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")

        if appointment.is_cancelled:
            raise InvalidStateError("A cancelled appointment cannot be modified")

        treatment_type = self._require_treatment_type(treatment_type)

        self._require_available(scheduled_at, exclude_appointment_id=appointment.id)

        appointment.scheduled_at = scheduled_at
        appointment.treatment_type = treatment_type
        appointment.notes = notes
        self.store.save(appointment)
        logger.info(f"Appointment {appointment.id} updated, now at {scheduled_at}")

        return appointment

    def cancel_appointment(self, owner_id: int, appointment_id: int) -> bool:
        """Cancel one of the owner's appointments.

        Returns False when the owner has no such appointment.
        """
        appointment = self.store.find_by_owner_and_id(owner_id, appointment_id)
        if not appointment:
            return False

        if appointment.is_cancelled:
            raise InvalidStateError("The appointment is already cancelled")

        scheduled_at = appointment.scheduled_at
        appointment.status = AppointmentStatus.CANCELLED
        self.store.save(appointment)
        logger.info(f"Appointment {appointment.id} cancelled by user {owner_id}")

        self._emit_cancellation(owner_id, scheduled_at)
        return True

    def set_status(self, appointment_id: int, new_status: str) -> Appointment:
        """Administrative status change; any recognized status except out of Cancelled."""
        appointment = self.store.find(appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")

        status = AppointmentStatus.parse(new_status)

        if appointment.is_cancelled:
            raise InvalidStateError("The appointment is already cancelled")

        previous = appointment.status
        appointment.status = status
        self.store.save(appointment)
        logger.info(f"Appointment {appointment.id} status {previous.value} -> {status.value}")

        if status == AppointmentStatus.CANCELLED:
            self._emit_cancellation(appointment.owner_id, appointment.scheduled_at)

        return appointment

    # Helpers

    def _require_available(self, scheduled_at: datetime, exclude_appointment_id: Optional[int] = None):
        if not self.availability.is_available(scheduled_at, exclude_appointment_id):
            logger.info(f"Slot conflict at {scheduled_at}")
            raise SlotConflictError("The selected time slot is not available")

    def _require_treatment_type(self, treatment_type: Optional[str]) -> str:
        treatment_type = (treatment_type or "").strip()
        if not treatment_type:
            raise InvalidAppointmentDataError("Treatment type is required")
        return treatment_type

    def _owner_contact(self, owner_id: int) -> Optional[Contact]:
        user = self.db.get(User, owner_id)
        if not user:
            return None
        return Contact(email=user.email, name=user.first_name)

    def _emit_cancellation(self, owner_id: int, scheduled_at: datetime):
        contact = self._owner_contact(owner_id)
        if contact:
            self.outbox.emit(NotificationIntent(
                kind=NotificationKind.CANCELLATION,
                contact=contact,
                scheduled_at=scheduled_at,
            ))
