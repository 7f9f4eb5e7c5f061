from datetime import date, datetime, time, timedelta
from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import PersistenceError, SlotConflictError
from ..models.appointment import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)

OVERLAP_CONSTRAINT = "appointments_no_overlap"

class AppointmentStore:
    """SQLAlchemy-backed persistence for appointments."""

    def __init__(self, db: Session, slot_duration: timedelta):
        self.db = db
        self.slot_duration = slot_duration

    def find(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.get(Appointment, appointment_id)

    def find_by_owner_and_id(self, owner_id: int, appointment_id: int) -> Optional[Appointment]:
        return self.db.execute(
            select(Appointment).where(
                Appointment.id == appointment_id,
                Appointment.owner_id == owner_id,
            )
        ).scalar_one_or_none()

    def find_by_owner(self, owner_id: int) -> List[Appointment]:
        return self._ordered(select(Appointment).where(Appointment.owner_id == owner_id))

    def find_by_date(self, day: date) -> List[Appointment]:
        start = datetime.combine(day, time.min)
        return self._ordered(
            select(Appointment).where(
                Appointment.scheduled_at >= start,
                Appointment.scheduled_at < start + timedelta(days=1),
            )
        )

    def find_all(self) -> List[Appointment]:
        return self._ordered(select(Appointment))

    def has_conflict(self, candidate: datetime, exclude_id: Optional[int] = None) -> bool:
        """True if ``candidate`` starts inside an active appointment's slot.

        Matches ``existing <= candidate < existing + slot_duration``.
        """
        query = self._active(exclude_id).where(
            Appointment.scheduled_at <= candidate,
            Appointment.scheduled_at > candidate - self.slot_duration,
        )
        return self.db.execute(query.limit(1)).first() is not None

    def has_overlap(self, start: datetime, exclude_id: Optional[int] = None) -> bool:
        """True if the slot starting at ``start`` intersects any active slot."""
        query = self._active(exclude_id).where(
            Appointment.scheduled_at < start + self.slot_duration,
            Appointment.scheduled_at > start - self.slot_duration,
        )
        return self.db.execute(query.limit(1)).first() is not None

    def save(self, appointment: Appointment) -> Appointment:
        """Persist ``appointment`` and commit.

        Active appointments are re-checked for a full slot intersection in
        the same transaction before the write.
        """
        try:
            if not appointment.is_cancelled and self.has_overlap(
                appointment.scheduled_at, exclude_id=appointment.id
            ):
                self.db.rollback()
                raise SlotConflictError("The selected time slot is not available")

            self.db.add(appointment)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if OVERLAP_CONSTRAINT in str(e.orig):
                raise SlotConflictError("The selected time slot is not available") from e
            logger.error(f"Integrity error saving appointment: {e.orig}")
            raise PersistenceError("Could not save the appointment") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error saving appointment: {e}")
            raise PersistenceError("Could not save the appointment") from e

        self.db.refresh(appointment)
        return appointment

    def _active(self, exclude_id: Optional[int]):
        query = select(Appointment.id).where(Appointment.status != AppointmentStatus.CANCELLED)
        if exclude_id is not None:
            query = query.where(Appointment.id != exclude_id)
        return query

    def _ordered(self, query) -> List[Appointment]:
        query = query.order_by(Appointment.scheduled_at.asc(), Appointment.id.asc())
        return list(self.db.execute(query).scalars().all())
