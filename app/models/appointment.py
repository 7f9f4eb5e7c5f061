from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, DDL, Enum as SQLEnum, event
from sqlalchemy.orm import relationship
import enum

from ..core.config import settings
from ..core.database import Base
from ..core.exceptions import InvalidStateError

class AppointmentStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @classmethod
    def parse(cls, value: str) -> "AppointmentStatus":
        """Resolve a status string from a client, rejecting unknown values."""
        if isinstance(value, cls):
            return value
        key = (value or "").strip()
        for status in cls:
            if key == status.value:
                return status
        if key in _CLINIC_LABELS:
            return _CLINIC_LABELS[key]
        raise InvalidStateError(f"Unrecognized appointment status: {value!r}")

# Labels used by the clinic front end
_CLINIC_LABELS = {
    "Pendiente": AppointmentStatus.PENDING,
    "En Proceso": AppointmentStatus.IN_PROGRESS,
    "Completada": AppointmentStatus.COMPLETED,
    "Cancelada": AppointmentStatus.CANCELLED,
}

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Appointment details
    scheduled_at = Column(DateTime, nullable=False, index=True)
    treatment_type = Column(String(100), nullable=False)
    notes = Column(String(500), nullable=True)
    status = Column(
        SQLEnum(
            AppointmentStatus,
            name="appointment_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=AppointmentStatus.PENDING,
    )

    # Tracking
    created_at = Column(DateTime, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="appointments")

    @property
    def is_cancelled(self) -> bool:
        return self.status == AppointmentStatus.CANCELLED

    def __repr__(self):
        return f"<Appointment(id={self.id}, owner_id={self.owner_id}, scheduled_at='{self.scheduled_at}', status='{self.status}')>"

# Non-cancelled slots may not intersect; enforced by PostgreSQL itself
event.listen(
    Appointment.__table__,
    "after_create",
    DDL(
        "ALTER TABLE appointments ADD CONSTRAINT appointments_no_overlap "
        "EXCLUDE USING gist (tsrange(scheduled_at, scheduled_at + interval "
        f"'{settings.SLOT_DURATION_MINUTES} minutes') WITH &&) "
        "WHERE (status <> 'Cancelled')"
    ).execute_if(dialect="postgresql"),
)
