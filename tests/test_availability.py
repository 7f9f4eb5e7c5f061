from datetime import datetime, timedelta

from app.models.appointment import Appointment, AppointmentStatus

SLOT = datetime(2025, 1, 10, 10, 0)

def add_appointment(db, owner, scheduled_at, status=AppointmentStatus.PENDING):
    appointment = Appointment(
        owner_id=owner.id,
        scheduled_at=scheduled_at,
        treatment_type="Limpieza",
        status=status,
        created_at=datetime(2025, 1, 1, 8, 0),
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment

class TestAvailability:

    def test_empty_calendar_is_available(self, service):
        assert service.is_available(SLOT) is True

    def test_candidate_inside_existing_slot(self, service, db_session, patient):
        add_appointment(db_session, patient, SLOT)

        assert service.is_available(SLOT + timedelta(minutes=30)) is False
        assert service.is_available(SLOT + timedelta(minutes=59)) is False

    def test_slot_start_is_taken(self, service, db_session, patient):
        add_appointment(db_session, patient, SLOT)

        assert service.is_available(SLOT) is False

    def test_slot_end_is_free(self, service, db_session, patient):
        add_appointment(db_session, patient, SLOT)

        assert service.is_available(SLOT + timedelta(hours=1)) is True

    def test_only_candidate_start_is_checked(self, service, db_session, patient):
        add_appointment(db_session, patient, SLOT)

        # 09:30 slot would run into 10:00, but its start is outside 10:00-11:00
        assert service.is_available(SLOT - timedelta(minutes=30)) is True

    def test_cancelled_appointments_do_not_block(self, service, db_session, patient):
        add_appointment(db_session, patient, SLOT, status=AppointmentStatus.CANCELLED)

        assert service.is_available(SLOT) is True

    def test_completed_appointments_still_block(self, service, db_session, patient):
        add_appointment(db_session, patient, SLOT, status=AppointmentStatus.COMPLETED)

        assert service.is_available(SLOT) is False

    def test_excluded_appointment_is_ignored(self, service, db_session, patient):
        appointment = add_appointment(db_session, patient, SLOT)

        assert service.is_available(SLOT, exclude_appointment_id=appointment.id) is True

    def test_exclusion_only_skips_that_appointment(self, service, db_session, patient):
        first = add_appointment(db_session, patient, SLOT)
        add_appointment(db_session, patient, SLOT + timedelta(hours=1))

        assert service.is_available(SLOT + timedelta(minutes=90), exclude_appointment_id=first.id) is False

class TestStoreOverlap:

    def test_full_overlap_catches_later_start(self, service, db_session, patient):
        add_appointment(db_session, patient, SLOT)

        assert service.store.has_overlap(SLOT - timedelta(minutes=30)) is True

    def test_adjacent_slots_do_not_overlap(self, service, db_session, patient):
        add_appointment(db_session, patient, SLOT)

        assert service.store.has_overlap(SLOT - timedelta(hours=1)) is False
        assert service.store.has_overlap(SLOT + timedelta(hours=1)) is False
