from datetime import date, time

import pytest

from clinic_api.core.errors import Forbidden, NotFound, SlotConflict, ValidationError
from clinic_api.core.scheduling import (
    appointments_on, book_appointment, delete_appointment, list_appointments, set_appointment_status, slot_taken
)
from clinic_api.models.appointment_model import Appointment
from clinic_api.models.schemas import AppointmentCreate

from conftest import make_patient, principal_for

SLOT_DATE = date(2024, 3, 1)
SLOT_TIME = time(10, 0)

def _request(patient_id=None, slot_date=SLOT_DATE, slot_time=SLOT_TIME, reason="Checkup"):
    return AppointmentCreate(patient_id=patient_id, date=slot_date, time=slot_time, reason=reason)

class TestBooking:

    def test_book_free_slot(self, session, doctor_principal):
        _, patient = make_patient(session)
        appointment = book_appointment(session, doctor_principal, _request(patient.id))

        assert appointment.id is not None
        assert appointment.status == "scheduled"
        assert slot_taken(session, SLOT_DATE, SLOT_TIME)

    def test_second_booking_of_slot_conflicts(self, session, doctor_principal):
        _, first = make_patient(session, phone="1110000001")
        _, second = make_patient(session, phone="1110000002")
        book_appointment(session, doctor_principal, _request(first.id))

        with pytest.raises(SlotConflict) as exc_info:
            book_appointment(session, doctor_principal, _request(second.id))
        assert exc_info.value.status_code == 409

    def test_slot_reusable_after_cancellation(self, session, doctor_principal):
        _, patient = make_patient(session)
        appointment = book_appointment(session, doctor_principal, _request(patient.id))
        set_appointment_status(session, appointment.id, "cancelled")

        again = book_appointment(session, doctor_principal, _request(patient.id))
        assert again.id != appointment.id

    def test_unique_index_closes_the_race(self, session, doctor_principal, monkeypatch):
        """A stale pre-check still ends in a conflict, not a double booking"""
        _, patient = make_patient(session)
        book_appointment(session, doctor_principal, _request(patient.id))

        monkeypatch.setattr("clinic_api.core.scheduling.slot_taken", lambda *args, **kwargs: False)
        with pytest.raises(SlotConflict):
            book_appointment(session, doctor_principal, _request(patient.id))

        assert len(session.query(Appointment).all()) == 1

    def test_date_and_time_required(self, session, doctor_principal):
        with pytest.raises(ValidationError):
            book_appointment(session, doctor_principal, AppointmentCreate(patient_id=1, date=SLOT_DATE))

    def test_unknown_patient(self, session, doctor_principal):
        with pytest.raises(NotFound):
            book_appointment(session, doctor_principal, _request(999))

    def test_patient_books_for_self(self, session):
        user, patient = make_patient(session)
        _, other = make_patient(session, phone="2220000000")

        appointment = book_appointment(session, principal_for(user, patient), _request(other.id))
        assert appointment.patient_id == patient.id

class TestStatusChanges:

    def test_invalid_status(self, session, doctor_principal):
        with pytest.raises(ValidationError):
            set_appointment_status(session, 1, "postponed")

    def test_missing_appointment(self, session):
        with pytest.raises(NotFound):
            set_appointment_status(session, 404, "completed")

        with pytest.raises(NotFound):
            delete_appointment(session, 404)

    def test_rescheduling_into_taken_slot(self, session, doctor_principal):
        _, patient = make_patient(session)
        first = book_appointment(session, doctor_principal, _request(patient.id))
        set_appointment_status(session, first.id, "cancelled")
        book_appointment(session, doctor_principal, _request(patient.id))

        with pytest.raises(SlotConflict):
            set_appointment_status(session, first.id, "scheduled")

    def test_delete(self, session, doctor_principal):
        _, patient = make_patient(session)
        appointment = book_appointment(session, doctor_principal, _request(patient.id))

        delete_appointment(session, appointment.id)
        assert session.get(Appointment, appointment.id) is None

class TestListing:

    def test_patient_sees_only_own(self, session, doctor_principal):
        user, mine = make_patient(session, phone="3330000001")
        _, theirs = make_patient(session, phone="3330000002")
        book_appointment(session, doctor_principal, _request(mine.id, slot_time=time(9, 0)))
        book_appointment(session, doctor_principal, _request(theirs.id, slot_time=time(11, 0)))

        visible = list_appointments(session, principal_for(user, mine))
        assert [a.patient_id for a in visible] == [mine.id]

        assert len(list_appointments(session, doctor_principal)) == 2

    def test_patient_filter_on_other_patient_is_forbidden(self, session):
        user, mine = make_patient(session, phone="3330000001")
        _, theirs = make_patient(session, phone="3330000002")

        with pytest.raises(Forbidden):
            list_appointments(session, principal_for(user, mine), patient_id=theirs.id)

    def test_filters_and_ordering(self, session, doctor_principal):
        _, patient = make_patient(session)
        book_appointment(session, doctor_principal, _request(patient.id, slot_time=time(9, 0)))
        book_appointment(session, doctor_principal, _request(patient.id, slot_time=time(14, 30)))
        book_appointment(session, doctor_principal, _request(patient.id, slot_date=date(2024, 3, 2)))

        on_first = list_appointments(session, doctor_principal, on_date=SLOT_DATE)
        assert [a.time for a in on_first] == [time(14, 30), time(9, 0)]

        day = appointments_on(session, SLOT_DATE)
        assert [a.time for a in day] == [time(9, 0), time(14, 30)]
