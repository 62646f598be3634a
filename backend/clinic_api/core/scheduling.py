"""
Appointment booking with double-booking protection.

A (date, time) slot can be held by at most one ``scheduled`` appointment.
The lookup before insert gives callers a clear error; the partial unique
index on the table is what actually closes the race between two writers.
"""
from datetime import date as Date, time as Time
from typing import List, Optional
from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_api.core.errors import NotFound, SlotConflict, ValidationError
from clinic_api.core.policy import ensure_can_access
from clinic_api.models.appointment_model import Appointment, APPOINTMENT_STATUSES, STATUS_SCHEDULED
from clinic_api.models.patient_model import Patient
from clinic_api.models.schemas import AppointmentCreate, Principal, Role
from clinic_api.utils.prometheus_metrics import metrics


def slot_taken(session: Session, slot_date: Date, slot_time: Time, exclude_id: Optional[int] = None) -> bool:
    query = select(Appointment.id).where(
        Appointment.date == slot_date,
        Appointment.time == slot_time,
        Appointment.status == STATUS_SCHEDULED
    )
    if exclude_id is not None:
        query = query.where(Appointment.id != exclude_id)
    return session.scalar(query.limit(1)) is not None


def _slot_conflict(slot_date: Date, slot_time: Time) -> SlotConflict:
    metrics.record_slot_conflict()
    logger.info(f"Slot {slot_date} {slot_time} already booked")
    return SlotConflict()


def book_appointment(session: Session, principal: Principal, request: AppointmentCreate) -> Appointment:
    """Create a scheduled appointment if its slot is free"""
    if request.date is None or request.time is None:
        raise ValidationError("Date and time are required")

    # Patients always book for themselves
    patient_id = principal.patientId if principal.role == Role.PATIENT else request.patient_id
    if patient_id is None:
        raise ValidationError("Patient ID is required")

    ensure_can_access(principal, patient_id)
    if session.get(Patient, patient_id) is None:
        raise NotFound("Patient not found")

    if slot_taken(session, request.date, request.time):
        raise _slot_conflict(request.date, request.time)

    appointment = Appointment(
        patient_id=patient_id,
        date=request.date,
        time=request.time,
        reason=request.reason,
        status=STATUS_SCHEDULED
    )
    session.add(appointment)

    try:
        session.commit()
    except IntegrityError:
        # A concurrent booking won the slot between the check and the insert
        session.rollback()
        raise _slot_conflict(request.date, request.time)

    logger.info(f"Booked appointment {appointment.id} for patient {patient_id} at {request.date} {request.time}")
    return appointment


def set_appointment_status(session: Session, appointment_id: int, status: Optional[str]) -> Appointment:
    if status not in APPOINTMENT_STATUSES:
        raise ValidationError("Invalid status", details={"allowed": list(APPOINTMENT_STATUSES)})

    appointment = session.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFound("Appointment not found")

    if status == STATUS_SCHEDULED and appointment.status != STATUS_SCHEDULED:
        if slot_taken(session, appointment.date, appointment.time, exclude_id=appointment.id):
            raise _slot_conflict(appointment.date, appointment.time)

    appointment.status = status
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise _slot_conflict(appointment.date, appointment.time)

    logger.info(f"Appointment {appointment.id} set to {status}")
    return appointment


def delete_appointment(session: Session, appointment_id: int) -> None:
    appointment = session.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFound("Appointment not found")

    session.delete(appointment)
    session.commit()
    logger.info(f"Deleted appointment {appointment_id}")


def list_appointments(
    session: Session,
    principal: Principal,
    patient_id: Optional[int] = None,
    on_date: Optional[Date] = None
) -> List[Appointment]:
    """Appointments visible to the principal, newest slot first"""
    if principal.role == Role.PATIENT:
        if patient_id is not None:
            ensure_can_access(principal, patient_id)
        if principal.patientId is None:
            return []
        patient_id = principal.patientId

    query = select(Appointment)
    if patient_id is not None:
        query = query.where(Appointment.patient_id == patient_id)
    if on_date is not None:
        query = query.where(Appointment.date == on_date)

    query = query.order_by(Appointment.date.desc(), Appointment.time.desc())
    return list(session.scalars(query))


def appointments_on(session: Session, on_date: Date) -> List[Appointment]:
    query = select(Appointment).where(Appointment.date == on_date).order_by(Appointment.time.asc())
    return list(session.scalars(query))
