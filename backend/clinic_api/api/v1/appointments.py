from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_api.core.auth import get_current_principal
from clinic_api.core.database import get_db
from clinic_api.core.policy import require_doctor
from clinic_api.core.scheduling import (
    appointments_on, book_appointment, delete_appointment, list_appointments, set_appointment_status
)
from clinic_api.models.appointment_model import Appointment
from clinic_api.models.schemas import (
    AppointmentCreate, AppointmentResponse, AppointmentStatusUpdate, MessageResponse, Principal, Role
)

router = APIRouter()

def _with_patient(appointment: Appointment) -> AppointmentResponse:
    response = AppointmentResponse.model_validate(appointment)
    response.patient_name = appointment.patient.name
    response.patient_phone = appointment.patient.phone
    return response

@router.get("/appointments", response_model=List[AppointmentResponse])
async def get_appointments(
    patient_id: Optional[int] = None,
    on_date: Optional[date] = Query(default=None, alias="date"),
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    """Doctors see every appointment, patients only their own"""
    appointments = list_appointments(session, principal, patient_id=patient_id, on_date=on_date)
    if principal.role == Role.DOCTOR:
        return [_with_patient(appointment) for appointment in appointments]
    return appointments

@router.get("/appointments/today", response_model=List[AppointmentResponse])
async def get_todays_appointments(
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    require_doctor(principal)
    return [_with_patient(appointment) for appointment in appointments_on(session, date.today())]

@router.post("/appointments", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    request: AppointmentCreate,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    """Book a slot; fails with 409 when it is already taken"""
    return book_appointment(session, principal, request)

@router.put("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: int,
    update: AppointmentStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    require_doctor(principal)
    return set_appointment_status(session, appointment_id, update.status)

@router.delete("/appointments/{appointment_id}", response_model=MessageResponse)
async def remove_appointment(
    appointment_id: int,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    require_doctor(principal)
    delete_appointment(session, appointment_id)
    return MessageResponse(message="Appointment deleted successfully")
