from typing import List
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from clinic_api.core.attachments import AttachmentManager, get_attachment_manager
from clinic_api.core.auth import get_current_principal
from clinic_api.core.database import get_db
from clinic_api.core.patient_records import (
    DELIVERY_RESPONSE, approve_patient, create_patient, delete_patient, get_patient, list_patients, update_patient
)
from clinic_api.core.policy import require_doctor
from clinic_api.models.patient_model import STATUS_PENDING
from clinic_api.models.schemas import (
    IssuedCredentials, MessageResponse, PatientCreate, PatientCreatedResponse, PatientResponse, PatientUpdate, Principal
)

router = APIRouter()

@router.get("/patients", response_model=List[PatientResponse])
async def list_all_patients(
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    """List every patient record"""
    require_doctor(principal)
    return list_patients(session)

@router.get("/patients/pending", response_model=List[PatientResponse])
async def list_pending_patients(
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    """Self-registered patients waiting for approval"""
    require_doctor(principal)
    return list_patients(session, status=STATUS_PENDING)

@router.get("/patients/{patient_id}", response_model=PatientResponse)
async def get_patient_record(
    patient_id: int,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    return get_patient(session, principal, patient_id)

@router.post("/patients", response_model=PatientCreatedResponse, status_code=201)
async def create_patient_record(
    patient_data: PatientCreate,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    """Create a patient and issue their login"""
    require_doctor(principal)

    delivery = request.app.state.settings.credential_delivery
    patient, credential = await create_patient(
        session,
        patient_data,
        delivery=delivery,
        mailer=request.app.state.mailer
    )

    # The password only travels in the response when invites are disabled
    password = credential.password if delivery == DELIVERY_RESPONSE else None
    return PatientCreatedResponse(
        patient=PatientResponse.model_validate(patient),
        credentials=IssuedCredentials(email=credential.email, password=password, delivery=delivery)
    )

@router.put("/patients/{patient_id}", response_model=PatientResponse)
async def update_patient_record(
    patient_id: int,
    updates: PatientUpdate,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    require_doctor(principal)
    return update_patient(session, patient_id, updates)

@router.put("/patients/{patient_id}/approve", response_model=PatientResponse)
async def approve_patient_record(
    patient_id: int,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    """Activate a self-registered patient"""
    require_doctor(principal)
    return approve_patient(session, patient_id)

@router.delete("/patients/{patient_id}", response_model=MessageResponse)
async def delete_patient_record(
    patient_id: int,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db),
    attachments: AttachmentManager = Depends(get_attachment_manager)
):
    """Delete a patient with their login, appointments, fees and files"""
    require_doctor(principal)
    await delete_patient(session, attachments, patient_id)
    return MessageResponse(message="Patient deleted successfully")
