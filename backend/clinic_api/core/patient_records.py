from datetime import date
from typing import List, Optional, Tuple
from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_api.core.attachments import AttachmentManager
from clinic_api.core.credentials import IssuedCredential, create_identity, issue_credential
from clinic_api.core.errors import ConflictError, NotFound, ValidationError
from clinic_api.core.notifications import InviteMailer
from clinic_api.core.policy import ensure_can_access
from clinic_api.models.patient_model import Patient, STATUS_ACTIVE, STATUS_PENDING
from clinic_api.models.schemas import PatientCreate, PatientUpdate, Principal
from clinic_api.models.user_model import User
from clinic_api.utils.io_helpers import ValidationHelper

DELIVERY_RESPONSE = "response"
DELIVERY_INVITE = "invite"


def list_patients(session: Session, status: Optional[str] = None) -> List[Patient]:
    query = select(Patient)
    if status is not None:
        query = query.where(Patient.status == status)
    return list(session.scalars(query.order_by(Patient.created_at.desc(), Patient.id.desc())))


def get_patient(session: Session, principal: Principal, patient_id: int) -> Patient:
    # Scope first so a patient cannot probe which ids exist
    ensure_can_access(principal, patient_id)
    patient = session.get(Patient, patient_id)
    if patient is None:
        raise NotFound("Patient not found")
    return patient


async def create_patient(
    session: Session,
    request: PatientCreate,
    delivery: str = DELIVERY_RESPONSE,
    mailer: Optional[InviteMailer] = None
) -> Tuple[Patient, IssuedCredential]:
    """Create an active patient together with a login identity"""
    data = request.model_dump()
    errors = ValidationHelper.validate_patient_data(data)
    if errors:
        raise ValidationError("Name, age, and phone are required", details=errors)

    if delivery == DELIVERY_INVITE and not (request.email or "").strip():
        raise ValidationError("Email is required to send the patient invitation")

    credential = issue_credential(session, request.phone, request.email)
    user = create_identity(session, request.name.strip(), credential)

    fields = {key: value for key, value in data.items() if key not in ("name", "phone")}
    patient = Patient(
        user_id=user.id,
        name=request.name.strip(),
        phone=request.phone.strip(),
        status=STATUS_ACTIVE,
        **fields
    )
    session.add(patient)

    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Email already exists")

    logger.info(f"Created patient {patient.id} with identity {user.id}")

    if delivery == DELIVERY_INVITE:
        try:
            await mailer.send_invite(request.email.strip(), patient.name, credential.email, credential.password)
        except Exception:
            # Without the invite nobody knows the password, so undo the account
            session.delete(user)
            session.commit()
            logger.warning(f"Rolled back patient {patient.id} after failed invite")
            raise

    return patient, credential


def update_patient(session: Session, patient_id: int, request: PatientUpdate) -> Patient:
    """Apply a doctor's edits and stamp the visit date"""
    patient = session.get(Patient, patient_id)
    if patient is None:
        raise NotFound("Patient not found")

    updates = request.model_dump(exclude_unset=True)
    for field in ("name", "phone"):
        if field in updates and not (updates[field] or "").strip():
            raise ValidationError(f"Patient {field} cannot be empty")

    for field, value in updates.items():
        setattr(patient, field, value.strip() if isinstance(value, str) else value)

    patient.last_visit = date.today()
    session.commit()
    logger.info(f"Updated patient {patient.id}")
    return patient


def approve_patient(session: Session, patient_id: int) -> Patient:
    patient = session.get(Patient, patient_id)
    if patient is None:
        raise NotFound("Patient not found")

    if patient.status == STATUS_PENDING:
        patient.status = STATUS_ACTIVE
        session.commit()
        logger.info(f"Approved patient {patient.id}")

    return patient


async def delete_patient(session: Session, attachments: AttachmentManager, patient_id: int) -> None:
    """Delete the patient's identity and let the store cascade the rest"""
    patient = session.get(Patient, patient_id)
    if patient is None:
        raise NotFound("Patient not found")

    await attachments.purge_patient_blobs(session, patient_id)

    owner = session.get(User, patient.user_id) if patient.user_id is not None else None
    session.delete(owner if owner is not None else patient)
    session.commit()
    logger.info(f"Deleted patient {patient_id}")
