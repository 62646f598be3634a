from typing import Optional, Tuple
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_api.config import Settings
from clinic_api.core.database import get_db
from clinic_api.core.errors import (
    ConflictError, InvalidCredential, PendingApproval, ProfileMissing, Unauthenticated, ValidationError
)
from clinic_api.models.patient_model import Patient, STATUS_PENDING
from clinic_api.models.schemas import Principal, SignupRequest
from clinic_api.models.user_model import User, ROLE_PATIENT
from clinic_api.utils.io_helpers import AuthHelper, PasswordHelper, ValidationHelper

security = HTTPBearer(auto_error=False)


def _principal_for(user: User) -> Principal:
    """Build the principal of an identity, refusing patients awaiting approval"""
    patient_id = None
    if user.role == ROLE_PATIENT:
        patient = user.patient
        if patient is not None and patient.status == STATUS_PENDING:
            logger.warning(f"Pending patient {patient.id} refused")
            raise PendingApproval()
        patient_id = patient.id if patient is not None else None

    return Principal(id=user.id, email=user.email, name=user.name, role=user.role, patientId=patient_id)


def resolve_principal(session: Session, token: Optional[str], config: Optional[Settings] = None) -> Principal:
    """Resolve a bearer token to the principal it authenticates"""
    if not token:
        raise Unauthenticated()

    user_id = AuthHelper.verify_token(token, config)
    if user_id is None:
        raise InvalidCredential()

    user = session.get(User, user_id)
    if user is None:
        logger.warning(f"Token subject {user_id} has no identity record")
        raise ProfileMissing()

    return _principal_for(user)


def authenticate(
    session: Session,
    email: Optional[str],
    password: Optional[str],
    role: Optional[str] = None,
    config: Optional[Settings] = None
) -> Tuple[str, Principal]:
    """Check email and password, returning an access token and its principal"""
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = session.scalar(select(User).where(User.email == email.strip().lower()))
    if user is None or not PasswordHelper.verify_password(password, user.password_hash):
        logger.warning("Login failed: invalid credentials")
        raise InvalidCredential("Invalid credentials")

    if role is not None and user.role != role:
        logger.warning(f"Login failed: identity {user.id} is not a {role}")
        raise InvalidCredential("Invalid credentials")

    principal = _principal_for(user)
    token = AuthHelper.create_access_token(user_id=user.id, role=user.role, config=config)
    logger.info(f"User {user.id} logged in as {user.role}")
    return token, principal


def register_patient(session: Session, request: SignupRequest) -> Patient:
    """Self-registration: a patient identity whose record waits for doctor approval"""
    errors = ValidationHelper.validate_signup_data(request.model_dump())
    if errors:
        raise ValidationError("Name, email and password are required", details=errors)

    email = request.email.strip().lower()
    if session.scalar(select(User.id).where(User.email == email)) is not None:
        raise ConflictError("An account with this email already exists")

    user = User(
        name=request.name.strip(),
        email=email,
        password_hash=PasswordHelper.hash_password(request.password),
        role=ROLE_PATIENT
    )
    patient = Patient(
        user=user,
        name=user.name,
        email=email,
        phone=(request.phone or "").strip(),
        status=STATUS_PENDING
    )
    session.add_all([user, patient])

    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("An account with this email already exists")

    logger.info(f"Patient {patient.id} signed up, awaiting approval")
    return patient


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: Session = Depends(get_db)
) -> Principal:
    """FastAPI dependency running the authorization gate"""
    token = credentials.credentials if credentials else None
    return resolve_principal(session, token, request.app.state.settings)
