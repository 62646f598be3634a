"""
Credential issuance for doctor-provisioned patients.

A patient created by a doctor gets a login derived from their phone number:
the last four characters followed by ``123``. The plaintext is handed back
once to the caller and never stored.
"""
from dataclasses import dataclass
from typing import Optional
from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_api.core.errors import ConflictError, ValidationError
from clinic_api.models.user_model import User, ROLE_DOCTOR, ROLE_PATIENT
from clinic_api.utils.io_helpers import PasswordHelper

DEFAULT_PASSWORD_SUFFIX = "123"
SYNTHETIC_EMAIL_DOMAIN = "patient.com"


@dataclass(frozen=True)
class IssuedCredential:
    email: str
    password: str
    password_hash: str


def derive_default_password(phone: str) -> str:
    return phone[-4:] + DEFAULT_PASSWORD_SUFFIX


def derive_login_email(phone: str, email: Optional[str] = None) -> str:
    if email and email.strip():
        return email.strip().lower()
    return f"{phone}@{SYNTHETIC_EMAIL_DOMAIN}"


def email_taken(session: Session, email: str) -> bool:
    return session.scalar(select(User.id).where(User.email == email)) is not None


def issue_credential(session: Session, phone: Optional[str], email: Optional[str] = None) -> IssuedCredential:
    """Derive, check and hash the login of a new patient identity"""
    phone = (phone or "").strip()
    if not phone:
        raise ValidationError("Phone is required to issue patient credentials")

    login_email = derive_login_email(phone, email)
    if email_taken(session, login_email):
        raise ConflictError("Email already exists")

    password = derive_default_password(phone)
    return IssuedCredential(
        email=login_email,
        password=password,
        password_hash=PasswordHelper.hash_password(password)
    )


def create_identity(session: Session, name: str, credential: IssuedCredential, role: str = ROLE_PATIENT) -> User:
    """Add an identity row for an issued credential (caller commits)"""
    user = User(name=name, email=credential.email, password_hash=credential.password_hash, role=role)
    session.add(user)
    session.flush()
    logger.info(f"Created {role} identity: {user.id}")
    return user


def ensure_doctor_account(session: Session, email: str, password: str, name: str) -> Optional[User]:
    """Create the configured doctor login unless the email is already registered"""
    email = email.strip().lower()
    if email_taken(session, email):
        return None

    user = User(name=name, email=email, password_hash=PasswordHelper.hash_password(password), role=ROLE_DOCTOR)
    session.add(user)
    session.commit()
    logger.info(f"Created bootstrap doctor account {user.id}")
    return user
