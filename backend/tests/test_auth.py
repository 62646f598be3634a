from datetime import timedelta

import jwt
import pytest

from clinic_api.config import settings
from clinic_api.core.auth import authenticate, register_patient, resolve_principal
from clinic_api.core.errors import (
    ConflictError, InvalidCredential, PendingApproval, ProfileMissing, Unauthenticated, ValidationError
)
from clinic_api.models.patient_model import Patient, STATUS_PENDING
from clinic_api.models.schemas import SignupRequest
from clinic_api.utils.io_helpers import AuthHelper

from conftest import make_doctor, make_patient

class TestAuthorizationGate:

    def test_missing_token(self, session):
        with pytest.raises(Unauthenticated):
            resolve_principal(session, None)

        with pytest.raises(Unauthenticated):
            resolve_principal(session, "")

    def test_garbage_token(self, session):
        with pytest.raises(InvalidCredential):
            resolve_principal(session, "not-a-jwt")

    def test_token_signed_with_other_secret(self, session, doctor):
        token = jwt.encode({"sub": str(doctor.id), "role": "doctor"}, "another-secret", algorithm="HS256")

        with pytest.raises(InvalidCredential):
            resolve_principal(session, token)

    def test_expired_token(self, session, doctor):
        token = AuthHelper.create_access_token(doctor.id, "doctor", expires_delta=timedelta(seconds=-5))

        with pytest.raises(InvalidCredential):
            resolve_principal(session, token)

    def test_token_for_deleted_identity(self, session):
        token = AuthHelper.create_access_token(4242, "doctor")

        with pytest.raises(ProfileMissing):
            resolve_principal(session, token)

    def test_pending_patient_refused(self, session):
        user, _ = make_patient(session, status=STATUS_PENDING)
        token = AuthHelper.create_access_token(user.id, "patient")

        with pytest.raises(PendingApproval):
            resolve_principal(session, token)

    def test_doctor_principal(self, session, doctor):
        principal = resolve_principal(session, AuthHelper.create_access_token(doctor.id, "doctor"))

        assert principal.id == doctor.id
        assert principal.is_doctor
        assert principal.patientId is None

    def test_patient_principal_carries_patient_id(self, session):
        user, patient = make_patient(session)
        principal = resolve_principal(session, AuthHelper.create_access_token(user.id, "patient"))

        assert principal.role == "patient"
        assert principal.patientId == patient.id

    def test_gate_uses_given_settings(self, session, doctor):
        custom = settings.model_copy(update={"jwt_secret_key": "a-different-secret-for-one-app"})
        token = AuthHelper.create_access_token(doctor.id, "doctor", config=custom)

        assert resolve_principal(session, token, custom).id == doctor.id
        with pytest.raises(InvalidCredential):
            resolve_principal(session, token)

class TestLogin:

    def test_doctor_login(self, session):
        doctor = make_doctor(session)
        token, principal = authenticate(session, "Doctor@Clinic.com", "doctor123")

        assert principal.id == doctor.id
        assert AuthHelper.verify_token(token) == doctor.id
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        assert payload["role"] == "doctor"

    def test_patient_login_with_issued_password(self, session):
        _, patient = make_patient(session, phone="9876543210")
        _, principal = authenticate(session, "9876543210@patient.com", "3210123", role="patient")

        assert principal.patientId == patient.id

    def test_wrong_password(self, session, doctor):
        with pytest.raises(InvalidCredential) as exc_info:
            authenticate(session, "doctor@clinic.com", "wrong")
        assert exc_info.value.message == "Invalid credentials"

    def test_unknown_email_looks_like_wrong_password(self, session):
        with pytest.raises(InvalidCredential) as exc_info:
            authenticate(session, "nobody@clinic.com", "doctor123")
        assert exc_info.value.message == "Invalid credentials"

    def test_role_mismatch(self, session, doctor):
        with pytest.raises(InvalidCredential):
            authenticate(session, "doctor@clinic.com", "doctor123", role="patient")

    def test_missing_fields(self, session):
        with pytest.raises(ValidationError):
            authenticate(session, "doctor@clinic.com", None)

    def test_pending_patient_cannot_log_in(self, session):
        """Correct credentials are still refused until a doctor approves"""
        make_patient(session, phone="5550001111", status=STATUS_PENDING)

        with pytest.raises(PendingApproval):
            authenticate(session, "5550001111@patient.com", "1111123")

class TestSignup:

    def test_signup_creates_pending_patient(self, session):
        patient = register_patient(session, SignupRequest(
            name="Meera", email="Meera@Example.com", password="secret1", phone="9000000001"
        ))

        stored = session.get(Patient, patient.id)
        assert stored.status == STATUS_PENDING
        assert stored.user.email == "meera@example.com"
        assert stored.user.role == "patient"

        with pytest.raises(PendingApproval):
            authenticate(session, "meera@example.com", "secret1")

    def test_short_password(self, session):
        with pytest.raises(ValidationError) as exc_info:
            register_patient(session, SignupRequest(name="Meera", email="m@example.com", password="12345"))
        assert "password" in exc_info.value.details

    def test_duplicate_email(self, session, doctor):
        with pytest.raises(ConflictError):
            register_patient(session, SignupRequest(name="Copy", email="doctor@clinic.com", password="secret1"))
