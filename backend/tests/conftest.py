"""
Shared fixtures for the clinic API test suite.

Every test gets its own SQLite file and storage directory. The app is
built through ``create_app`` with those stores injected and credential
delivery set to ``response`` so no e-mail is sent.
"""
import os
import tempfile

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-the-clinic-api-suite")
os.environ.setdefault("CREDENTIAL_DELIVERY", "response")
os.environ.setdefault("STORAGE_PATH", tempfile.mkdtemp(prefix="clinic-storage-"))

import pytest
from fastapi.testclient import TestClient

from clinic_api.config import settings
from clinic_api.core.attachments import AttachmentManager
from clinic_api.core.database import Database
from clinic_api.core.notifications import InviteMailer
from clinic_api.core.storage import LocalStorageClient
from clinic_api.main import create_app
from clinic_api.models.patient_model import Patient, STATUS_ACTIVE
from clinic_api.models.schemas import Principal
from clinic_api.models.user_model import User
from clinic_api.utils import io_helpers
from clinic_api.utils.io_helpers import AuthHelper, PasswordHelper


class RecordingMailer(InviteMailer):
    """Keeps invites in memory instead of sending them"""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_invite(self, to_email, name, login_email, password):
        if self.fail:
            from clinic_api.core.errors import DeliveryError
            raise DeliveryError()
        self.sent.append({"to": to_email, "name": name, "login": login_email, "password": password})


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    # Minimum bcrypt cost keeps the suite quick
    monkeypatch.setattr(io_helpers, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def test_settings(tmp_path):
    return settings.model_copy(update={
        "database_url": f"sqlite:///{tmp_path / 'clinic.db'}",
        "storage_path": str(tmp_path / "blobs"),
        "credential_delivery": "response",
        "bootstrap_doctor_email": None,
        "bootstrap_doctor_password": None,
    })


@pytest.fixture
def database(test_settings):
    db = Database(test_settings.database_url)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def session(database):
    with database.session() as s:
        yield s


@pytest.fixture
def storage(test_settings):
    return LocalStorageClient(test_settings.storage_path, config=test_settings)


@pytest.fixture
def attachments(storage, test_settings):
    return AttachmentManager(storage, test_settings)


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def app(test_settings, database, storage, mailer):
    return create_app(test_settings, database=database, storage=storage, mailer=mailer)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def make_doctor(session, email="doctor@clinic.com", password="doctor123", name="Dr. Rao"):
    user = User(name=name, email=email, password_hash=PasswordHelper.hash_password(password), role="doctor")
    session.add(user)
    session.commit()
    return user


def make_patient(session, name="Asha", phone="9876543210", status=STATUS_ACTIVE, password=None, email=None):
    email = email or f"{phone}@patient.com"
    user = User(
        name=name,
        email=email,
        password_hash=PasswordHelper.hash_password(password or phone[-4:] + "123"),
        role="patient"
    )
    patient = Patient(user=user, name=name, age=34, phone=phone, status=status)
    session.add_all([user, patient])
    session.commit()
    return user, patient


def principal_for(user, patient=None):
    return Principal(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        patientId=patient.id if patient is not None else None
    )


def bearer(user):
    return {"Authorization": f"Bearer {AuthHelper.create_access_token(user.id, user.role)}"}


@pytest.fixture
def doctor(session):
    return make_doctor(session)


@pytest.fixture
def doctor_principal(doctor):
    return principal_for(doctor)
