from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field
from datetime import date as Date, time as Time, datetime
from decimal import Decimal
from enum import Enum

class Role(str, Enum):
    DOCTOR = "doctor"
    PATIENT = "patient"

class PatientStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"

class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"

# Principal resolved from a bearer token
class Principal(BaseModel):
    id: int
    email: str
    name: str
    role: Role
    patientId: Optional[int] = None

    @property
    def is_doctor(self) -> bool:
        return self.role == Role.DOCTOR

# Authentication Models
class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[Role] = None

class SignupRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None

class UserInfo(BaseModel):
    id: int
    name: str
    email: str
    role: Role
    patientId: Optional[int] = None

class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo

class VerifyResponse(BaseModel):
    valid: bool = True
    user: UserInfo

class MessageResponse(BaseModel):
    message: str

# Patient Models
class PatientCreate(BaseModel):
    name: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)
    gender: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    medication: Optional[str] = None
    notes: Optional[str] = None

class PatientUpdate(BaseModel):
    name: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)
    gender: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    medication: Optional[str] = None
    notes: Optional[str] = None

class PatientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    name: str
    age: Optional[int] = None
    gender: Optional[str] = None
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    medication: Optional[str] = None
    notes: Optional[str] = None
    last_visit: Optional[Date] = None
    status: PatientStatus
    created_at: Optional[datetime] = None

class IssuedCredentials(BaseModel):
    email: str
    password: Optional[str] = None
    delivery: str

class PatientCreatedResponse(BaseModel):
    patient: PatientResponse
    credentials: IssuedCredentials

# Appointment Models
class AppointmentCreate(BaseModel):
    patient_id: Optional[int] = None
    date: Optional[Date] = None
    time: Optional[Time] = None
    reason: Optional[str] = None

class AppointmentStatusUpdate(BaseModel):
    status: Optional[str] = None

class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    date: Date
    time: Time
    reason: Optional[str] = None
    status: AppointmentStatus
    created_at: Optional[datetime] = None
    patient_name: Optional[str] = None
    patient_phone: Optional[str] = None

# Fee Models
class FeeCreate(BaseModel):
    patient_id: Optional[int] = None
    amount: Optional[Decimal] = None
    service: Optional[str] = None
    payment_status: Optional[str] = None
    payment_method: Optional[str] = None

class FeeUpdate(BaseModel):
    amount: Optional[Decimal] = None
    service: Optional[str] = None
    payment_status: Optional[str] = None
    payment_method: Optional[str] = None

class FeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    amount: Decimal
    service: str
    payment_status: PaymentStatus
    payment_method: Optional[str] = None
    date: Optional[datetime] = None
    patient_name: Optional[str] = None
    patient_phone: Optional[str] = None

class RevenueStats(BaseModel):
    totalRevenue: Decimal
    pendingPayments: Decimal

# Diagnostic Models
class DiagnosticResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    uploaded_by: Optional[int] = None
    label: str
    file_name: str
    file_size: int
    mime_type: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

class DownloadLinkResponse(BaseModel):
    url: str
    file_name: str
    expires_in: int

# Health Models
class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    services: Dict[str, str]

class ErrorResponse(BaseModel):
    error: bool = True
    message: str
    status_code: int
    path: str
    details: Optional[Any] = None
