from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from ..core.database import Base

STATUS_PENDING = "pending"
STATUS_ACTIVE = "active"

class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'active')", name="ck_patients_status"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=True)
    name = Column(String, nullable=False)
    age = Column(Integer, nullable=True)
    gender = Column(String, nullable=True)
    phone = Column(String, nullable=False, default="")
    email = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    diagnosis = Column(Text, nullable=True)
    treatment = Column(Text, nullable=True)
    medication = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    last_visit = Column(Date, nullable=True)
    status = Column(String, nullable=False, default=STATUS_ACTIVE)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    user = relationship("User", back_populates="patient")
    appointments = relationship("Appointment", back_populates="patient", cascade="all, delete-orphan", passive_deletes=True)
    fees = relationship("Fee", back_populates="patient", cascade="all, delete-orphan", passive_deletes=True)
    diagnostics = relationship("Diagnostic", back_populates="patient", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING
