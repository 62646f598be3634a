from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from ..core.database import Base

ROLE_DOCTOR = "doctor"
ROLE_PATIENT = "patient"
ROLES = (ROLE_DOCTOR, ROLE_PATIENT)

class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('doctor', 'patient')", name="ck_users_role"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    patient = relationship(
        "Patient",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True
    )
