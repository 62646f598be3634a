from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from ..core.database import Base

PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID)

class Fee(Base):
    __tablename__ = "fees"
    __table_args__ = (
        CheckConstraint("payment_status IN ('pending', 'paid')", name="ck_fees_payment_status"),
        CheckConstraint("amount > 0", name="ck_fees_amount_positive"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(10, 2, asdecimal=True), nullable=False)
    service = Column(String, nullable=False)
    payment_status = Column(String, nullable=False, default=PAYMENT_PENDING)
    payment_method = Column(String, nullable=True)
    date = Column(DateTime(timezone=True), server_default=func.now())
    
    patient = relationship("Patient", back_populates="fees")
