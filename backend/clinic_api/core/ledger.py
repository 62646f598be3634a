from decimal import Decimal
from typing import Dict, List, Optional
from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_api.core.errors import NotFound, ValidationError
from clinic_api.core.policy import ensure_can_access
from clinic_api.models.fee_model import Fee, PAYMENT_PAID, PAYMENT_PENDING
from clinic_api.models.patient_model import Patient
from clinic_api.models.schemas import FeeCreate, FeeUpdate, Principal, Role
from clinic_api.utils.io_helpers import CENTS, ValidationHelper


def _to_amount(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS)


def revenue_totals(session: Session) -> Dict[str, Decimal]:
    """Paid and pending totals, summed as decimals"""
    totals = {PAYMENT_PAID: Decimal("0"), PAYMENT_PENDING: Decimal("0")}
    rows = session.execute(select(Fee.payment_status, Fee.amount))

    for status, amount in rows:
        if status in totals and amount is not None:
            totals[status] += _to_amount(amount)

    return {
        "totalRevenue": totals[PAYMENT_PAID],
        "pendingPayments": totals[PAYMENT_PENDING]
    }


def list_fees(session: Session, principal: Principal, patient_id: Optional[int] = None) -> List[Fee]:
    if principal.role == Role.PATIENT:
        if patient_id is not None:
            ensure_can_access(principal, patient_id)
        if principal.patientId is None:
            return []
        patient_id = principal.patientId

    query = select(Fee)
    if patient_id is not None:
        query = query.where(Fee.patient_id == patient_id)
    return list(session.scalars(query.order_by(Fee.date.desc(), Fee.id.desc())))


def record_fee(session: Session, request: FeeCreate) -> Fee:
    data = request.model_dump()
    errors = ValidationHelper.validate_fee_data(data)
    if errors:
        raise ValidationError("Invalid fee record", details=errors)

    if session.get(Patient, request.patient_id) is None:
        raise NotFound("Patient not found")

    fee = Fee(
        patient_id=request.patient_id,
        amount=_to_amount(request.amount),
        service=request.service.strip(),
        payment_status=request.payment_status or PAYMENT_PENDING,
        payment_method=request.payment_method
    )
    session.add(fee)
    session.commit()
    logger.info(f"Recorded fee {fee.id} for patient {fee.patient_id}")
    return fee


def update_fee(session: Session, fee_id: int, request: FeeUpdate) -> Fee:
    updates = request.model_dump(exclude_unset=True)
    errors = ValidationHelper.validate_fee_data(updates, partial=True)
    if errors:
        raise ValidationError("Invalid fee record", details=errors)

    fee = session.get(Fee, fee_id)
    if fee is None:
        raise NotFound("Fee record not found")

    if "amount" in updates:
        updates["amount"] = _to_amount(updates["amount"])
    if "service" in updates:
        updates["service"] = updates["service"].strip()
    if "payment_status" in updates and updates["payment_status"] is None:
        del updates["payment_status"]

    for field, value in updates.items():
        setattr(fee, field, value)

    session.commit()
    logger.info(f"Updated fee {fee.id}")
    return fee


def delete_fee(session: Session, fee_id: int) -> None:
    fee = session.get(Fee, fee_id)
    if fee is None:
        raise NotFound("Fee record not found")

    session.delete(fee)
    session.commit()
    logger.info(f"Deleted fee {fee_id}")
