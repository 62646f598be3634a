from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clinic_api.core.auth import get_current_principal
from clinic_api.core.database import get_db
from clinic_api.core.ledger import delete_fee, list_fees, record_fee, revenue_totals, update_fee
from clinic_api.core.policy import require_doctor
from clinic_api.models.fee_model import Fee
from clinic_api.models.schemas import FeeCreate, FeeResponse, FeeUpdate, MessageResponse, Principal, RevenueStats, Role

router = APIRouter()

def _with_patient(fee: Fee) -> FeeResponse:
    response = FeeResponse.model_validate(fee)
    response.patient_name = fee.patient.name
    response.patient_phone = fee.patient.phone
    return response

@router.get("/fees", response_model=List[FeeResponse])
async def get_fees(
    patient_id: Optional[int] = None,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    """Doctors see every fee, patients only their own"""
    fees = list_fees(session, principal, patient_id=patient_id)
    if principal.role == Role.DOCTOR:
        return [_with_patient(fee) for fee in fees]
    return fees

@router.get("/fees/stats/revenue", response_model=RevenueStats)
async def get_revenue(
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    """Totals of paid and pending fees"""
    require_doctor(principal)
    return RevenueStats(**revenue_totals(session))

@router.post("/fees", response_model=FeeResponse, status_code=201)
async def create_fee(
    request: FeeCreate,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    require_doctor(principal)
    return record_fee(session, request)

@router.put("/fees/{fee_id}", response_model=FeeResponse)
async def edit_fee(
    fee_id: int,
    request: FeeUpdate,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    require_doctor(principal)
    return update_fee(session, fee_id, request)

@router.delete("/fees/{fee_id}", response_model=MessageResponse)
async def remove_fee(
    fee_id: int,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db)
):
    require_doctor(principal)
    delete_fee(session, fee_id)
    return MessageResponse(message="Fee deleted successfully")
