"""
Resource scoping: doctors see everything, patients only their own records.
"""
from typing import Any, Optional

from clinic_api.core.errors import Forbidden
from clinic_api.models.schemas import Principal, Role


def _canonical_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if text.lstrip("-").isdigit():
        return str(int(text))
    return text


def can_access(principal: Principal, owner_patient_id: Any) -> bool:
    if principal.role == Role.DOCTOR:
        return True
    mine = _canonical_id(principal.patientId)
    return mine is not None and mine == _canonical_id(owner_patient_id)


def ensure_can_access(principal: Principal, owner_patient_id: Any) -> None:
    if not can_access(principal, owner_patient_id):
        raise Forbidden("Access denied")


def require_doctor(principal: Principal) -> None:
    if principal.role != Role.DOCTOR:
        raise Forbidden("Access denied - Doctors only")
