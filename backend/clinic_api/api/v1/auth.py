from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from clinic_api.core.auth import authenticate, get_current_principal, register_patient
from clinic_api.core.database import get_db
from clinic_api.models.schemas import (
    LoginRequest, LoginResponse, MessageResponse, Principal, SignupRequest, UserInfo, VerifyResponse
)

router = APIRouter()

@router.post("/auth/login", response_model=LoginResponse)
async def login(credentials: LoginRequest, request: Request, session: Session = Depends(get_db)):
    """Exchange email and password for a bearer token"""
    app_settings = request.app.state.settings
    role = credentials.role.value if credentials.role else None
    token, principal = authenticate(session, credentials.email, credentials.password, role, config=app_settings)

    return LoginResponse(
        token=token,
        expires_in=app_settings.jwt_expiration_hours * 3600,
        user=UserInfo(**principal.model_dump())
    )

@router.post("/auth/signup", response_model=MessageResponse, status_code=201)
async def signup(request: SignupRequest, session: Session = Depends(get_db)):
    """Patient self-registration, pending doctor approval"""
    register_patient(session, request)
    return MessageResponse(message="Account created! Awaiting doctor approval before you can log in.")

@router.get("/auth/verify", response_model=VerifyResponse)
async def verify(principal: Principal = Depends(get_current_principal)):
    """Restore a session from a stored token"""
    return VerifyResponse(user=UserInfo(**principal.model_dump()))
