from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from clinic_api.core.attachments import AttachmentManager, get_attachment_manager
from clinic_api.core.auth import get_current_principal
from clinic_api.core.database import get_db
from clinic_api.models.schemas import DiagnosticResponse, DownloadLinkResponse, MessageResponse, Principal

router = APIRouter()

@router.get("/diagnostics/{patient_id}", response_model=List[DiagnosticResponse])
async def list_diagnostics(
    patient_id: int,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db),
    attachments: AttachmentManager = Depends(get_attachment_manager)
):
    """All diagnostic files of one patient, newest first"""
    return attachments.list_for_patient(session, principal, patient_id)

@router.post("/diagnostics/{patient_id}", response_model=DiagnosticResponse, status_code=201)
async def upload_diagnostic(
    patient_id: int,
    file: Optional[UploadFile] = File(default=None),
    label: Optional[str] = Form(default=None),
    notes: Optional[str] = Form(default=None),
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db),
    attachments: AttachmentManager = Depends(get_attachment_manager)
):
    """Upload a PDF, JPG or PNG report for a patient"""
    # One byte past the limit is enough for the size check to reject it
    content = await file.read(attachments.max_size + 1) if file is not None else b""
    return await attachments.upload(
        session,
        principal,
        patient_id,
        file_name=file.filename if file is not None else None,
        content=content,
        mime_type=file.content_type if file is not None else None,
        label=label,
        notes=notes
    )

@router.get("/diagnostics/{patient_id}/{diagnostic_id}/download", response_model=DownloadLinkResponse)
async def download_diagnostic(
    patient_id: int,
    diagnostic_id: int,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db),
    attachments: AttachmentManager = Depends(get_attachment_manager)
):
    """Signed link to the stored file, valid for one hour"""
    return await attachments.download_link(session, principal, patient_id, diagnostic_id)

@router.delete("/diagnostics/{patient_id}/{diagnostic_id}", response_model=MessageResponse)
async def delete_diagnostic(
    patient_id: int,
    diagnostic_id: int,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db),
    attachments: AttachmentManager = Depends(get_attachment_manager)
):
    await attachments.delete(session, principal, patient_id, diagnostic_id)
    return MessageResponse(message="Diagnostic deleted successfully")
