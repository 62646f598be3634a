"""
Diagnostic attachments: a blob in object storage plus a metadata row.

The two writes are not covered by one transaction, so the manager keeps
them consistent by hand:

* upload writes the blob first and removes it again if the row insert fails;
* delete removes the blob first and then the row, even when the blob
  could not be removed (the leftover blob is logged).
"""
import uuid
from typing import List, Optional
from fastapi import Request
from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_api.config import Settings
from clinic_api.core.errors import NotFound, PersistenceError, StorageError, ValidationError
from clinic_api.core.policy import ensure_can_access, require_doctor
from clinic_api.core.storage import StorageClient
from clinic_api.models.diagnostic_model import Diagnostic
from clinic_api.models.patient_model import Patient
from clinic_api.models.schemas import Principal
from clinic_api.utils.io_helpers import format_file_size, sanitize_filename
from clinic_api.utils.prometheus_metrics import metrics


def build_storage_key(patient_id: int, file_name: str) -> str:
    return f"{patient_id}/{uuid.uuid4()}-{sanitize_filename(file_name)}"


class AttachmentManager:
    def __init__(self, storage: StorageClient, settings: Settings):
        self.storage = storage
        self.allowed_mime_types = settings.allowed_mime_types_list
        self.max_size = settings.max_file_size_bytes
        self.max_size_mb = settings.max_file_size_mb
        self.link_ttl = settings.signed_url_expiry_seconds

    def _validate(self, file_name: Optional[str], content: bytes, mime_type: Optional[str], label: Optional[str]) -> None:
        if not file_name or not content:
            raise ValidationError("No file uploaded")

        if mime_type not in self.allowed_mime_types:
            raise ValidationError("Only PDF, JPG and PNG files are allowed")

        if len(content) > self.max_size:
            raise ValidationError(f"File too large - maximum size is {self.max_size_mb} MB")

        if not label or not label.strip():
            raise ValidationError("Label is required (e.g. Blood Test, X-Ray)")

    def list_for_patient(self, session: Session, principal: Principal, patient_id: int) -> List[Diagnostic]:
        ensure_can_access(principal, patient_id)
        query = (
            select(Diagnostic)
            .where(Diagnostic.patient_id == patient_id)
            .order_by(Diagnostic.created_at.desc(), Diagnostic.id.desc())
        )
        return list(session.scalars(query))

    async def upload(
        self,
        session: Session,
        principal: Principal,
        patient_id: int,
        file_name: Optional[str],
        content: bytes,
        mime_type: Optional[str],
        label: Optional[str],
        notes: Optional[str] = None
    ) -> Diagnostic:
        """Store a file and its metadata, or neither"""
        require_doctor(principal)
        self._validate(file_name, content, mime_type, label)

        if session.get(Patient, patient_id) is None:
            raise NotFound("Patient not found")

        key = build_storage_key(patient_id, file_name)
        try:
            await self.storage.upload_file(key, content, mime_type)
        except StorageError:
            metrics.record_diagnostic_upload(success=False)
            metrics.record_storage_error("upload")
            raise

        diagnostic = Diagnostic(
            patient_id=patient_id,
            uploaded_by=principal.id,
            label=label.strip(),
            file_name=file_name,
            file_path=key,
            file_size=len(content),
            mime_type=mime_type,
            notes=notes.strip() if notes and notes.strip() else None
        )

        try:
            session.add(diagnostic)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to save diagnostic metadata for {key}: {e}")
            await self._discard_blob(key)
            metrics.record_diagnostic_upload(success=False)
            raise PersistenceError("Failed to upload diagnostic") from e

        metrics.record_diagnostic_upload(success=True)
        logger.info(f"Uploaded diagnostic {diagnostic.id} for patient {patient_id} ({format_file_size(len(content))})")
        return diagnostic

    async def _discard_blob(self, key: str) -> None:
        try:
            await self.storage.delete_file(key)
            logger.info(f"Removed orphaned blob {key}")
        except StorageError as e:
            metrics.record_storage_error("cleanup")
            logger.error(f"Orphaned blob left in storage: {key} ({e})")

    def _get(self, session: Session, patient_id: int, diagnostic_id: int) -> Diagnostic:
        diagnostic = session.scalar(
            select(Diagnostic).where(Diagnostic.id == diagnostic_id, Diagnostic.patient_id == patient_id)
        )
        if diagnostic is None:
            raise NotFound("Diagnostic not found")
        return diagnostic

    async def download_link(self, session: Session, principal: Principal, patient_id: int, diagnostic_id: int) -> dict:
        """Time-limited URL for one stored file"""
        ensure_can_access(principal, patient_id)
        diagnostic = self._get(session, patient_id, diagnostic_id)

        try:
            url = await self.storage.get_presigned_url(diagnostic.file_path, expires_in=self.link_ttl)
        except StorageError:
            metrics.record_storage_error("sign")
            raise

        return {"url": url, "file_name": diagnostic.file_name, "expires_in": self.link_ttl}

    async def delete(self, session: Session, principal: Principal, patient_id: int, diagnostic_id: int) -> None:
        require_doctor(principal)
        diagnostic = self._get(session, patient_id, diagnostic_id)
        key = diagnostic.file_path

        try:
            await self.storage.delete_file(key)
        except StorageError as e:
            metrics.record_storage_error("delete")
            logger.warning(f"Blob {key} could not be removed, deleting diagnostic {diagnostic_id} anyway: {e}")

        session.delete(diagnostic)
        session.commit()
        logger.info(f"Deleted diagnostic {diagnostic_id} of patient {patient_id}")

    async def purge_patient_blobs(self, session: Session, patient_id: int) -> int:
        """Best-effort removal of every blob of a patient about to be deleted"""
        keys = session.scalars(select(Diagnostic.file_path).where(Diagnostic.patient_id == patient_id)).all()
        removed = 0
        for key in keys:
            try:
                if await self.storage.delete_file(key):
                    removed += 1
            except StorageError as e:
                metrics.record_storage_error("delete")
                logger.warning(f"Blob {key} left behind for deleted patient {patient_id}: {e}")
        return removed


def get_attachment_manager(request: Request) -> AttachmentManager:
    return request.app.state.attachments
