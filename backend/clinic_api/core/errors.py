from typing import Any, Optional


class ClinicError(Exception):
    """Base error carrying an HTTP status and a client-safe message"""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Any] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(ClinicError):
    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(ClinicError):
    status_code = 401
    default_message = "Access denied - No token provided"


class InvalidCredential(ClinicError):
    status_code = 401
    default_message = "Invalid or expired token"


class Forbidden(ClinicError):
    status_code = 403
    default_message = "Access denied"


class ProfileMissing(ClinicError):
    status_code = 403
    default_message = "User profile not found. Please contact your doctor."


class PendingApproval(ClinicError):
    status_code = 403
    default_message = "Your account is pending doctor approval."


class NotFound(ClinicError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ClinicError):
    status_code = 409
    default_message = "Resource already exists"


class SlotConflict(ConflictError):
    default_message = "This time slot is already booked. Please choose a different time."


class PersistenceError(ClinicError):
    status_code = 500
    default_message = "Database operation failed"


class StorageError(ClinicError):
    status_code = 503
    default_message = "File storage is unavailable, please try again later"


class DeliveryError(ClinicError):
    status_code = 503
    default_message = "Could not deliver the patient invitation, please try again later"
