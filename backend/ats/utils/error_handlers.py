"""
Centralized error types and user-friendly error messages.
"""
import logging

from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error."""
    def __init__(self, message: str, status_code: int = 500, details: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed input, rejected before any transaction begins."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=400, details=details)


class NotFoundError(AppError):
    """Resource not found error."""
    def __init__(self, message: str = "Resource not found", details: dict | None = None):
        super().__init__(message, status_code=404, details=details)


class ConflictError(AppError):
    """A uniqueness rule rejected the write."""
    def __init__(self, message: str = "This record already exists.", details: dict | None = None):
        super().__init__(message, status_code=409, details=details)


class DuplicateApplicationError(ConflictError):
    """The candidate already applied to this job. Not retryable."""
    def __init__(self, *, candidate_id: int | None = None, job_id: int | None = None):
        details = {}
        if candidate_id is not None:
            details["candidate_id"] = int(candidate_id)
        if job_id is not None:
            details["job_id"] = int(job_id)
        super().__init__(get_error_message("already_applied"), details=details)
        self.candidate_id = candidate_id
        self.job_id = job_id


class StorageError(AppError):
    """Persistence failure. The transaction was rolled back; the caller may retry."""
    def __init__(self, message: str | None = None, details: dict | None = None):
        super().__init__(message or get_error_message("database_error"), status_code=503, details=details)


class DuplicateKeyError(StorageError):
    """A concurrent insert won the race for the same unique key."""
    def __init__(self, message: str = "Concurrent write for the same key", details: dict | None = None):
        super().__init__(message, details=details)


class FileUploadError(AppError):
    """File upload error."""
    def __init__(self, message: str, status_code: int = 400, details: dict | None = None):
        super().__init__(message, status_code=status_code, details=details)


class NotificationError(AppError):
    """Mail delivery failed. Raised after commit, only ever logged."""
    def __init__(self, message: str = "Notification delivery failed", details: dict | None = None):
        super().__init__(message, status_code=502, details=details)


class AnalysisDispatchError(AppError):
    """Analysis service submission failed. Raised after commit, only ever logged."""
    def __init__(self, message: str = "Analysis service unavailable", details: dict | None = None):
        super().__init__(message, status_code=502, details=details)


# User-friendly error messages
ERROR_MESSAGES = {
    # File uploads
    "file_too_large": "File is too large. Maximum size is 5MB.",
    "invalid_file_type": "Invalid file type. Please upload a PDF or DOCX file.",
    "file_storage_failed": "Failed to store your file. Please try again.",

    # Agencies
    "agency_not_found": "Agency not found.",
    "agency_exists": "An agency with this company name already exists.",

    # Jobs
    "job_not_found": "Job posting not found or has been removed.",
    "job_closed": "This job posting is no longer accepting applications.",
    "already_applied": "You have already applied to this job.",
    "invalid_job_data": "Job information is incomplete. Please fill in all required fields.",

    # Applications
    "application_not_found": "Application not found. It may have been withdrawn.",
    "candidate_not_found": "Candidate not found.",
    "application_failed": "Failed to submit application. Please try again.",

    # Notes
    "note_not_found": "Note not found.",

    # General
    "not_found": "The requested resource was not found.",
    "server_error": "Something went wrong on our end. Please try again later.",
    "database_error": "Database connection issue. Please try again later.",
    "validation_error": "Please check your input and try again.",
}


def get_error_message(error_key: str, default: str | None = None) -> str:
    """Get a user-friendly error message."""
    return ERROR_MESSAGES.get(error_key, default or ERROR_MESSAGES["server_error"])


def create_error_response(
    status_code: int,
    message: str,
    details: dict | list | None = None,
    **extra,
) -> JSONResponse:
    """Create a standardized error response."""
    content = {
        "success": False,
        "error": message,
    }

    if details:
        content["details"] = details
    content.update(extra)

    return JSONResponse(
        status_code=status_code,
        content=content
    )


def _db_error_text(error: Exception) -> str:
    root = getattr(error, "orig", None)
    return str(root if root is not None else error).lower()


def is_unique_violation(error: Exception) -> bool:
    """True when a DB error came from a UNIQUE constraint (SQLite, MySQL, Postgres wording)."""
    text = _db_error_text(error)
    return "unique" in text or "duplicate" in text


def is_foreign_key_violation(error: Exception) -> bool:
    return "foreign key" in _db_error_text(error)
