"""
Custom exception classes for the application.

Every error carries a stable code, a human-readable message, an HTTP status
and optional details. Routes turn them into JSON with to_dict().
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PRODUCT_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


# ===================
# CATALOG ERRORS
# ===================

class ProductNotFoundError(NotFoundError):
    """Product not found."""

    def __init__(self, sku: str):
        super().__init__(
            resource="Product",
            identifier=sku,
            code="PRODUCT_NOT_FOUND"
        )


class InvalidPhotoError(ValidationError):
    """Uploaded file is not an image."""

    def __init__(self, slot: str, content_type: Optional[str]):
        super().__init__(
            code="INVALID_PHOTO",
            message="Photo must be an image file",
            details={"slot": slot, "content_type": content_type}
        )


class SeedDataError(AppError):
    """Initial catalog data could not be loaded (503)."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            code="SEED_DATA_UNAVAILABLE",
            message="Failed to load initial product data",
            status_code=503,
            details={"path": path, "reason": reason}
        )


class StorageError(AppError):
    """Persisted state could not be read (503)."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            code="STORAGE_UNAVAILABLE",
            message="Stored data could not be read",
            status_code=503,
            details={"key": key, "reason": reason}
        )


# ===================
# INSPECTION ERRORS
# ===================

class InspectionValidationError(ValidationError):
    """Inspection form has missing required fields."""

    def __init__(self, errors: dict[str, str], first_field: Optional[str]):
        super().__init__(
            code="INSPECTION_INVALID",
            message=f"Inspection form has {len(errors)} missing fields",
            details={"errors": errors, "first_field": first_field}
        )


class SubmissionInProgressError(ConflictError):
    """A submission is already pending."""

    def __init__(self):
        super().__init__(
            code="SUBMISSION_IN_PROGRESS",
            message="An inspection report is already being submitted"
        )


class CrmSubmissionError(ExternalServiceError):
    """CRM record could not be created."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="crm",
            message=message,
            details=details
        )
