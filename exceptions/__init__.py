"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,

    # Catalog
    ProductNotFoundError,
    InvalidPhotoError,
    SeedDataError,
    StorageError,

    # Inspection
    InspectionValidationError,
    SubmissionInProgressError,
    CrmSubmissionError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",

    # Catalog
    "ProductNotFoundError",
    "InvalidPhotoError",
    "SeedDataError",
    "StorageError",

    # Inspection
    "InspectionValidationError",
    "SubmissionInProgressError",
    "CrmSubmissionError",
]
