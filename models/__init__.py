"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.photo import BoundPhoto, PhotoSlot
from models.product import (
    DimensionRange,
    ReferenceDimensions,
    ReferencePhotos,
    ProductCreate,
    ProductUpdate,
    Product,
    ProductListResponse,
)
from models.inspection import (
    FormField,
    InspectionForm,
    InspectionFormUpdate,
    ValidationErrors,
    InspectionStatus,
    DimensionScores,
    ScoreResult,
    SubmissionState,
    InspectionFormResponse,
    ProductSelection,
    ValidationResult,
    InspectionSummary,
)
from models.preferences import Role, RolePreference

__all__ = [
    # Base
    "BaseSchema",

    # Photo
    "BoundPhoto",
    "PhotoSlot",

    # Product
    "DimensionRange",
    "ReferenceDimensions",
    "ReferencePhotos",
    "ProductCreate",
    "ProductUpdate",
    "Product",
    "ProductListResponse",

    # Inspection
    "FormField",
    "InspectionForm",
    "InspectionFormUpdate",
    "ValidationErrors",
    "InspectionStatus",
    "DimensionScores",
    "ScoreResult",
    "SubmissionState",
    "InspectionFormResponse",
    "ProductSelection",
    "ValidationResult",
    "InspectionSummary",

    # Preferences
    "Role",
    "RolePreference",
]
