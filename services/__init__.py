"""
Business logic services.

Each service handles one domain area.
"""

from services.scoring_service import (
    PASS_THRESHOLD,
    score_inspection,
    classify_average,
)
from services.validation_service import validate_inspection
from services.catalog_service import CatalogService, get_catalog_service
from services.inspection_service import InspectionService, get_inspection_service
from services.admin_service import AdminService, get_admin_service
from services.submission_service import (
    SubmissionService,
    get_submission_service,
    submit_inspection,
)
from services.preferences_service import PreferencesService, get_preferences_service

__all__ = [
    "PASS_THRESHOLD",
    "score_inspection",
    "classify_average",
    "validate_inspection",
    "CatalogService",
    "get_catalog_service",
    "InspectionService",
    "get_inspection_service",
    "AdminService",
    "get_admin_service",
    "SubmissionService",
    "get_submission_service",
    "submit_inspection",
    "PreferencesService",
    "get_preferences_service",
]
