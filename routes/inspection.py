"""
Inspection form API routes (packer).

The client drives the form through these endpoints: select a product,
edit fields, attach photos, validate, review the summary, confirm.
"""

import json

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
import structlog

from models.inspection import (
    InspectionFormResponse,
    InspectionFormUpdate,
    InspectionSummary,
    ProductSelection,
    SubmissionState,
    ValidationResult,
)
from models.photo import PhotoSlot
from services.inspection_service import get_inspection_service
from services.submission_service import get_submission_service
from utils.file_utils import build_photo
from exceptions import AppError, ValidationError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, PydanticValidationError):
        e = ValidationError(
            "Invalid inspection data",
            details={"errors": json.loads(e.json(include_url=False))}
        )
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def _form_response() -> InspectionFormResponse:
    inspection = get_inspection_service()
    return InspectionFormResponse.build(
        inspection.get_form(),
        inspection.get_errors(),
        get_submission_service().get_state()
    )


# ===================
# FORM ROUTES
# ===================

@router.get("", response_model=InspectionFormResponse)
async def get_inspection():
    """
    Get the in-progress form, its errors and the submission status.

    Photos are reported as present/absent only.
    """
    try:
        return _form_response()

    except Exception as e:
        return handle_error(e)


@router.put("/product", response_model=InspectionFormResponse)
async def select_product(data: ProductSelection):
    """
    Select the reference product.

    Raises:
        404: Product not found
    """
    try:
        get_inspection_service().select_product(data.sku)
        return _form_response()

    except Exception as e:
        return handle_error(e)


@router.patch("", response_model=InspectionFormResponse)
async def update_inspection(data: InspectionFormUpdate):
    """
    Edit form fields.

    Only fields present in the body change; their errors are cleared.
    """
    try:
        get_inspection_service().update_fields(data.model_dump(exclude_unset=True))
        return _form_response()

    except Exception as e:
        return handle_error(e)


@router.put("/photos/{slot}", response_model=InspectionFormResponse)
async def attach_photo(slot: PhotoSlot, file: UploadFile = File(...)):
    """
    Attach a comparison photo to a slot (exterior or crumb).

    Raises:
        422: File is not an image
    """
    try:
        content = await file.read()
        photo = build_photo(slot.value, content, file.content_type, file.filename)
        get_inspection_service().attach_photo(slot, photo)
        return _form_response()

    except Exception as e:
        return handle_error(e)


@router.post("/validate", response_model=ValidationResult)
async def validate_inspection():
    """
    Run all validation rules.

    Returns the failing fields and the first one in form order.
    """
    try:
        errors = get_inspection_service().validate()
        return ValidationResult.from_errors(errors)

    except Exception as e:
        return handle_error(e)


@router.post("/summary", response_model=InspectionSummary)
async def build_summary():
    """
    Validate and score the form for the confirmation view.

    Raises:
        422: Required fields missing (details.errors, details.first_field)
    """
    try:
        return get_inspection_service().build_summary()

    except Exception as e:
        return handle_error(e)


@router.post("/reset", response_model=InspectionFormResponse)
async def reset_inspection():
    """
    Abandon the current inspection.

    Raises:
        409: A submission is pending
    """
    try:
        get_submission_service().reset_form()
        return _form_response()

    except Exception as e:
        return handle_error(e)


# ===================
# SUBMISSION ROUTES
# ===================

@router.post("/submit", response_model=SubmissionState)
def submit_inspection():
    """
    Confirm and send the inspection to the CRM.

    Runs in the threadpool because the CRM calls block.

    Raises:
        409: A submission is already pending
        422: Required fields missing
        503: CRM record could not be created (form kept for retry)
    """
    try:
        return get_submission_service().submit()

    except Exception as e:
        return handle_error(e)


@router.get("/submission", response_model=SubmissionState)
async def get_submission():
    """Status of the latest submission attempt."""
    try:
        return get_submission_service().get_state()

    except Exception as e:
        return handle_error(e)


@router.delete("/submission/error", response_model=SubmissionState)
async def dismiss_submission_error():
    """Dismiss the failure banner. Form state is kept."""
    try:
        return get_submission_service().dismiss_error()

    except Exception as e:
        return handle_error(e)
