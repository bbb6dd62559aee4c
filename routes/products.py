"""
Reference product API routes (admin).

Create and update take multipart form data so reference photos can be
uploaded alongside the tolerance bands.
"""

import json
from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
import structlog

from models.photo import BoundPhoto
from models.product import (
    Product,
    ProductCreate,
    ProductListResponse,
    ProductUpdate,
)
from services.admin_service import get_admin_service
from services.catalog_service import get_catalog_service
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
            "Invalid product data",
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


# ===================
# HELPERS
# ===================

def _dimensions(
    height_min: float, height_max: float,
    width_min: float, width_max: float,
    length_min: float, length_max: float
) -> dict:
    return {
        "height": {"min": height_min, "max": height_max},
        "width": {"min": width_min, "max": width_max},
        "length": {"min": length_min, "max": length_max},
    }


async def _read_photo(slot: str, upload: Optional[UploadFile]) -> Optional[BoundPhoto]:
    """Bound photo for an upload, or None when the slot was left empty."""
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    return build_photo(slot, content, upload.content_type, upload.filename)


# ===================
# ROUTES
# ===================

@router.get("", response_model=ProductListResponse)
async def list_products():
    """
    List all reference products.
    """
    try:
        products = get_catalog_service().get_all()
        return ProductListResponse(data=products, total=len(products))

    except Exception as e:
        return handle_error(e)


@router.get("/{sku}", response_model=Product)
async def get_product(sku: str):
    """
    Get a single product by SKU.

    Raises:
        404: Product not found
    """
    try:
        return get_catalog_service().get_required(sku)

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=Product, status_code=201)
async def create_product(
    name: str = Form(...),
    height_min: float = Form(...),
    height_max: float = Form(...),
    width_min: float = Form(...),
    width_max: float = Form(...),
    length_min: float = Form(...),
    length_max: float = Form(...),
    exterior_photo: Optional[UploadFile] = File(None),
    crumb_photo: Optional[UploadFile] = File(None),
):
    """
    Create a new reference product.

    SKU is generated. Missing photos get a placeholder image.

    Raises:
        422: Validation error (bad range, non-image upload)
    """
    try:
        data = ProductCreate(
            name=name,
            reference_dimensions=_dimensions(
                height_min, height_max, width_min, width_max, length_min, length_max
            )
        )
        return get_admin_service().add(
            data,
            exterior_photo=await _read_photo("exterior", exterior_photo),
            crumb_photo=await _read_photo("crumb", crumb_photo),
        )

    except Exception as e:
        return handle_error(e)


@router.put("/{sku}", response_model=Product)
async def update_product(
    sku: str,
    name: str = Form(...),
    height_min: float = Form(...),
    height_max: float = Form(...),
    width_min: float = Form(...),
    width_max: float = Form(...),
    length_min: float = Form(...),
    length_max: float = Form(...),
    exterior_photo: Optional[UploadFile] = File(None),
    crumb_photo: Optional[UploadFile] = File(None),
):
    """
    Update an existing product.

    Name and dimensions are replaced; photos only when re-uploaded.

    Raises:
        404: Product not found
        422: Validation error
    """
    try:
        data = ProductUpdate(
            name=name,
            reference_dimensions=_dimensions(
                height_min, height_max, width_min, width_max, length_min, length_max
            )
        )
        return get_admin_service().update(
            sku,
            data,
            exterior_photo=await _read_photo("exterior", exterior_photo),
            crumb_photo=await _read_photo("crumb", crumb_photo),
        )

    except Exception as e:
        return handle_error(e)


@router.delete("/{sku}", status_code=204)
async def delete_product(sku: str):
    """
    Delete a product.

    Clears the in-progress inspection if it referenced this product.

    Raises:
        404: Product not found
    """
    try:
        get_admin_service().delete(sku)
        return None  # 204 No Content

    except Exception as e:
        return handle_error(e)
