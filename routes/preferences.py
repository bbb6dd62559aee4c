"""
Client preference API routes.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from models.preferences import RolePreference
from services.preferences_service import get_preferences_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
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
# ROUTES
# ===================

@router.get("/role", response_model=RolePreference)
async def get_role():
    """Current role (packer or admin)."""
    try:
        return RolePreference(role=get_preferences_service().get_role())

    except Exception as e:
        return handle_error(e)


@router.put("/role", response_model=RolePreference)
async def set_role(data: RolePreference):
    """Switch role."""
    try:
        return RolePreference(role=get_preferences_service().set_role(data.role))

    except Exception as e:
        return handle_error(e)
