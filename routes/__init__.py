"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.products import router as products_router
from routes.inspection import router as inspection_router
from routes.preferences import router as preferences_router

__all__ = [
    "products_router",
    "inspection_router",
    "preferences_router",
]
