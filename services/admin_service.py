"""
Catalog admin operations.

Create, update and delete reference products. Uploaded reference photos
are embedded in the catalog as data: URIs.
"""

import threading
import time
from typing import Optional

import structlog

from config import settings
from models.photo import BoundPhoto
from models.product import (
    Product,
    ProductCreate,
    ProductUpdate,
    ReferencePhotos,
)
from services.catalog_service import CatalogService, get_catalog_service
from services.inspection_service import InspectionService, get_inspection_service
from utils.file_utils import to_data_url
from exceptions import ProductNotFoundError

logger = structlog.get_logger(__name__)


SKU_PREFIX = "PROD-"


class AdminService:
    """
    Admin business logic.

    Handles CRUD operations for reference products.
    """

    def __init__(
        self,
        catalog: Optional[CatalogService] = None,
        inspection: Optional[InspectionService] = None,
        placeholder_photo_url: Optional[str] = None
    ):
        self.catalog = catalog or get_catalog_service()
        self.inspection = inspection or get_inspection_service()
        self.placeholder_photo_url = placeholder_photo_url or settings.placeholder_photo_url
        self._last_stamp = 0
        self._sku_lock = threading.Lock()

    # ===================
    # WRITE OPERATIONS
    # ===================

    def add(
        self,
        data: ProductCreate,
        exterior_photo: Optional[BoundPhoto] = None,
        crumb_photo: Optional[BoundPhoto] = None
    ) -> Product:
        """
        Add a reference product with a freshly generated SKU.

        Args:
            data: Name and tolerance bands
            exterior_photo: Reference exterior photo (placeholder if absent)
            crumb_photo: Reference crumb photo (placeholder if absent)

        Returns:
            Created Product

        Raises:
            StorageError: If the catalog could not be read
        """
        sku = self._generate_sku(self.catalog.skus())

        logger.info("creating_product", sku=sku, name=data.name)

        product = Product(
            sku=sku,
            name=data.name,
            reference_dimensions=data.reference_dimensions,
            reference_photos=ReferencePhotos(
                exterior=self._encode(exterior_photo) or self.placeholder_photo_url,
                crumb=self._encode(crumb_photo) or self.placeholder_photo_url,
            ),
        )
        self.catalog.add_product(product)

        logger.info("product_created", sku=sku)
        return product

    def update(
        self,
        sku: str,
        data: ProductUpdate,
        exterior_photo: Optional[BoundPhoto] = None,
        crumb_photo: Optional[BoundPhoto] = None
    ) -> Product:
        """
        Update an existing product.

        Name and dimensions are replaced wholesale. A photo is replaced only
        when a new file is supplied for its slot.

        Raises:
            ProductNotFoundError: If product doesn't exist
            StorageError: If the catalog could not be read
        """
        logger.info("updating_product", sku=sku)

        existing = self.catalog.get_required(sku)
        updated = Product(
            sku=sku,
            name=data.name,
            reference_dimensions=data.reference_dimensions,
            reference_photos=ReferencePhotos(
                exterior=self._encode(exterior_photo) or existing.reference_photos.exterior,
                crumb=self._encode(crumb_photo) or existing.reference_photos.crumb,
            ),
        )
        self.catalog.replace_product(updated)

        logger.info(
            "product_updated",
            sku=sku,
            replaced_photos=[
                slot for slot, photo in (("exterior", exterior_photo), ("crumb", crumb_photo))
                if photo is not None
            ]
        )
        return updated

    def delete(self, sku: str) -> bool:
        """
        Remove a product from the catalog.

        An in-progress inspection pointing at it is cleared.

        Raises:
            ProductNotFoundError: If product doesn't exist
            StorageError: If the catalog could not be read
        """
        logger.info("deleting_product", sku=sku)

        if not self.catalog.remove_product(sku):
            raise ProductNotFoundError(sku)

        form_cleared = self.inspection.release_product(sku)

        logger.info("product_deleted", sku=sku, form_cleared=form_cleared)
        return True

    # ===================
    # HELPERS
    # ===================

    def _generate_sku(self, existing: set[str]) -> str:
        """Time-based SKU, strictly increasing and never reused."""
        with self._sku_lock:
            stamp = max(int(time.time() * 1000), self._last_stamp + 1)
            while f"{SKU_PREFIX}{stamp}" in existing:
                stamp += 1
            self._last_stamp = stamp
        return f"{SKU_PREFIX}{stamp}"

    @staticmethod
    def _encode(photo: Optional[BoundPhoto]) -> Optional[str]:
        return to_data_url(photo) if photo is not None else None


# Singleton instance for convenience
_admin_service: Optional[AdminService] = None


def get_admin_service() -> AdminService:
    """Get or create AdminService instance."""
    global _admin_service
    if _admin_service is None:
        _admin_service = AdminService()
    return _admin_service
