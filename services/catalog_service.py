"""
Catalog store for reference products.

The catalog lives in the key-value store under a single key and is seeded
once from a static JSON document when empty.

Stored rows are written back exactly as read: a row that no longer validates
is hidden from readers but never dropped by an unrelated edit.
"""

import json
from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from config import settings, get_store, KeyValueStore, PRODUCTS_KEY
from models.product import Product
from exceptions import ProductNotFoundError, SeedDataError, StorageError

logger = structlog.get_logger(__name__)


class CatalogService:
    """
    Reference product catalog.

    Read access and row-level persistence. Admin mutations go through
    AdminService.
    """

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store or get_store()
        self.key = PRODUCTS_KEY

    # ===================
    # INITIALIZATION
    # ===================

    def initialize(self, seed_path: Optional[str] = None) -> int:
        """
        Seed the catalog from the static data file if it is empty.

        A catalog that cannot be read is not empty: seeding is refused so
        stored products are never overwritten.

        Args:
            seed_path: Seed JSON path (defaults to settings.seed_data_path)

        Returns:
            Number of stored catalog rows afterwards

        Raises:
            StorageError: If the stored catalog could not be read
            SeedDataError: If seeding was needed and the file is unreadable
        """
        rows = self._read_rows()
        if rows:
            logger.info("catalog_already_seeded", count=len(rows))
            return len(rows)

        path = Path(seed_path or settings.seed_data_path)
        logger.info("seeding_catalog", path=str(path))

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("seed document must be a JSON array")
            products = [Product.model_validate(row) for row in raw]
        except (OSError, ValueError) as e:
            logger.error("catalog_seed_failed", path=str(path), error=str(e))
            raise SeedDataError(str(path), str(e))

        self.save_all(products)
        logger.info("catalog_seeded", count=len(products))
        return len(products)

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(self) -> list[Product]:
        """
        Get all products in catalog order.

        Rows that no longer validate are skipped and logged. An unreadable
        catalog reads as empty.
        """
        try:
            rows = self._read_rows()
        except StorageError:
            return []

        products = []
        for row in rows:
            product = self._parse(row)
            if product is not None:
                products.append(product)
        return products

    def get_by_sku(self, sku: Optional[str]) -> Optional[Product]:
        """
        Get a product by SKU.

        Returns:
            Product or None if not found
        """
        if not sku:
            return None
        return next((p for p in self.get_all() if p.sku == sku), None)

    def get_required(self, sku: str) -> Product:
        """
        Get a product by SKU.

        Raises:
            StorageError: If the catalog could not be read
            ProductNotFoundError: If product doesn't exist
        """
        row = self._find_row(self._read_rows(), sku)
        product = self._parse(row) if row is not None else None
        if product is None:
            raise ProductNotFoundError(sku)
        return product

    # ===================
    # WRITE OPERATIONS
    # ===================

    def save_all(self, products: list[Product]) -> bool:
        """Replace the persisted catalog."""
        return self.store.save(
            self.key,
            [p.model_dump(mode="json") for p in products]
        )

    def add_product(self, product: Product) -> bool:
        """
        Append a product, keeping every stored row.

        Raises:
            StorageError: If the catalog could not be read
        """
        rows = self._read_rows()
        rows.append(product.model_dump(mode="json"))
        return self.store.save(self.key, rows)

    def replace_product(self, product: Product) -> bool:
        """
        Overwrite the row with the product's SKU in place.

        Returns:
            False if no row has that SKU

        Raises:
            StorageError: If the catalog could not be read
        """
        rows = self._read_rows()
        for index, row in enumerate(rows):
            if self._row_sku(row) == product.sku:
                rows[index] = product.model_dump(mode="json")
                self.store.save(self.key, rows)
                return True
        return False

    def remove_product(self, sku: str) -> bool:
        """
        Drop the row with this SKU.

        Returns:
            False if no row has that SKU

        Raises:
            StorageError: If the catalog could not be read
        """
        rows = self._read_rows()
        remaining = [row for row in rows if self._row_sku(row) != sku]
        if len(remaining) == len(rows):
            return False
        self.store.save(self.key, remaining)
        return True

    # ===================
    # UTILITY METHODS
    # ===================

    def skus(self) -> set[str]:
        """
        SKUs of every stored row, valid or not.

        Raises:
            StorageError: If the catalog could not be read
        """
        return {sku for sku in map(self._row_sku, self._read_rows()) if sku}

    def sku_exists(self, sku: str) -> bool:
        """
        Check if a stored row has this SKU.

        Raises:
            StorageError: If the catalog could not be read
        """
        return sku in self.skus()

    def count(self) -> int:
        """Count catalog products."""
        return len(self.get_all())

    # ===================
    # HELPERS
    # ===================

    def _read_rows(self) -> list:
        """Stored rows as-is. An absent catalog is an empty list."""
        raw = self.store.load_strict(self.key, [])
        if not isinstance(raw, list):
            logger.error("catalog_corrupt", type=type(raw).__name__)
            raise StorageError(self.key, f"expected a list, found {type(raw).__name__}")
        return raw

    def _find_row(self, rows: list, sku: str) -> Optional[Any]:
        return next((row for row in rows if self._row_sku(row) == sku), None)

    @staticmethod
    def _row_sku(row: Any) -> Optional[str]:
        return row.get("sku") if isinstance(row, dict) else None

    @staticmethod
    def _parse(row: Any) -> Optional[Product]:
        try:
            return Product.model_validate(row)
        except PydanticValidationError as e:
            logger.warning(
                "catalog_row_invalid",
                sku=row.get("sku") if isinstance(row, dict) else None,
                error=str(e)
            )
            return None


# Singleton instance for convenience
_catalog_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get or create CatalogService instance."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService()
    return _catalog_service
