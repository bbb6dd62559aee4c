"""
In-progress inspection form state.

Holds the single form a client is filling in. Everything except the photo
attachments is mirrored to the key-value store after each change, so the
form survives a restart minus its photos.
"""

import threading
from typing import Any, Callable, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from config import get_store, KeyValueStore, INSPECTION_FORM_KEY
from models.inspection import (
    FormField,
    InspectionForm,
    InspectionSummary,
    ValidationErrors,
    PHOTO_FIELDS,
)
from models.photo import BoundPhoto, PhotoSlot
from models.product import Product
from services.catalog_service import CatalogService, get_catalog_service
from services.scoring_service import score_inspection
from services.validation_service import validate_inspection
from exceptions import InspectionValidationError, StorageError

logger = structlog.get_logger(__name__)


class InspectionService:
    """
    Inspection form business logic.

    Handles selection, edits, photo attachment, validation and the
    pre-submission summary.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        catalog: Optional[CatalogService] = None
    ):
        self.store = store or get_store()
        self.catalog = catalog or get_catalog_service()
        self.key = INSPECTION_FORM_KEY
        self._form: Optional[InspectionForm] = None
        self._errors = ValidationErrors()
        self._lock = threading.RLock()
        self._reset_listeners: list[Callable[[], None]] = []

    # ===================
    # READ OPERATIONS
    # ===================

    def get_form(self) -> InspectionForm:
        """
        Get the current form.

        Loads from the store on first access. A form pointing at a product
        that is no longer in the catalog is cleared; when the catalog cannot
        be read the form is left alone.
        """
        with self._lock:
            if self._form is None:
                self._form = self._load()

            sku = self._form.selected_sku
            if sku and self._product_missing(sku):
                logger.info("inspection_product_missing_clearing_form", sku=sku)
                self.reset()

            return self._form

    def get_errors(self) -> ValidationErrors:
        """Errors from the last validation, minus fields edited since."""
        return self._errors

    def selected_product(self) -> Optional[Product]:
        """Reference product the form points at, if any."""
        return self.catalog.get_by_sku(self.get_form().selected_sku)

    # ===================
    # WRITE OPERATIONS
    # ===================

    def select_product(self, sku: str) -> InspectionForm:
        """
        Point the form at a reference product.

        Raises:
            ProductNotFoundError: If the SKU is not in the catalog
        """
        self.catalog.get_required(sku)

        with self._lock:
            form = self._replace(self.get_form(), selected_sku=sku)
            self._commit(form)
            self._errors = self._errors.without(FormField.PRODUCT)

        logger.info("inspection_product_selected", sku=sku)
        return form

    def update_fields(self, changes: dict[str, Any]) -> InspectionForm:
        """
        Apply field edits and clear their validation errors.

        Args:
            changes: Field name to new value (InspectionFormUpdate fields)

        Returns:
            Updated form

        Raises:
            pydantic.ValidationError: If a value is out of bounds
        """
        if not changes:
            return self.get_form()

        with self._lock:
            form = self._replace(self.get_form(), **changes)
            self._commit(form)
            self._errors = self._errors.without(*changes.keys())

        logger.debug("inspection_fields_updated", fields=sorted(changes.keys()))
        return form

    def attach_photo(self, slot: PhotoSlot, photo: BoundPhoto) -> InspectionForm:
        """Bind a photo to a slot, replacing any previous one."""
        field = PHOTO_FIELDS[slot]

        with self._lock:
            form = self.get_form().model_copy(update={field.value: photo})
            self._form = form
            self._errors = self._errors.without(field)

        logger.info(
            "inspection_photo_attached",
            slot=slot.value,
            mime_type=photo.mime_type,
            size=photo.size
        )
        return form

    def validate(self) -> ValidationErrors:
        """Run all validation rules and remember the result."""
        form = self.get_form()
        errors = validate_inspection(form, self.selected_product())
        self._errors = errors

        if not errors.is_empty:
            logger.info(
                "inspection_validation_failed",
                fields=[f.value for f in errors],
                first_field=errors.first_field().value
            )
        return errors

    def build_summary(self) -> InspectionSummary:
        """
        Validate and score the form for the confirmation view.

        Raises:
            InspectionValidationError: If required fields are missing
        """
        errors = self.validate()
        if not errors.is_empty:
            raise InspectionValidationError(errors.to_dict(), errors.first_field().value)

        form = self.get_form()
        product = self.selected_product()
        score = score_inspection(form, product.reference_dimensions)

        logger.info(
            "inspection_summary_built",
            sku=product.sku,
            batch_number=form.batch_number,
            status=score.status.value,
            average_score=score.formatted_average
        )
        return InspectionSummary(product=product, form=form, score=score)

    def reset(self) -> InspectionForm:
        """
        Clear the form, its selection and its errors.

        Reset listeners run afterwards, whatever triggered the reset.
        """
        with self._lock:
            self._form = InspectionForm.empty()
            self._errors = ValidationErrors()
            self.store.remove(self.key)
            form = self._form

        for listener in list(self._reset_listeners):
            listener()

        logger.info("inspection_form_reset")
        return form

    def add_reset_listener(self, listener: Callable[[], None]) -> None:
        """Call listener after every reset (used to clear submission status)."""
        self._reset_listeners.append(listener)

    def release_product(self, sku: str) -> bool:
        """
        Clear the form if it references a product being removed.

        Returns:
            True if the form was cleared
        """
        with self._lock:
            if self._form is None:
                self._form = self._load()
            if self._form.selected_sku != sku:
                return False
            self.reset()

        logger.info("inspection_cleared_for_deleted_product", sku=sku)
        return True

    # ===================
    # HELPERS
    # ===================

    def _product_missing(self, sku: str) -> bool:
        try:
            return not self.catalog.sku_exists(sku)
        except StorageError:
            logger.warning("inspection_product_check_skipped", sku=sku)
            return False

    def _load(self) -> InspectionForm:
        raw = self.store.load(self.key, None)
        if raw is None:
            return InspectionForm.empty()
        try:
            return InspectionForm.model_validate(raw)
        except PydanticValidationError as e:
            logger.warning("inspection_form_unreadable", error=str(e))
            return InspectionForm.empty()

    def _commit(self, form: InspectionForm) -> None:
        self._form = form
        self.store.save(self.key, form.to_storage())

    @staticmethod
    def _replace(form: InspectionForm, **changes: Any) -> InspectionForm:
        """Validated copy of form with changes; photos carried over."""
        data = form.model_dump()
        data.update(changes)
        updated = InspectionForm.model_validate(data)
        return updated.model_copy(
            update={
                "exterior_photo": form.exterior_photo,
                "crumb_photo": form.crumb_photo,
            }
        )


# Singleton instance for convenience
_inspection_service: Optional[InspectionService] = None


def get_inspection_service() -> InspectionService:
    """Get or create InspectionService instance."""
    global _inspection_service
    if _inspection_service is None:
        _inspection_service = InspectionService()
    return _inspection_service
