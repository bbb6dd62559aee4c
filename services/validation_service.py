"""
Inspection form validation.

Every rule is evaluated; the result holds one message per failing field.
Only presence is checked here. Out-of-range measurements are a scoring
concern, not a validation failure.
"""

from typing import Any, Optional

from models.inspection import (
    FormField,
    InspectionForm,
    ValidationErrors,
    UNSET_RATING,
)
from models.product import Product


ERROR_MESSAGES = {
    FormField.PRODUCT: "A product SKU must be selected.",
    FormField.BATCH_NUMBER: "Batch number is required.",
    FormField.HEIGHT: "Height is required.",
    FormField.WIDTH: "Width is required.",
    FormField.LENGTH: "Length is required.",
    FormField.COLOR_RATING: "Color rating is required.",
    FormField.CRUMB_RATING: "Crumb rating is required.",
    FormField.TASTE_RATING: "Taste rating is required.",
    FormField.EXTERIOR_PHOTO: "Exterior photo is required.",
    FormField.CRUMB_PHOTO: "Crumb cross-section photo is required.",
}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def validate_inspection(form: InspectionForm, product: Optional[Product]) -> ValidationErrors:
    """
    Validate an inspection form.

    Args:
        form: Current form state
        product: Selected reference product, or None

    Returns:
        ValidationErrors (empty when the form may be submitted)
    """
    failing = {
        FormField.PRODUCT: product is None,
        FormField.BATCH_NUMBER: not form.batch_number.strip(),
        FormField.HEIGHT: _is_blank(form.height),
        FormField.WIDTH: _is_blank(form.width),
        FormField.LENGTH: _is_blank(form.length),
        FormField.COLOR_RATING: form.color_rating == UNSET_RATING,
        FormField.CRUMB_RATING: form.crumb_rating == UNSET_RATING,
        FormField.TASTE_RATING: form.taste_rating == UNSET_RATING,
        FormField.EXTERIOR_PHOTO: form.exterior_photo is None,
        FormField.CRUMB_PHOTO: form.crumb_photo is None,
    }

    return ValidationErrors(
        {field: ERROR_MESSAGES[field] for field, failed in failing.items() if failed}
    )
