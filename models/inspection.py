"""
Inspection form schemas.

The form is the packer's single in-progress submission. Photo attachments
are held in memory only and are excluded from every serialization.
"""

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Literal, Optional, Union

from pydantic import Field

from models.base import BaseSchema
from models.photo import BoundPhoto, PhotoSlot
from models.product import Product


class FormField(str, Enum):
    """Form field keys, in declaration (scroll) order."""
    PRODUCT = "product"
    BATCH_NUMBER = "batch_number"
    HEIGHT = "height"
    WIDTH = "width"
    LENGTH = "length"
    COLOR_RATING = "color_rating"
    CRUMB_RATING = "crumb_rating"
    TASTE_RATING = "taste_rating"
    EXTERIOR_PHOTO = "exterior_photo"
    CRUMB_PHOTO = "crumb_photo"


MEASUREMENT_FIELDS = (FormField.HEIGHT, FormField.WIDTH, FormField.LENGTH)
RATING_FIELDS = (FormField.COLOR_RATING, FormField.CRUMB_RATING, FormField.TASTE_RATING)

PHOTO_FIELDS = {
    PhotoSlot.EXTERIOR: FormField.EXTERIOR_PHOTO,
    PhotoSlot.CRUMB: FormField.CRUMB_PHOTO,
}

UNSET_RATING = 0

# Measurements keep whatever the packer typed; the scorer coerces.
Measurement = Optional[Union[float, str]]


class InspectionForm(BaseSchema):
    """
    One in-progress inspection.

    Ratings use 0 as the "not rated yet" sentinel.
    """

    selected_sku: Optional[str] = Field(None, description="SKU of the reference product")
    batch_number: str = Field("", max_length=100, description="Production batch identifier")
    height: Measurement = Field(None, description="Measured height (mm)")
    width: Measurement = Field(None, description="Measured width (mm)")
    length: Measurement = Field(None, description="Measured length (mm)")
    color_rating: int = Field(UNSET_RATING, ge=0, le=5, description="Crust colour, 1-5")
    crumb_rating: int = Field(UNSET_RATING, ge=0, le=5, description="Crumb structure, 1-5")
    taste_rating: int = Field(UNSET_RATING, ge=0, le=5, description="Taste, 1-5")
    notes: str = Field("", max_length=300, description="Free-text tasting notes")
    exterior_photo: Optional[BoundPhoto] = Field(None, exclude=True)
    crumb_photo: Optional[BoundPhoto] = Field(None, exclude=True)

    @classmethod
    def empty(cls) -> "InspectionForm":
        """Initial form state."""
        return cls()

    def to_storage(self) -> dict:
        """Serializable form without photo attachments."""
        return self.model_dump(mode="json")

    def photo(self, slot: PhotoSlot) -> Optional[BoundPhoto]:
        return getattr(self, PHOTO_FIELDS[slot].value)


class InspectionFormUpdate(BaseSchema):
    """
    Partial form edit.

    Only fields present in the request body are applied.
    """

    batch_number: Optional[str] = Field(None, max_length=100)
    height: Measurement = None
    width: Measurement = None
    length: Measurement = None
    color_rating: Optional[int] = Field(None, ge=0, le=5)
    crumb_rating: Optional[int] = Field(None, ge=0, le=5)
    taste_rating: Optional[int] = Field(None, ge=0, le=5)
    notes: Optional[str] = Field(None, max_length=300)


class ValidationErrors(Mapping):
    """
    Immutable mapping of form field to error message.

    Entries are kept in declaration order. Clearing a field returns a new
    mapping instead of mutating this one.
    """

    __slots__ = ("_errors",)

    def __init__(self, errors: Optional[Mapping] = None):
        normalized = {FormField(key): message for key, message in (errors or {}).items()}
        self._errors = MappingProxyType(
            {field: normalized[field] for field in FormField if field in normalized}
        )

    def __getitem__(self, key: Union[FormField, str]) -> str:
        try:
            return self._errors[FormField(key)]
        except ValueError:
            raise KeyError(key) from None

    def __contains__(self, key: object) -> bool:
        try:
            return FormField(key) in self._errors
        except ValueError:
            return False

    def __iter__(self) -> Iterator[FormField]:
        return iter(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __repr__(self) -> str:
        return f"ValidationErrors({self.to_dict()!r})"

    @property
    def is_empty(self) -> bool:
        return not self._errors

    def without(self, *fields: Union[FormField, str]) -> "ValidationErrors":
        """Copy of these errors minus the given fields. Unknown keys are ignored."""
        dropped = {field for field in FormField if field in fields}
        return ValidationErrors(
            {field: message for field, message in self._errors.items() if field not in dropped}
        )

    def first_field(self) -> Optional[FormField]:
        """First failing field in declaration order, or None."""
        return next(iter(self._errors), None)

    def to_dict(self) -> dict[str, str]:
        return {field.value: message for field, message in self._errors.items()}


# ===================
# SCORING
# ===================

class InspectionStatus(str, Enum):
    """Outcome of an inspection."""
    PASSED = "passed"
    NOT_PASSED = "not passed"


class DimensionScores(BaseSchema):
    """Per-axis binary sub-scores (5 in range, 1 out of range)."""
    height: int
    width: int
    length: int

    @property
    def composite(self) -> float:
        return (self.height + self.width + self.length) / 3


class ScoreResult(BaseSchema):
    """Derived pass/fail outcome. Never persisted."""

    status: InspectionStatus
    average_score: float = Field(..., ge=0, le=5)
    dimension_score: float = Field(..., ge=1, le=5)
    dimension_scores: DimensionScores

    @property
    def formatted_average(self) -> str:
        """Average rounded to two decimals, as sent to the CRM."""
        return f"{self.average_score:.2f}"


# ===================
# RESPONSES
# ===================

SubmissionOutcome = Literal["success", "error"]


class SubmissionState(BaseSchema):
    """Status of the most recent submission attempt."""

    pending: bool = False
    outcome: Optional[SubmissionOutcome] = None
    record_id: Optional[str] = None
    error_message: Optional[str] = None
    reset_scheduled: bool = False


class InspectionFormResponse(BaseSchema):
    """Form state as shown to the client."""

    form: InspectionForm
    has_exterior_photo: bool
    has_crumb_photo: bool
    errors: dict[str, str] = Field(default_factory=dict)
    submission: SubmissionState = Field(default_factory=SubmissionState)

    @classmethod
    def build(
        cls,
        form: InspectionForm,
        errors: ValidationErrors,
        submission: SubmissionState
    ) -> "InspectionFormResponse":
        return cls(
            form=form,
            has_exterior_photo=form.exterior_photo is not None,
            has_crumb_photo=form.crumb_photo is not None,
            errors=errors.to_dict(),
            submission=submission,
        )


class ProductSelection(BaseSchema):
    """Choose the reference product for the form."""
    sku: str = Field(..., min_length=1)


class ValidationResult(BaseSchema):
    """Outcome of an explicit validation request."""

    valid: bool
    errors: dict[str, str] = Field(default_factory=dict)
    first_field: Optional[FormField] = Field(None, description="Field to scroll into view")

    @classmethod
    def from_errors(cls, errors: ValidationErrors) -> "ValidationResult":
        return cls(valid=errors.is_empty, errors=errors.to_dict(), first_field=errors.first_field())


class InspectionSummary(BaseSchema):
    """Summary shown to the packer before confirming a submission."""

    product: Product
    form: InspectionForm
    score: ScoreResult
