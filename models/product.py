"""
Product schemas for validation and serialization.

A product is a reference loaf: its dimension tolerances and the two
reference photos packers compare against.
"""

from pydantic import Field, model_validator

from models.base import BaseSchema


class DimensionRange(BaseSchema):
    """Closed tolerance interval in millimetres."""

    min: float = Field(..., ge=0, description="Lower bound (inclusive, mm)")
    max: float = Field(..., ge=0, description="Upper bound (inclusive, mm)")

    @model_validator(mode="after")
    def min_not_above_max(self) -> "DimensionRange":
        if self.min > self.max:
            raise ValueError(f"min ({self.min}) must not exceed max ({self.max})")
        return self

    def contains(self, value: float) -> bool:
        """True if value lies within [min, max]."""
        return self.min <= value <= self.max


class ReferenceDimensions(BaseSchema):
    """Per-axis tolerance bands."""

    height: DimensionRange
    width: DimensionRange
    length: DimensionRange


class ReferencePhotos(BaseSchema):
    """Reference photo locations (URL or data: URI)."""

    exterior: str = Field(..., min_length=1)
    crumb: str = Field(..., min_length=1)


class ProductCreate(BaseSchema):
    """
    Create a new reference product.

    SKU is generated by the service; photos are uploaded separately.
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name",
        examples=["Borodinsky 400g"]
    )
    reference_dimensions: ReferenceDimensions


class ProductUpdate(ProductCreate):
    """
    Update existing product.

    Name and dimensions are replaced wholesale.
    """


class Product(BaseSchema):
    """
    Reference product as stored in the catalog.

    Used for GET responses and persisted as-is.
    """

    sku: str = Field(..., min_length=1, description="Unique product identifier")
    name: str = Field(..., min_length=1, description="Display name")
    reference_dimensions: ReferenceDimensions
    reference_photos: ReferencePhotos


class ProductListResponse(BaseSchema):
    """List of catalog products."""

    data: list[Product]
    total: int
