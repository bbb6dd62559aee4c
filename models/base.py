"""
Base schema shared by the product, inspection and preference models.
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base for all request, response and stored schemas.

    Features:
        - Auto-trim whitespace from strings (batch numbers, names, notes)
        - Validate on attribute assignment
        - Allow attribute-based construction (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )
