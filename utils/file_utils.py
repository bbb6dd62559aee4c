"""
Photo file helpers.

Admin reference photos are stored as data: URIs; CRM attachments are sent
as bare base64.
"""

import base64
from typing import Optional

from exceptions import InvalidPhotoError
from models.photo import BoundPhoto


def to_base64(content: bytes) -> str:
    """Encode bytes as ASCII base64."""
    return base64.b64encode(content).decode("ascii")


def to_data_url(photo: BoundPhoto) -> str:
    """
    Encode a photo as a data URI.

    Example:
        data:image/jpeg;base64,/9j/4AAQ...
    """
    return f"data:{photo.mime_type};base64,{to_base64(photo.content)}"


def build_photo(
    slot: str,
    content: bytes,
    content_type: Optional[str],
    filename: Optional[str] = None
) -> BoundPhoto:
    """
    Bind uploaded bytes to a photo slot.

    Args:
        slot: Slot name, used in the error details
        content: Raw file bytes (may be empty)
        content_type: MIME type reported by the client
        filename: Original file name

    Returns:
        BoundPhoto

    Raises:
        InvalidPhotoError: If the file is not an image
    """
    if not content_type or not content_type.lower().startswith("image/"):
        raise InvalidPhotoError(slot, content_type)

    return BoundPhoto(
        content=content,
        mime_type=content_type.lower(),
        filename=filename or f"{slot}.png"
    )
