"""
Photo attachment schema.

A BoundPhoto is an image file held in memory. It is never persisted:
the storage layer drops binary payloads, so attachments vanish on restart.
"""

import mimetypes
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PhotoSlot(str, Enum):
    """The two comparison photo slots."""
    EXTERIOR = "exterior"
    CRUMB = "crumb"


class BoundPhoto(BaseModel):
    """Image bytes plus the metadata needed to re-encode them."""

    model_config = ConfigDict(frozen=True)

    content: bytes = Field(..., repr=False, description="Raw image bytes")
    mime_type: str = Field(..., description="Image MIME type, e.g. image/jpeg")
    filename: str = Field(default="photo", description="Original file name")

    @property
    def extension(self) -> str:
        """File extension without the dot (png when unknown)."""
        guessed = mimetypes.guess_extension(self.mime_type) or ".png"
        if guessed in (".jpe", ".jpeg"):
            guessed = ".jpg"
        return guessed.lstrip(".")

    @property
    def size(self) -> int:
        return len(self.content)
