"""
Image validation for uploaded evidence.

Runs before compression so nothing is encoded or uploaded for a file that
would be rejected anyway.
"""

from dataclasses import dataclass
from typing import Optional

from weighcheck.app.core.config import settings
from weighcheck.app.core.exceptions import (
    TooLargeError,
    UnsupportedFormatError,
    ValidationError,
)

ALLOWED_CONTENT_TYPES = [
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/heic",
]


@dataclass(frozen=True)
class UploadedImage:
    """An image file as received from the client."""
    filename: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def validate_image(image: UploadedImage, max_bytes: Optional[int] = None) -> UploadedImage:
    """
    Check size and MIME type of an uploaded image.

    Raises:
        ValidationError: empty file
        TooLargeError: larger than the pre-compression ceiling (10 MiB)
        UnsupportedFormatError: MIME type not on the allow-list
    """
    limit = max_bytes if max_bytes is not None else settings.max_upload_bytes

    if image.size == 0:
        raise ValidationError("Uploaded file is empty", details={"filename": image.filename})

    if image.size > limit:
        raise TooLargeError(image.size, limit)

    content_type = (image.content_type or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedFormatError(image.content_type, ALLOWED_CONTENT_TYPES)

    return image
