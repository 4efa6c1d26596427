"""
Adaptive image compression.

Compression targets depend on the input size. The encoder runs in a
worker thread, and its output is only used when it passes the safety
checks; otherwise the original upload is passed through untouched.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from PIL import Image, ImageOps, UnidentifiedImageError
from pillow_heif import register_heif_opener

from weighcheck.app.core.config import settings
from weighcheck.app.core.exceptions import CompressionError
from weighcheck.app.services.image_validation import UploadedImage

logger = logging.getLogger("weighcheck.compression")

# iPhone cameras default to HEIC
register_heif_opener()

MIB = 1024 * 1024


@dataclass(frozen=True)
class CompressionTier:
    upper_bound_mb: Optional[float]  # exclusive, None = unbounded
    target_size_mb: float
    max_dimension: int

    @property
    def target_bytes(self) -> int:
        return int(self.target_size_mb * MIB)


COMPRESSION_TIERS: List[CompressionTier] = [
    CompressionTier(1, 0.5, 2048),
    CompressionTier(3, 1.2, 2048),
    CompressionTier(5, 1.8, 2048),
    CompressionTier(10, 3.0, 2560),
    CompressionTier(None, 4.0, 2560),
]


def select_tier(size_bytes: int) -> CompressionTier:
    size_mb = size_bytes / MIB
    for tier in COMPRESSION_TIERS:
        if tier.upper_bound_mb is None or size_mb < tier.upper_bound_mb:
            return tier
    return COMPRESSION_TIERS[-1]


class ImageEncoder(Protocol):
    def encode(self, data: bytes, target_bytes: int, max_dimension: int, max_iterations: int) -> bytes:
        ...


class PillowEncoder:
    """
    JPEG encoder converging on a target size.

    Each iteration first lowers the quality; once the quality floor is
    reached it shrinks the dimensions instead.
    """

    def __init__(
        self,
        initial_quality: int = 80,
        min_quality: int = 40,
        quality_step: int = 10,
        scale_step: float = 0.9,
    ):
        self.initial_quality = initial_quality
        self.min_quality = min_quality
        self.quality_step = quality_step
        self.scale_step = scale_step

    def encode(self, data: bytes, target_bytes: int, max_dimension: int, max_iterations: int = 10) -> bytes:
        try:
            with Image.open(io.BytesIO(data)) as source:
                image = ImageOps.exif_transpose(source)
                if image.mode != "RGB":
                    image = image.convert("RGB")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise CompressionError(f"Cannot decode image: {e}")

        image.thumbnail((max_dimension, max_dimension), Image.LANCZOS)

        quality = self.initial_quality
        output = b""
        for _ in range(max_iterations):
            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=quality, optimize=True)
            output = buffer.getvalue()

            if len(output) <= target_bytes:
                break

            if quality - self.quality_step >= self.min_quality:
                quality -= self.quality_step
            else:
                width, height = image.size
                new_size = (max(1, int(width * self.scale_step)), max(1, int(height * self.scale_step)))
                image = image.resize(new_size, Image.LANCZOS)

        return output


@dataclass(frozen=True)
class CompressionResult:
    image: UploadedImage
    compressed: bool
    reason: Optional[str] = None


class AdaptiveCompressor:
    """
    Compress uploads per size tier, falling back to the original.

    The original is returned byte-for-byte when the encoder fails, produces
    nothing, produces something larger than the input, or shrinks the
    input by more than ``max_reduction`` (a sign of a broken encode).
    """

    def __init__(
        self,
        encoder: Optional[ImageEncoder] = None,
        max_reduction: Optional[float] = None,
        max_iterations: int = 10,
    ):
        self.encoder = encoder or PillowEncoder()
        self.max_reduction = max_reduction if max_reduction is not None else settings.max_compression_reduction
        self.max_iterations = max_iterations

    def _rejection_reason(self, original_size: int, compressed_size: int) -> Optional[str]:
        if compressed_size <= 0:
            return "empty_output"
        if compressed_size > original_size:
            return "larger_than_original"
        reduction = 1 - compressed_size / original_size
        if reduction > self.max_reduction:
            return "excessive_reduction"
        return None

    async def compress(self, image: UploadedImage) -> CompressionResult:
        tier = select_tier(image.size)

        try:
            data = await asyncio.to_thread(
                self.encoder.encode,
                image.data,
                tier.target_bytes,
                tier.max_dimension,
                self.max_iterations,
            )
        except Exception as e:
            logger.warning(
                "Compression failed, using original",
                extra={"upload_filename": image.filename, "error": str(e)},
            )
            return CompressionResult(image=image, compressed=False, reason="encoder_error")

        reason = self._rejection_reason(image.size, len(data or b""))
        if reason:
            logger.info(
                "Compressed output rejected, using original",
                extra={
                    "upload_filename": image.filename,
                    "reason": reason,
                    "original_size": image.size,
                    "compressed_size": len(data or b""),
                },
            )
            return CompressionResult(image=image, compressed=False, reason=reason)

        stem = image.filename.rsplit(".", 1)[0] if image.filename else "image"
        compressed = UploadedImage(filename=f"{stem}.jpg", content_type="image/jpeg", data=data)
        logger.debug(
            "Image compressed",
            extra={"upload_filename": image.filename, "original_size": image.size, "compressed_size": compressed.size},
        )
        return CompressionResult(image=compressed, compressed=True)
